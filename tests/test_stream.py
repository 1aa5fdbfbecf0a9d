import asyncio

from posematch.stream import MEDIA_TYPE, mjpeg_part, preview_stream


def test_part_carries_boundary_and_length():
	part = mjpeg_part(b"\xff\xd8one")
	assert part == b"--frame\r\nContent-Type: image/jpeg\r\nContent-Length: 5\r\n\r\n\xff\xd8one\r\n"
	assert MEDIA_TYPE.endswith("boundary=frame")


def test_stream_sends_each_preview_frame_once():
	frames = iter([(None, None), (b"\xff\xd8one", 1.0), (b"\xff\xd8one", 1.0), (b"\xff\xd8two", 2.0)])
	last = [(None, None)]

	def latest():
		last[0] = next(frames, last[0])
		return last[0]

	async def collect():
		gen = preview_stream(latest, fps=1000.0, idle_s=0.001)
		out = [await gen.__anext__() for _ in range(2)]
		await gen.aclose()
		return out

	parts = asyncio.run(collect())
	assert parts == [mjpeg_part(b"\xff\xd8one"), mjpeg_part(b"\xff\xd8two")]
