from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Callable, Optional, Tuple

BOUNDARY = "frame"
MEDIA_TYPE = f"multipart/x-mixed-replace; boundary={BOUNDARY}"

PreviewGetter = Callable[[], Tuple[Optional[bytes], Optional[float]]]


def mjpeg_part(jpeg: bytes) -> bytes:
	head = f"--{BOUNDARY}\r\nContent-Type: image/jpeg\r\nContent-Length: {len(jpeg)}\r\n\r\n"
	return head.encode("ascii") + jpeg + b"\r\n"


async def preview_stream(latest: PreviewGetter, fps: float, idle_s: float = 0.02) -> AsyncIterator[bytes]:
	"""
	One multipart part per new preview frame, at most `fps` parts per second.
	`latest` is MatchSession.get_latest_jpeg; frames are told apart by their
	capture timestamp, so a stalled camera sends nothing.
	"""
	period = 1.0 / fps
	sent_t: Optional[float] = None
	next_due = 0.0
	while True:
		jpeg, t = latest()
		wait = next_due - time.monotonic()
		if jpeg is None or t == sent_t or wait > 0:
			await asyncio.sleep(max(idle_s, wait))
			continue
		sent_t = t
		next_due = time.monotonic() + period
		yield mjpeg_part(jpeg)
