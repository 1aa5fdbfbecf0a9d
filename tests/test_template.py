import asyncio

import pytest

from posematch.detector import DetectorChannel
from posematch.errors import InvalidTemplateImage, NoPoseDetected
from posematch.pose.types import ImageSize
from posematch.template import (
	SOURCE_PRESET,
	SOURCE_SAVED,
	SOURCE_UPLOAD,
	TemplateAcquirer,
	decode_data_url,
	downscaled_size,
)
from tests.conftest import FakeProvider, png_bytes, png_data_url


def _acquirer(provider, presets_dir=None):
	channel = DetectorChannel(lambda: provider)
	return channel, TemplateAcquirer(channel, max_edge=640, presets_dir=presets_dir)


def _run(provider, fn, presets_dir=None):
	async def scenario():
		channel, acq = _acquirer(provider, presets_dir)
		await channel.start()
		return await fn(acq)

	return asyncio.run(scenario())


def test_large_upload_is_downscaled_for_detector_only():
	provider = FakeProvider()
	result = _run(provider, lambda acq: acq.from_bytes(png_bytes(1280, 960), pose_name="Arms Up"))
	assert result.image_size == ImageSize(1280, 960)
	assert result.detector_size == ImageSize(640, 480)
	assert provider.seen[0].shape == (480, 640, 3)
	assert result.pose_name == "Arms Up"
	assert result.source == SOURCE_UPLOAD
	assert len(result.skeleton) == 33


def test_small_upload_is_not_resized():
	provider = FakeProvider()
	result = _run(provider, lambda acq: acq.from_bytes(png_bytes(320, 200)))
	assert result.image_size == result.detector_size == ImageSize(320, 200)
	assert provider.seen[0].shape == (200, 320, 3)
	assert result.pose_name == "Custom Pose"


def test_no_person_raises_no_pose_detected():
	provider = FakeProvider(result=())
	with pytest.raises(NoPoseDetected):
		_run(provider, lambda acq: acq.from_bytes(png_bytes(300, 600)))


def test_garbage_bytes_are_invalid_image():
	with pytest.raises(InvalidTemplateImage):
		_run(FakeProvider(), lambda acq: acq.from_bytes(b"not an image"))


def test_data_url_upload():
	result = _run(FakeProvider(), lambda acq: acq.from_data_url(png_data_url(300, 600)))
	assert result.image_size == ImageSize(300, 600)


def test_decode_data_url_rejects_non_base64():
	with pytest.raises(InvalidTemplateImage):
		decode_data_url("data:image/png,rawbytes")
	with pytest.raises(InvalidTemplateImage):
		decode_data_url("data:image/png;base64,@@@")


def test_downscaled_size_keeps_aspect():
	assert downscaled_size(ImageSize(1000, 2000), 640) == ImageSize(320, 640)
	assert downscaled_size(ImageSize(640, 100), 640) == ImageSize(640, 100)


def test_preset_loads_from_presets_dir(tmp_path):
	(tmp_path / "lean-wall.jpg").write_bytes(png_bytes(400, 800))
	result = _run(FakeProvider(), lambda acq: acq.from_preset("lean-wall"), presets_dir=tmp_path)
	assert result.pose_name == "Wall Lean"
	assert result.source == SOURCE_PRESET
	assert result.source_id == "lean-wall"
	assert result.image_size == ImageSize(400, 800)


def test_unknown_preset_and_missing_file(tmp_path):
	with pytest.raises(KeyError):
		_run(FakeProvider(), lambda acq: acq.from_preset("moonwalk"), presets_dir=tmp_path)
	with pytest.raises(InvalidTemplateImage, match="presets_dir"):
		_run(FakeProvider(), lambda acq: acq.from_preset("thumbs-up"), presets_dir=tmp_path)


def test_saved_photo_becomes_template():
	async def fetch(saved_id):
		if saved_id != "s1":
			return None
		return {"id": "s1", "pose_name": "Beach Jump", "photo_data_url": png_data_url(500, 500)}

	result = _run(FakeProvider(), lambda acq: acq.from_saved("s1", fetch))
	assert result.source == SOURCE_SAVED
	assert result.pose_name == "Beach Jump"
	assert result.to_dict()["image_size"] == {"width": 500, "height": 500}

	with pytest.raises(KeyError):
		_run(FakeProvider(), lambda acq: acq.from_saved("nope", fetch))
