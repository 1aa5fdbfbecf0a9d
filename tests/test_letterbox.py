import pytest

from posematch.pose.letterbox import compute_letterbox
from posematch.pose.types import ImageSize


def test_portrait_template_in_landscape_frame_is_pillarboxed():
	box = compute_letterbox(640, 480, ImageSize(300, 600))
	assert box.h == pytest.approx(480.0)
	assert box.w == pytest.approx(240.0)
	assert box.x == pytest.approx(200.0)
	assert box.y == pytest.approx(0.0)
	assert box.pixel_rect() == (200, 0, 440, 480)


def test_wide_template_is_letterboxed_full_width():
	box = compute_letterbox(640, 480, ImageSize(1600, 900))
	assert box.w == pytest.approx(640.0)
	assert box.h == pytest.approx(360.0)
	assert box.x == pytest.approx(0.0)
	assert box.y == pytest.approx(60.0)


@pytest.mark.parametrize("template", [None, ImageSize(1280, 960), ImageSize(0, 10)])
def test_unknown_or_same_aspect_covers_frame(template):
	box = compute_letterbox(640, 480, template)
	assert (box.x, box.y, box.w, box.h) == pytest.approx((0.0, 0.0, 640.0, 480.0))


def test_box_has_template_aspect_and_stays_inside_frame():
	for size in (ImageSize(300, 600), ImageSize(1600, 900), ImageSize(1000, 1000)):
		box = compute_letterbox(1280, 720, size)
		assert box.w / box.h == pytest.approx(size.aspect)
		assert box.x >= 0 and box.y >= 0
		assert box.x + box.w <= 1280 + 1e-6
		assert box.y + box.h <= 720 + 1e-6


def test_frame_and_box_coordinates_round_trip():
	box = compute_letterbox(640, 480, ImageSize(300, 600))
	assert box.to_box(0.5, 0.5) == pytest.approx((0.5, 0.5))
	u, v = box.to_box(260 / 640, 0.25)
	assert (u, v) == pytest.approx((0.25, 0.25))
	assert box.to_frame(0.25, 0.25) == pytest.approx((260.0, 120.0))


def test_non_positive_frame_rejected():
	with pytest.raises(ValueError):
		compute_letterbox(0, 480)
