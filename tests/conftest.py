"""Shared fixtures: fake pose providers, skeleton builders, synthetic images."""
import base64
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pytest
from PIL import Image

from posematch.pose.base import PoseProvider
from posematch.pose.types import NUM_LANDMARKS, Landmark

# Upright figure, roughly centered, in normalized image coordinates.
STANDING: Dict[int, Tuple[float, float]] = {
	11: (0.40, 0.30), 12: (0.60, 0.30),
	13: (0.36, 0.45), 14: (0.64, 0.45),
	15: (0.34, 0.58), 16: (0.66, 0.58),
	23: (0.44, 0.60), 24: (0.56, 0.60),
	25: (0.44, 0.78), 26: (0.56, 0.78),
	27: (0.44, 0.95), 28: (0.56, 0.95),
}


def make_skeleton(
	points: Optional[Dict[int, Tuple[float, float]]] = None,
	visibility: Optional[float] = 1.0,
	overrides: Optional[Dict[int, Landmark]] = None,
) -> Tuple[Landmark, ...]:
	"""33 landmarks; unspecified indices sit at the image centre."""
	pts = STANDING if points is None else points
	out: List[Landmark] = []
	for i in range(NUM_LANDMARKS):
		x, y = pts.get(i, (0.5, 0.5))
		out.append(Landmark(x=x, y=y, z=0.0, visibility=visibility))
	for i, lm in (overrides or {}).items():
		out[i] = lm
	return tuple(out)


def shifted(skeleton, dx: float = 0.0, dy: float = 0.0) -> Tuple[Landmark, ...]:
	return tuple(Landmark(x=lm.x + dx, y=lm.y + dy, z=lm.z, visibility=lm.visibility) for lm in skeleton)


class FakeProvider(PoseProvider):
	"""Returns a fixed skeleton (or None) and records what it was asked to look at."""

	def __init__(self, result=None) -> None:
		self.result = make_skeleton() if result is None else result
		self.seen: List[Any] = []
		self.closed = False

	def name(self) -> str:
		return "fake"

	def detect(self, rgb):
		self.seen.append(rgb)
		return self.result or None

	def close(self) -> None:
		self.closed = True


def png_bytes(width: int, height: int, color=(120, 90, 60)) -> bytes:
	buf = BytesIO()
	Image.new("RGB", (width, height), color).save(buf, format="PNG")
	return buf.getvalue()


def png_data_url(width: int, height: int) -> str:
	return "data:image/png;base64," + base64.b64encode(png_bytes(width, height)).decode("ascii")


def rgb_frame(width: int = 640, height: int = 480, value: int = 128) -> np.ndarray:
	return np.full((height, width, 3), value, dtype=np.uint8)


@pytest.fixture
def standing():
	return make_skeleton()


@pytest.fixture
def fake_provider():
	return FakeProvider()
