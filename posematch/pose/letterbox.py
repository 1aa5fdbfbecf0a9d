"""
Letterbox projection between the camera frame and the template's aspect ratio.

The comparison box is the centered sub-rectangle of the camera frame with the
template's aspect ratio. Scoring, overlay rendering and still cropping must all
use the same box, otherwise the ghost drifts away from where the score wants
the user to stand.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from posematch.pose.types import ImageSize


@dataclass(frozen=True)
class LetterboxBox:
	frame_w: float
	frame_h: float
	x: float
	y: float
	w: float
	h: float

	def to_box(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
		"""Frame-normalized point -> box-normalized point."""
		return (
			(x_norm * self.frame_w - self.x) / self.w,
			(y_norm * self.frame_h - self.y) / self.h,
		)

	def to_frame(self, u: float, v: float) -> Tuple[float, float]:
		"""Box-normalized point -> frame pixel coordinates."""
		return (self.x + u * self.w, self.y + v * self.h)

	def pixel_rect(self) -> Tuple[int, int, int, int]:
		"""Integer (x0, y0, x1, y1) crop rectangle, clamped to the frame."""
		x0 = max(0, int(round(self.x)))
		y0 = max(0, int(round(self.y)))
		x1 = min(int(self.frame_w), int(round(self.x + self.w)))
		y1 = min(int(self.frame_h), int(round(self.y + self.h)))
		return x0, y0, max(x0 + 1, x1), max(y0 + 1, y1)

	def to_dict(self) -> dict:
		return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


def compute_letterbox(frame_w: float, frame_h: float, template_size: Optional[ImageSize] = None) -> LetterboxBox:
	"""
	Centered box inside a frame_w x frame_h frame with the template's aspect ratio.

	Until the template size is known the camera's own aspect ratio is used, which
	makes the box cover the whole frame.
	"""
	cw = float(frame_w)
	ch = float(frame_h)
	if cw <= 0.0 or ch <= 0.0:
		raise ValueError(f"frame size must be positive, got {frame_w}x{frame_h}")
	a_c = cw / ch
	a_t = template_size.aspect if template_size and template_size.width > 0 and template_size.height > 0 else a_c

	if a_t < a_c:
		box_h = ch
		box_w = ch * a_t
		return LetterboxBox(frame_w=cw, frame_h=ch, x=(cw - box_w) / 2.0, y=0.0, w=box_w, h=box_h)
	box_w = cw
	box_h = cw / a_t
	return LetterboxBox(frame_w=cw, frame_h=ch, x=0.0, y=(ch - box_h) / 2.0, w=box_w, h=box_h)
