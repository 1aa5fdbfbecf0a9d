"""
Frame rendering: annotated preview (ghost + live skeleton) and capture stills.

Frames are RGB numpy arrays (H, W, 3, uint8). Drawing uses OpenCV, JPEG
encoding uses Pillow. Everything is positioned through the LetterboxBox so the
preview, the score and the saved still agree.
"""

from __future__ import annotations

from io import BytesIO
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from posematch.pose.letterbox import LetterboxBox
from posematch.pose.types import LEFT_HIP, LEFT_SHOULDER, RIGHT_HIP, RIGHT_SHOULDER, SKELETON_EDGES, Skeleton

GHOST_COLOR = (255, 255, 255)
GHOST_ALIGNED_COLOR = (200, 200, 230)
LIVE_COLOR = (0, 255, 0)


def encode_jpeg(rgb: np.ndarray, quality: int = 90) -> bytes:
	buf = BytesIO()
	Image.fromarray(np.ascontiguousarray(rgb)).save(buf, format="JPEG", quality=int(quality))
	return buf.getvalue()


def render_still(frame: np.ndarray, box: LetterboxBox, mirror: bool, quality: int = 90) -> bytes:
	"""
	Clean still for the gallery: the letterbox region only, no overlays.
	Mirrored for front/selfie feeds so the photo matches what the user saw.
	"""
	x0, y0, x1, y1 = box.pixel_rect()
	crop = frame[y0:y1, x0:x1]
	if mirror:
		crop = np.fliplr(crop)
	return encode_jpeg(crop, quality=quality)


def _ghost_points(template: Skeleton, box: LetterboxBox) -> dict:
	pts = {}
	for i, lm in enumerate(template):
		if lm is None:
			continue
		fx, fy = box.to_frame(lm.x, lm.y)
		pts[i] = (int(round(fx)), int(round(fy)))
	return pts


def _draw_ghost(canvas: np.ndarray, template: Skeleton, box: LetterboxBox, aligned: bool) -> None:
	pts = _ghost_points(template, box)
	layer = canvas.copy()
	color = GHOST_ALIGNED_COLOR if aligned else GHOST_COLOR
	thickness = max(2, int(round(min(box.w, box.h) * (0.03 if aligned else 0.025))))

	for a, b in SKELETON_EDGES:
		if a in pts and b in pts:
			cv2.line(layer, pts[a], pts[b], color, thickness, cv2.LINE_AA)
	if all(k in pts for k in (LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP)):
		mid_sh = _midpoint(pts[LEFT_SHOULDER], pts[RIGHT_SHOULDER])
		mid_hip = _midpoint(pts[LEFT_HIP], pts[RIGHT_HIP])
		cv2.line(layer, mid_sh, mid_hip, color, thickness, cv2.LINE_AA)
	if LEFT_SHOULDER in pts and RIGHT_SHOULDER in pts:
		# Head: circle above the shoulder midpoint.
		mx, my = _midpoint(pts[LEFT_SHOULDER], pts[RIGHT_SHOULDER])
		radius = max(4, int(round(0.06 * min(box.w, box.h))))
		cv2.circle(layer, (mx, my - int(round(0.12 * box.h))), radius, color, thickness, cv2.LINE_AA)

	alpha = 0.9 if aligned else 0.4
	cv2.addWeighted(layer, alpha, canvas, 1.0 - alpha, 0.0, dst=canvas)


def _draw_live(canvas: np.ndarray, live: Skeleton) -> None:
	h, w = canvas.shape[0], canvas.shape[1]
	pts = {}
	for i, lm in enumerate(live):
		if lm is None:
			continue
		pts[i] = (int(round(lm.x * w)), int(round(lm.y * h)))
	for a, b in SKELETON_EDGES:
		if a in pts and b in pts:
			cv2.line(canvas, pts[a], pts[b], LIVE_COLOR, 2, cv2.LINE_AA)
	for p in pts.values():
		cv2.circle(canvas, p, 3, LIVE_COLOR, -1, cv2.LINE_AA)


def _midpoint(a: Tuple[int, int], b: Tuple[int, int]) -> Tuple[int, int]:
	return ((a[0] + b[0]) // 2, (a[1] + b[1]) // 2)


def compose_preview(
	frame: np.ndarray,
	box: LetterboxBox,
	template: Optional[Skeleton],
	live: Optional[Skeleton],
	aligned: bool = False,
	mirror: bool = False,
) -> np.ndarray:
	"""
	Preview frame: camera image limited to the letterbox, ghost template mapped
	into the box, live skeleton at its frame position. Mirroring is applied last
	so all layers flip together.
	"""
	canvas = np.zeros_like(frame)
	x0, y0, x1, y1 = box.pixel_rect()
	canvas[y0:y1, x0:x1] = frame[y0:y1, x0:x1]
	if template:
		_draw_ghost(canvas, template, box, aligned)
	if live:
		_draw_live(canvas, live)
	if mirror:
		canvas = np.ascontiguousarray(np.fliplr(canvas))
	return canvas
