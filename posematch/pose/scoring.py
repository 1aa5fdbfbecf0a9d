from __future__ import annotations

import math
from typing import Optional, Tuple

from posematch.pose.letterbox import compute_letterbox
from posematch.pose.types import ImageSize, Skeleton

# Shoulders, elbows, wrists, hips, knees. Ankles and the face are left out:
# they are the first to drop out of frame and the least stable under jitter.
KEY_LANDMARK_INDICES: Tuple[int, ...] = (11, 12, 13, 14, 15, 16, 23, 24, 25, 26)

MIN_VISIBLE_LANDMARKS = 5
VISIBILITY_THRESHOLD = 0.5
# Mean normalized distance that maps to a score of 0.
MAX_EXPECTED_DISTANCE = 0.42
SMOOTHING_ALPHA = 0.2

# Detector input size for live frames.
DEFAULT_FRAME_SIZE: Tuple[int, int] = (640, 480)


def _vis(v: Optional[float]) -> float:
	return 1.0 if v is None else float(v)


def compute_match_score(
	template: Optional[Skeleton],
	live: Optional[Skeleton],
	template_size: Optional[ImageSize],
	frame_size: Tuple[int, int] = DEFAULT_FRAME_SIZE,
	*,
	min_visible: int = MIN_VISIBLE_LANDMARKS,
	visibility_threshold: float = VISIBILITY_THRESHOLD,
	max_distance: float = MAX_EXPECTED_DISTANCE,
) -> int:
	"""
	Raw 0-100 similarity between a template skeleton and a live skeleton.

	The live points are projected into the letterbox box so both skeletons are
	expressed relative to the same aspect ratio. Returns 0 when either skeleton
	is missing or fewer than `min_visible` key points are visible on both sides.
	"""
	if not template or not live:
		return 0
	box = compute_letterbox(frame_size[0], frame_size[1], template_size)

	total = 0.0
	count = 0
	for i in KEY_LANDMARK_INDICES:
		if i >= len(template) or i >= len(live):
			continue
		t = template[i]
		lv = live[i]
		if t is None or lv is None:
			continue
		if _vis(t.visibility) < visibility_threshold or _vis(lv.visibility) < visibility_threshold:
			continue
		lx, ly = box.to_box(lv.x, lv.y)
		total += math.hypot(t.x - lx, t.y - ly)
		count += 1

	if count < min_visible:
		return 0
	normalized = min(1.0, max(0.0, (total / count) / max_distance))
	score = int(round(100.0 * (1.0 - normalized)))
	return min(100, max(0, score))


class ScoreSmoother:
	"""
	Exponential moving average over raw scores.

	Lives for one camera session; reset on retry, back and after a capture.
	The accumulator keeps full precision, only the returned value is rounded.
	"""

	def __init__(self, alpha: float = SMOOTHING_ALPHA) -> None:
		if not (0.0 < alpha <= 1.0):
			raise ValueError(f"alpha must be in (0, 1], got {alpha}")
		self.alpha = float(alpha)
		self._value = 0.0

	@property
	def value(self) -> float:
		return self._value

	def push(self, raw: float) -> int:
		self._value = self.alpha * float(raw) + (1.0 - self.alpha) * self._value
		return int(round(self._value))

	def reset(self) -> None:
		self._value = 0.0
