from __future__ import annotations

import math
from typing import Optional

from posematch.pose.types import LEFT_SHOULDER, RIGHT_SHOULDER, Skeleton, landmark_at

GUIDANCE_MAX_SCORE = 50
CENTER_LEFT = 0.38
CENTER_RIGHT = 0.62
# Shoulder-to-shoulder distance is the proxy for distance to the camera.
SHOULDER_WIDTH_TOO_BIG = 0.42
SHOULDER_WIDTH_TOO_SMALL = 0.16


def guidance_prompt(live: Optional[Skeleton]) -> Optional[str]:
	"""
	Position/distance hint derived from the live skeleton alone.

	Centering is checked before distance; the first match wins.
	"""
	ls = landmark_at(live, LEFT_SHOULDER)
	rs = landmark_at(live, RIGHT_SHOULDER)
	if ls is None or rs is None:
		return None
	center_x = (ls.x + rs.x) / 2.0
	shoulder_width = math.hypot(rs.x - ls.x, rs.y - ls.y)
	if center_x < CENTER_LEFT:
		return "Move left"
	if center_x > CENTER_RIGHT:
		return "Move right"
	if shoulder_width > SHOULDER_WIDTH_TOO_BIG:
		return "Back up"
	if shoulder_width < SHOULDER_WIDTH_TOO_SMALL:
		return "Come closer"
	return None


def guidance_for_score(live: Optional[Skeleton], score: int, max_score: int = GUIDANCE_MAX_SCORE) -> Optional[str]:
	"""Hint only while the match is poor; fine alignment is carried by the score."""
	if not live or score >= max_score:
		return None
	return guidance_prompt(live)
