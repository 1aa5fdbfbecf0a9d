from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


# MediaPipe Pose landmark numbering (subset used by the matcher and renderer).
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ELBOW = 13
RIGHT_ELBOW = 14
LEFT_WRIST = 15
RIGHT_WRIST = 16
LEFT_HIP = 23
RIGHT_HIP = 24
LEFT_KNEE = 25
RIGHT_KNEE = 26
LEFT_ANKLE = 27
RIGHT_ANKLE = 28

NUM_LANDMARKS = 33

# Limb segments drawn for the ghost and live skeletons.
SKELETON_EDGES: Tuple[Tuple[int, int], ...] = (
	(LEFT_SHOULDER, RIGHT_SHOULDER),
	(LEFT_SHOULDER, LEFT_ELBOW),
	(LEFT_ELBOW, LEFT_WRIST),
	(RIGHT_SHOULDER, RIGHT_ELBOW),
	(RIGHT_ELBOW, RIGHT_WRIST),
	(LEFT_HIP, RIGHT_HIP),
	(LEFT_HIP, LEFT_KNEE),
	(LEFT_KNEE, LEFT_ANKLE),
	(RIGHT_HIP, RIGHT_KNEE),
	(RIGHT_KNEE, RIGHT_ANKLE),
)


@dataclass(frozen=True)
class Landmark:
	"""
	A single body landmark, normalized to the source image.

	x, y are in [0, 1] relative to the image/frame the detector saw.
	visibility is detector confidence in [0, 1]; None means "not reported".
	"""

	x: float
	y: float
	z: Optional[float] = None
	visibility: Optional[float] = None

	def to_dict(self) -> dict:
		return {"x": self.x, "y": self.y, "z": self.z, "visibility": self.visibility}


# Ordered by landmark index; None (or empty) means no person was found.
Skeleton = Sequence[Landmark]


@dataclass(frozen=True)
class ImageSize:
	width: int
	height: int

	@property
	def aspect(self) -> float:
		return float(self.width) / float(self.height)

	def to_dict(self) -> dict:
		return {"width": int(self.width), "height": int(self.height)}


def has_skeleton(skeleton: Optional[Skeleton]) -> bool:
	return bool(skeleton)


def landmark_at(skeleton: Optional[Skeleton], idx: int) -> Optional[Landmark]:
	if not skeleton or idx < 0 or idx >= len(skeleton):
		return None
	return skeleton[idx]


def skeleton_to_list(skeleton: Optional[Skeleton]) -> Optional[list]:
	if not skeleton:
		return None
	return [lm.to_dict() for lm in skeleton]
