"""Built-in reference poses offered on the browse page."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from posematch.config import get_config


@dataclass(frozen=True)
class PoseTemplate:
	id: str
	name: str
	category: str
	image_file: str
	difficulty: str  # easy / medium / hard

	def image_path(self, presets_dir: Optional[str | Path] = None) -> Path:
		base = Path(presets_dir) if presets_dir else Path(get_config().template.presets_dir)
		return base / self.image_file

	def to_dict(self) -> Dict[str, Any]:
		d = asdict(self)
		d["image_url"] = f"/poses/{self.image_file}"
		return d


POSE_TEMPLATES: List[PoseTemplate] = [
	PoseTemplate("thumbs-up", "Thumbs Up", "Casual", "thumbs-up.jpg", "easy"),
	PoseTemplate("casual-walk", "Casual Walk", "Casual", "casual-walk.jpg", "easy"),
	PoseTemplate("street-photo", "Street Shot", "Confident", "street-photo.jpg", "medium"),
	PoseTemplate("lean-wall", "Wall Lean", "Relaxed", "lean-wall.jpg", "easy"),
	PoseTemplate("classy-stand", "Classy Stand", "Professional", "classy-stand.jpg", "medium"),
	PoseTemplate("fashion-pose", "Fashion Pose", "Confident", "fashion-pose.jpg", "medium"),
	PoseTemplate("model-pose", "Model Pose", "Fun", "model-pose.jpg", "hard"),
	PoseTemplate("pose-ideas", "Classic Pose", "Casual", "pose-ideas.jpg", "easy"),
	PoseTemplate("street-style", "Street Style", "Confident", "street-style.jpg", "medium"),
	PoseTemplate("casual-sit", "Casual Sit", "Relaxed", "casual-sit.jpg", "easy"),
	PoseTemplate("summer-pose", "Summer Vibes", "Fun", "summer-pose.jpg", "easy"),
	PoseTemplate("night-vibe", "Night Out", "Professional", "night-vibe.jpg", "medium"),
]

_BY_ID: Dict[str, PoseTemplate] = {p.id: p for p in POSE_TEMPLATES}


def get_pose_by_id(pose_id: str) -> Optional[PoseTemplate]:
	return _BY_ID.get((pose_id or "").strip())


def list_poses(category: Optional[str] = None) -> List[PoseTemplate]:
	if not category:
		return list(POSE_TEMPLATES)
	want = category.strip().lower()
	return [p for p in POSE_TEMPLATES if p.category.lower() == want]


def list_categories() -> List[str]:
	seen: List[str] = []
	for p in POSE_TEMPLATES:
		if p.category not in seen:
			seen.append(p.category)
	return seen
