from __future__ import annotations

import logging
from typing import Optional

from posematch.config import DetectorConfig
from posematch.errors import DetectorInitFailed
from posematch.pose.base import PoseProvider
from posematch.pose.types import Landmark, Skeleton

logger = logging.getLogger(__name__)


class MediaPipePoseProvider(PoseProvider):
	"""
	MediaPipe Pose provider returning the full 33-point landmark list.

	Notes:
	- MediaPipe already reports normalized coordinates; they are passed through
	  unchanged so template and live skeletons share one convention.
	- One instance serves both template images and live frames.
	"""

	def __init__(self, cfg: Optional[DetectorConfig] = None) -> None:
		cfg = cfg or DetectorConfig()
		try:
			import mediapipe as mp  # type: ignore
		except ImportError as e:
			raise DetectorInitFailed("MediaPipe is not installed. Install it with: pip install mediapipe") from e

		try:
			self._pose = mp.solutions.pose.Pose(
				static_image_mode=False,
				model_complexity=int(cfg.model_complexity),
				enable_segmentation=False,
				smooth_landmarks=bool(cfg.smooth_landmarks),
				min_detection_confidence=float(cfg.min_detection_confidence),
				min_tracking_confidence=float(cfg.min_tracking_confidence),
			)
		except Exception as e:
			raise DetectorInitFailed(f"MediaPipe Pose init failed: {e!r}") from e
		logger.info("[Detector] MediaPipe Pose ready (model_complexity=%d)", int(cfg.model_complexity))

	def name(self) -> str:
		return "mediapipe_pose"

	def detect(self, rgb) -> Optional[Skeleton]:
		res = self._pose.process(rgb)
		if not res or not getattr(res, "pose_landmarks", None):
			return None
		out = []
		for p in res.pose_landmarks.landmark:
			vis = getattr(p, "visibility", None)
			out.append(
				Landmark(
					x=float(p.x),
					y=float(p.y),
					z=float(p.z) if getattr(p, "z", None) is not None else None,
					visibility=float(vis) if vis is not None else None,
				)
			)
		return tuple(out) if out else None

	def close(self) -> None:
		if self._pose is not None:
			self._pose.close()
			self._pose = None
