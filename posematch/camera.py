from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from posematch.config import CameraConfig
from posematch.errors import CameraUnavailable

logger = logging.getLogger(__name__)

FACING_FRONT = "front"
FACING_REAR = "rear"


@dataclass
class CameraFrame:
	"""Latest RGB frame and its host timestamp."""

	rgb: np.ndarray
	t_host: float
	frame_idx: int = 0


def _open_capture(index: int) -> Any:
	return cv2.VideoCapture(index)


class CameraFeed:
	"""
	OpenCV camera owner.

	Responsibilities:
	- Open the device for the requested facing, walking down the resolution
	  ladder until one opens and delivers a frame.
	- Run a capture thread that keeps only the latest RGB frame (thread-safe).
	- Expose zoom / exposure compensation when the device accepts them.
	"""

	def __init__(
		self,
		cfg: Optional[CameraConfig] = None,
		facing: str = FACING_FRONT,
		opener: Optional[Callable[[int], Any]] = None,
	) -> None:
		self._cfg = cfg or CameraConfig()
		self._opener = opener or _open_capture
		self._lock = threading.Lock()
		self._facing = facing if facing in (FACING_FRONT, FACING_REAR) else FACING_FRONT

		self._cap: Any = None
		self._running = False
		self._thread: Optional[threading.Thread] = None
		self._latest: Optional[CameraFrame] = None
		self._frame_idx = 0
		self._size: Optional[Tuple[int, int]] = None
		self._last_error: Optional[str] = None
		self._controls: Dict[str, bool] = {"zoom": False, "exposure_compensation": False}

	@property
	def facing(self) -> str:
		return self._facing

	def is_running(self) -> bool:
		with self._lock:
			return bool(self._running)

	def device_index(self) -> int:
		return int(self._cfg.rear_index if self._facing == FACING_REAR else self._cfg.front_index)

	def _try_resolutions(self, index: int, resolutions: Sequence[Tuple[int, int]]) -> Tuple[Any, np.ndarray]:
		errors = []
		for w, h in resolutions:
			cap = self._opener(index)
			if cap is None:
				errors.append(f"{w}x{h}: device {index} did not open")
				continue
			if not cap.isOpened():
				errors.append(f"{w}x{h}: device {index} did not open")
				cap.release()
				continue
			cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(w))
			cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(h))
			ok, frame = cap.read()
			if not ok or frame is None:
				errors.append(f"{w}x{h}: no frame")
				cap.release()
				continue
			logger.info("[Camera] device %d opened at %dx%d (requested %dx%d)", index, frame.shape[1], frame.shape[0], w, h)
			return cap, frame
		raise CameraUnavailable("Camera unavailable: " + "; ".join(errors))

	def start(self, facing: Optional[str] = None) -> None:
		"""Open the camera and start the capture thread. Raises CameraUnavailable."""
		if facing is not None and facing != self._facing:
			self.stop()
			self._facing = facing if facing in (FACING_FRONT, FACING_REAR) else FACING_FRONT
		with self._lock:
			if self._running:
				return

		try:
			cap, first = self._try_resolutions(self.device_index(), self._cfg.resolutions)
		except CameraUnavailable as e:
			with self._lock:
				self._last_error = str(e)
			logger.warning("[Camera] %s", e)
			raise

		with self._lock:
			self._cap = cap
			self._running = True
			self._last_error = None
			self._size = (int(first.shape[1]), int(first.shape[0]))
			self._frame_idx = 0
			self._publish_locked(first)
			self._controls = {
				"zoom": self._probe_control(cv2.CAP_PROP_ZOOM),
				"exposure_compensation": self._probe_control(cv2.CAP_PROP_EXPOSURE),
			}

		t = threading.Thread(target=self._run_capture_loop, name="camera-capture", daemon=True)
		self._thread = t
		t.start()

	def _probe_control(self, prop: int) -> bool:
		# Writing the current value back tells us whether the backend accepts the property.
		try:
			cur = self._cap.get(prop)
			if cur is None or cur < 0:
				return False
			return bool(self._cap.set(prop, cur))
		except cv2.error:
			return False

	def _publish_locked(self, bgr: np.ndarray) -> None:
		self._frame_idx += 1
		rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
		self._latest = CameraFrame(rgb=rgb, t_host=time.time(), frame_idx=self._frame_idx)

	def _run_capture_loop(self) -> None:
		misses = 0
		while True:
			with self._lock:
				if not self._running or self._cap is None:
					return
				cap = self._cap
			ok, frame = cap.read()
			if not ok or frame is None:
				misses += 1
				if misses >= 50:
					with self._lock:
						self._last_error = "Camera stopped delivering frames"
					logger.warning("[Camera] no frames from device %d; stopping", self.device_index())
					self.stop()
					return
				time.sleep(0.02)
				continue
			misses = 0
			with self._lock:
				self._publish_locked(frame)

	def stop(self) -> None:
		with self._lock:
			self._running = False
			cap = self._cap
			self._cap = None
		t = self._thread
		if t is not None and t is not threading.current_thread():
			t.join(timeout=1.0)
		self._thread = None
		if cap is not None:
			cap.release()

	def get_latest(self) -> Optional[CameraFrame]:
		with self._lock:
			return self._latest

	def controls(self) -> Dict[str, bool]:
		with self._lock:
			return dict(self._controls)

	def _set_control(self, name: str, prop: int, value: float) -> bool:
		with self._lock:
			if self._cap is None or not self._controls.get(name):
				return False
			return bool(self._cap.set(prop, float(value)))

	def set_zoom(self, value: float) -> bool:
		return self._set_control("zoom", cv2.CAP_PROP_ZOOM, value)

	def set_exposure_compensation(self, value: float) -> bool:
		return self._set_control("exposure_compensation", cv2.CAP_PROP_EXPOSURE, value)

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {
				"running": bool(self._running),
				"facing": self._facing,
				"device_index": self.device_index(),
				"has_frame": self._latest is not None,
				"t_last_frame": self._latest.t_host if self._latest else None,
				"frame_idx": self._latest.frame_idx if self._latest else None,
				"size": list(self._size) if self._size else None,
				"controls": dict(self._controls),
				"error": self._last_error,
			}
