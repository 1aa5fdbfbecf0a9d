from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from posematch.camera import CameraFeed, CameraFrame
from posematch.capture import CAPTURE_MANUAL, AutoCaptureMachine, CapturedArtifact, CaptureState
from posematch.config import AppConfig, CaptureProfile
from posematch.detector import DetectorChannel
from posematch.errors import CameraUnavailable, PoseMatchError
from posematch.pose.guidance import guidance_for_score
from posematch.pose.letterbox import LetterboxBox, compute_letterbox
from posematch.pose.scoring import DEFAULT_FRAME_SIZE, ScoreSmoother, compute_match_score
from posematch.pose.types import Skeleton, skeleton_to_list
from posematch.render import compose_preview, encode_jpeg, render_still
from posematch.template import SOURCE_PRESET, SOURCE_SAVED, SOURCE_UPLOAD, TemplateAcquirer, TemplateResult

logger = logging.getLogger(__name__)

STEP_UPLOAD = "upload"
STEP_CAMERA = "camera"


class MatchSession:
	"""
	One user's matching session: template slot, live slot, score smoothing,
	guidance and the auto-capture machine.

	Everything here runs on the event loop. The camera thread only publishes
	frames; detector results come back through DetectorChannel.deliver().
	"""

	def __init__(
		self,
		cfg: AppConfig,
		channel: DetectorChannel,
		camera: Optional[CameraFeed] = None,
		profile: Optional[CaptureProfile] = None,
		log_to_clients: Optional[Callable[[str], None]] = None,
		clock: Optional[Callable[[], float]] = None,
	) -> None:
		self.cfg = cfg
		self.profile = profile or cfg.capture
		self.channel = channel
		self.channel.set_live_sink(self.on_live_result)
		self.camera = camera
		self.log: Callable[[str], None] = log_to_clients or (lambda _msg: None)
		self._clock = clock or (lambda: time.monotonic() * 1000.0)

		self.acquirer = TemplateAcquirer(channel, cfg.template.max_edge, cfg.template.presets_dir)
		self.capture = AutoCaptureMachine(
			profile=self.profile,
			render_still=self._render_still,
			clock=self._clock,
			logger_fn=self.log,
		)
		self.smoother = ScoreSmoother(cfg.scoring.smoothing_alpha)

		self.step: str = STEP_UPLOAD
		self.template: Optional[TemplateResult] = None
		self.live: Optional[Skeleton] = None
		self.raw_score: int = 0
		self.score: int = 0
		self.guidance: Optional[str] = None
		self.extracting: bool = False
		self.camera_error: Optional[str] = None

		self._latest_frame: Optional[CameraFrame] = None
		self._latest_jpeg: Optional[bytes] = None
		self._latest_jpeg_t: Optional[float] = None
		self._task: Optional[asyncio.Task] = None
		self.on_status: Optional[Callable[[Dict[str, Any]], None]] = None

	# --- geometry ---

	def frame_size(self) -> Tuple[int, int]:
		f = self._latest_frame
		if f is None:
			return DEFAULT_FRAME_SIZE
		return int(f.rgb.shape[1]), int(f.rgb.shape[0])

	def box(self) -> LetterboxBox:
		w, h = self.frame_size()
		return compute_letterbox(w, h, self.template.image_size if self.template else None)

	# --- template ---

	async def _acquire(self, acquire: Callable[[], Awaitable[TemplateResult]]) -> TemplateResult:
		self.reset()
		self.step = STEP_UPLOAD
		self.template = None
		self.extracting = True
		try:
			result = await acquire()
		finally:
			self.extracting = False
		self.template = result
		self.capture.pose_name = result.pose_name
		self.log(f"[Template] '{result.pose_name}' ready ({result.image_size.width}x{result.image_size.height})")
		return result

	async def load_upload(self, data_url: str, pose_name: Optional[str] = None) -> TemplateResult:
		return await self._acquire(lambda: self.acquirer.from_data_url(data_url, pose_name=pose_name or "Custom Pose"))

	async def load_preset(self, pose_id: str) -> TemplateResult:
		result = await self._acquire(lambda: self.acquirer.from_preset(pose_id))
		# Presets go straight to matching.
		self.step = STEP_CAMERA
		return result

	async def load_saved(self, saved_id: str, fetch: Callable[[str], Awaitable[Optional[Dict[str, Any]]]]) -> TemplateResult:
		result = await self._acquire(lambda: self.acquirer.from_saved(saved_id, fetch))
		self.step = STEP_CAMERA
		return result

	async def acquire_template(
		self,
		source: str,
		value: str,
		pose_name: Optional[str] = None,
		fetch: Optional[Callable[[str], Awaitable[Optional[Dict[str, Any]]]]] = None,
	) -> TemplateResult:
		"""Dispatch by source: upload (data URL), preset (pose id) or saved (photo id + fetch)."""
		if source == SOURCE_UPLOAD:
			return await self.load_upload(value, pose_name)
		if source == SOURCE_PRESET:
			return await self.load_preset(value)
		if source == SOURCE_SAVED:
			if fetch is None:
				raise ValueError("saved templates need a fetch callable")
			return await self.load_saved(value, fetch)
		raise ValueError(f"unknown template source: {source!r}")

	def start_matching(self) -> None:
		if self.template is None:
			raise PoseMatchError("Pick a template pose first")
		self.step = STEP_CAMERA

	# --- scoring ---

	def on_live_result(self, skeleton: Optional[Skeleton]) -> None:
		self.live = tuple(skeleton) if skeleton else None
		self.score_tick()

	def score_tick(self, now_ms: Optional[float] = None) -> int:
		sc = self.cfg.scoring
		if self.template is None:
			raw = 0
		else:
			raw = compute_match_score(
				self.template.skeleton,
				self.live,
				self.template.image_size,
				self.frame_size(),
				min_visible=sc.min_visible_landmarks,
				visibility_threshold=sc.visibility_threshold,
				max_distance=sc.max_distance,
			)
		self.raw_score = raw
		self.score = self.smoother.push(raw)
		self.guidance = guidance_for_score(self.live, self.score, sc.guidance_max_score)
		if self.step == STEP_CAMERA and self.template is not None:
			self.capture.update(self.score, now_ms)
		return self.score

	def process_frame(self, frame: CameraFrame, now_ms: Optional[float] = None) -> None:
		"""One camera frame: submit to the detector, advance the countdown, refresh the preview."""
		self._latest_frame = frame
		if self.step == STEP_CAMERA and self.template is not None:
			self.channel.submit_live(frame.rgb)
		self.capture.tick(now_ms)
		self._refresh_preview(frame)

	def _refresh_preview(self, frame: CameraFrame) -> None:
		box = self.box()
		preview = compose_preview(
			frame.rgb,
			box,
			self.template.skeleton if self.template else None,
			self.live if self.step == STEP_CAMERA else None,
			aligned=self.score >= self.profile.success_threshold,
			mirror=self.profile.mirror_output,
		)
		self._latest_jpeg = encode_jpeg(preview, quality=80)
		self._latest_jpeg_t = frame.t_host

	def get_latest_jpeg(self) -> Tuple[Optional[bytes], Optional[float]]:
		return self._latest_jpeg, self._latest_jpeg_t

	# --- capture ---

	def _render_still(self) -> Optional[bytes]:
		frame = self._latest_frame
		if frame is None:
			return None
		return render_still(frame.rgb, self.box(), mirror=self.profile.mirror_output, quality=self.profile.jpeg_quality)

	def manual_capture(self) -> Optional[CapturedArtifact]:
		if self.step != STEP_CAMERA:
			return None
		return self.capture.capture(CAPTURE_MANUAL)

	async def confirm(self, persist: Callable[[CapturedArtifact], Awaitable[Any]]) -> Optional[Any]:
		result = await self.capture.confirm(persist)
		self._reset_scoring()
		return result

	def retry(self) -> None:
		self.capture.retry()
		self._reset_scoring()

	def back(self) -> None:
		"""Leave the camera step; in-flight live results are discarded."""
		self.reset()
		self.channel.invalidate()
		self.step = STEP_UPLOAD

	def reset(self) -> None:
		self.capture.reset()
		self._reset_scoring()

	def _reset_scoring(self) -> None:
		self.smoother.reset()
		self.live = None
		self.score = 0
		self.raw_score = 0
		self.guidance = None

	def set_auto_capture(self, enabled: bool) -> None:
		self.capture.set_enabled(enabled)
		self.log(f"[Capture] Auto-capture {'ON' if enabled else 'OFF'}")

	# --- camera loop ---

	async def start_camera(self, facing: Optional[str] = None, fps: Optional[float] = None) -> Dict[str, Any]:
		if self.camera is None:
			raise CameraUnavailable("No camera configured")
		loop = asyncio.get_running_loop()
		try:
			await loop.run_in_executor(None, self.camera.start, facing or self.profile.default_facing)
		except CameraUnavailable as e:
			self.camera_error = str(e)
			self.capture.clear_pending()
			raise
		self.camera_error = None
		if self._task is None or self._task.done():
			self._task = asyncio.create_task(self.run(fps or self.cfg.camera.preview_fps))
		return self.camera.get_status()

	async def stop_camera(self) -> None:
		task = self._task
		self._task = None
		if task is not None and not task.done():
			task.cancel()
			try:
				await task
			except asyncio.CancelledError:
				pass
		self.capture.clear_pending()
		self.live = None
		if self.camera is not None:
			await asyncio.get_running_loop().run_in_executor(None, self.camera.stop)

	async def run(self, fps: float) -> None:
		interval = 1.0 / max(1.0, float(fps))
		last_idx: Optional[int] = None
		last_sig: Optional[tuple] = None
		while True:
			frame = self.camera.get_latest() if self.camera is not None else None
			if frame is not None and frame.frame_idx != last_idx:
				last_idx = frame.frame_idx
				try:
					self.process_frame(frame)
				except Exception as e:
					# Keep the loop alive; a bad frame should not end the session.
					logger.warning("[Session] frame processing failed: %r", e)
			else:
				self.capture.tick()

			if self.camera is not None and not self.camera.is_running():
				self.camera_error = self.camera.get_status().get("error")

			sig = (self.score, self.guidance, self.capture.state, self.capture.session.countdown, self.step)
			if sig != last_sig and self.on_status is not None:
				last_sig = sig
				self.on_status(self.status())
			await asyncio.sleep(interval)

	def status(self) -> Dict[str, Any]:
		return {
			"step": self.step,
			"extracting": self.extracting,
			"template": self.template.to_dict() if self.template else None,
			"has_live": bool(self.live),
			"live": skeleton_to_list(self.live) if self.step == STEP_CAMERA else None,
			"score": int(self.score),
			"raw_score": int(self.raw_score),
			"aligned": self.score >= self.profile.success_threshold,
			"guidance": self.guidance,
			"box": self.box().to_dict(),
			"capture": self.capture.snapshot(),
			"profile": self.profile.name,
			"mirror": self.profile.mirror_output,
			"camera_error": self.camera_error,
		}

	@property
	def confirming(self) -> bool:
		return self.capture.state == CaptureState.CONFIRMING
