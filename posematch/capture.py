from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from posematch.config import CaptureProfile
from posematch.errors import CaptureBusy

logger = logging.getLogger(__name__)

CAPTURE_AUTO = "auto"
CAPTURE_MANUAL = "manual"
COUNTDOWN_STEP_MS = 1000.0


class CaptureState(str, Enum):
	IDLE = "idle"
	HOLDING = "holding"
	COUNTDOWN = "countdown"
	CAPTURING = "capturing"
	CONFIRMING = "confirming"


@dataclass
class CapturedArtifact:
	image_jpeg: bytes
	pose_name: str
	score: int
	capture_type: str
	created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

	def data_url(self) -> str:
		return "data:image/jpeg;base64," + base64.b64encode(self.image_jpeg).decode("ascii")

	def summary(self) -> Dict[str, Any]:
		return {
			"pose_name": self.pose_name,
			"score": int(self.score),
			"capture_type": self.capture_type,
			"created_at": self.created_at.isoformat(),
			"bytes": len(self.image_jpeg),
		}


@dataclass
class CaptureSessionState:
	"""Ephemeral per-attempt state; cleared on retry, back and after confirm."""

	hold_start_ms: Optional[float] = None
	countdown: Optional[int] = None
	countdown_tick_ms: Optional[float] = None
	capturing: bool = False
	saving: bool = False
	staged: Optional[CapturedArtifact] = None


def _now_ms() -> float:
	return time.monotonic() * 1000.0


class AutoCaptureMachine:
	"""
	Sustained-match timer -> countdown -> capture -> confirm/discard.

	The machine is driven from the session loop:
	  - update(score, now_ms) on every scoring tick
	  - tick(now_ms) on every loop iteration to advance the countdown
	The countdown is plain state compared against the clock, so cancelling it
	(score dip, toggle off, navigation) cannot leave a timer behind.

	`render_still` returns the JPEG for the current frame (letterbox crop,
	mirrored per profile) or None when no frame is available yet.
	"""

	def __init__(
		self,
		profile: Optional[CaptureProfile] = None,
		render_still: Optional[Callable[[], Optional[bytes]]] = None,
		clock: Optional[Callable[[], float]] = None,
		logger_fn: Optional[Callable[[str], None]] = None,
	) -> None:
		self.profile = profile or CaptureProfile()
		self._render_still = render_still or (lambda: None)
		self._clock = clock or _now_ms
		self.log: Callable[[str], None] = logger_fn or (lambda _msg: None)

		self.enabled: bool = bool(self.profile.auto_capture_enabled)
		self.pose_name: str = "Custom Pose"
		self.last_score: int = 0
		self.session = CaptureSessionState()

	@property
	def state(self) -> CaptureState:
		s = self.session
		if s.staged is not None:
			return CaptureState.CONFIRMING
		if s.capturing:
			return CaptureState.CAPTURING
		if s.countdown is not None:
			return CaptureState.COUNTDOWN
		if s.hold_start_ms is not None:
			return CaptureState.HOLDING
		return CaptureState.IDLE

	@property
	def in_flight(self) -> bool:
		s = self.session
		return bool(s.capturing or s.saving or s.staged is not None)

	def set_renderer(self, render_still: Callable[[], Optional[bytes]]) -> None:
		self._render_still = render_still

	def set_enabled(self, enabled: bool) -> None:
		self.enabled = bool(enabled)
		if not self.enabled:
			self.clear_pending()

	def clear_pending(self) -> None:
		self.session.hold_start_ms = None
		self.cancel_countdown()

	def cancel_countdown(self) -> None:
		self.session.countdown = None
		self.session.countdown_tick_ms = None

	def update(self, score: int, now_ms: Optional[float] = None) -> CaptureState:
		"""Feed the latest smoothed score."""
		now = self._clock() if now_ms is None else float(now_ms)
		self.last_score = int(score)
		if self.in_flight:
			return self.state
		if not self.enabled:
			self.clear_pending()
			return self.state

		s = self.session
		if score >= self.profile.success_threshold:
			if s.hold_start_ms is None:
				s.hold_start_ms = now
			elapsed = now - s.hold_start_ms
			if elapsed >= self.profile.hold_millis and s.countdown is None:
				s.countdown = int(self.profile.countdown_seconds)
				s.countdown_tick_ms = now
				self.log(f"[Capture] Held {elapsed / 1000.0:.1f}s at >= {self.profile.success_threshold}; countdown started")
		else:
			# Any dip restarts the hold from zero.
			if s.hold_start_ms is not None or s.countdown is not None:
				self.clear_pending()
		return self.state

	def tick(self, now_ms: Optional[float] = None) -> Optional[CapturedArtifact]:
		"""Advance the countdown; returns the staged artifact when it fires."""
		now = self._clock() if now_ms is None else float(now_ms)
		s = self.session
		if s.countdown is None or s.countdown_tick_ms is None:
			return None
		while s.countdown is not None and now - s.countdown_tick_ms >= COUNTDOWN_STEP_MS:
			s.countdown_tick_ms += COUNTDOWN_STEP_MS
			if s.countdown <= 1:
				self.cancel_countdown()
				return self.capture(CAPTURE_AUTO)
			s.countdown -= 1
		return None

	def capture(self, capture_type: str = CAPTURE_MANUAL) -> Optional[CapturedArtifact]:
		"""
		Render and stage a still. No-op while another capture is capturing or
		awaiting confirmation. Manual capture skips hold and countdown.
		"""
		if capture_type not in (CAPTURE_AUTO, CAPTURE_MANUAL):
			raise ValueError(f"unknown capture type: {capture_type!r}")
		if self.in_flight:
			return None
		s = self.session
		s.capturing = True
		try:
			image = self._render_still()
		except Exception:
			s.capturing = False
			raise
		if image is None:
			# No frame yet; stay where we were.
			s.capturing = False
			return None

		self.clear_pending()
		s.staged = CapturedArtifact(
			image_jpeg=image,
			pose_name=self.pose_name,
			score=int(self.last_score),
			capture_type=capture_type,
		)
		self.log(f"[Capture] {capture_type} capture staged ({self.last_score}% {self.pose_name})")
		return s.staged

	async def confirm(self, persist: Callable[[CapturedArtifact], Awaitable[Any]]) -> Optional[Any]:
		"""
		Hand the staged artifact to persistence, then return to IDLE.

		Save failures are logged and swallowed so the user is never stuck in the
		confirmation step; the artifact is not retried.

		The machine stays in CONFIRMING until `persist` resolves; reset(),
		retry() and new captures are refused meanwhile.
		"""
		s = self.session
		artifact = s.staged
		if artifact is None or s.saving:
			return None
		s.saving = True
		result = None
		try:
			result = await persist(artifact)
		except Exception as e:
			logger.warning("[Capture] save failed: %r", e)
			self.log(f"[Capture] Save failed: {e}")
		finally:
			s.saving = False
			if self.session is s:
				self.reset()
		return result

	@property
	def saving(self) -> bool:
		return bool(self.session.saving)

	def retry(self) -> None:
		"""Discard the staged still, nothing is persisted."""
		if self.session.staged is not None and not self.session.saving:
			self.log("[Capture] Capture discarded")
		self.reset()

	def reset(self) -> None:
		"""Back to IDLE. Raises CaptureBusy while a confirmed photo is being saved."""
		if self.session.saving:
			raise CaptureBusy("A photo is still being saved")
		self.session = CaptureSessionState()
		self.last_score = 0

	def snapshot(self) -> Dict[str, Any]:
		s = self.session
		holding_ms = None
		if s.hold_start_ms is not None:
			holding_ms = max(0.0, self._clock() - s.hold_start_ms)
		return {
			"state": self.state.value,
			"enabled": bool(self.enabled),
			"countdown": s.countdown,
			"holding_ms": holding_ms,
			"threshold": int(self.profile.success_threshold),
			"staged": s.staged.summary() if s.staged is not None else None,
		}
