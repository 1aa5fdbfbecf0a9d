"""
Single detector slot shared by template acquisition and live frames.

The detector is not reentrant and exposes one result path for both uses. Every
request is tagged with a DetectionTicket (token, purpose, generation) and the
result is routed by that ticket on delivery:

  - template results only ever resolve the template request that issued them
  - live results only ever reach the live sink
  - a template request bumps the generation, so live results still in flight
    from before the switch are discarded instead of being applied late
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from posematch.errors import DetectorInitFailed, PoseMatchError
from posematch.pose.base import PoseProvider
from posematch.pose.types import Skeleton

logger = logging.getLogger(__name__)

PURPOSE_TEMPLATE = "template"
PURPOSE_LIVE = "live"


class DetectionSuperseded(PoseMatchError):
	"""A template request was invalidated (newer request, back, reset) before its result arrived."""


@dataclass(frozen=True)
class DetectionTicket:
	token: int
	purpose: str
	generation: int


class DetectorChannel:
	def __init__(
		self,
		provider_factory: Callable[[], PoseProvider],
		live_sink: Optional[Callable[[Optional[Skeleton]], None]] = None,
	) -> None:
		self._provider_factory = provider_factory
		self._provider: Optional[PoseProvider] = None
		self._live_sink = live_sink

		self._tokens = itertools.count(1)
		self._generation = 0
		self._slot = asyncio.Lock()
		self._template_pending = 0
		self._template_waiters: Dict[int, asyncio.Future] = {}
		self._live_outstanding: Optional[DetectionTicket] = None
		self._live_task: Optional[asyncio.Task] = None
		self._last_error: Optional[str] = None

		self.stats: Dict[str, int] = {
			"live_submitted": 0,
			"live_dropped": 0,
			"live_delivered": 0,
			"template_delivered": 0,
			"stale_discarded": 0,
		}

	@property
	def ready(self) -> bool:
		return self._provider is not None

	@property
	def generation(self) -> int:
		return self._generation

	@property
	def live_paused(self) -> bool:
		return self._template_pending > 0

	def set_live_sink(self, sink: Optional[Callable[[Optional[Skeleton]], None]]) -> None:
		self._live_sink = sink

	async def start(self) -> None:
		"""Initialise the provider off the event loop (model load can take seconds)."""
		if self._provider is not None:
			return
		loop = asyncio.get_running_loop()
		try:
			self._provider = await loop.run_in_executor(None, self._provider_factory)
			self._last_error = None
		except DetectorInitFailed as e:
			self._last_error = str(e)
			raise
		except Exception as e:
			self._last_error = repr(e)
			raise DetectorInitFailed(f"Detector init failed: {e!r}") from e
		logger.info("[Detector] ready (%s)", self._provider.name())

	def close(self) -> None:
		self.invalidate()
		if self._live_task is not None and not self._live_task.done():
			self._live_task.cancel()
		if self._provider is not None:
			try:
				self._provider.close()
			except Exception as e:
				logger.warning("[Detector] close failed: %r", e)
			self._provider = None

	def invalidate(self) -> None:
		"""Discard every result still in flight (navigation, session reset)."""
		self._generation += 1

	def _issue(self, purpose: str) -> DetectionTicket:
		return DetectionTicket(token=next(self._tokens), purpose=purpose, generation=self._generation)

	async def _infer(self, rgb: Any) -> Optional[Skeleton]:
		if self._provider is None:
			raise DetectorInitFailed("Detector not ready")
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, self._provider.detect, rgb)

	def deliver(self, ticket: DetectionTicket, skeleton: Optional[Skeleton]) -> bool:
		"""
		Route one detector result by its ticket. Returns False when the result
		was discarded (stale generation or nobody waiting for that token).
		"""
		if ticket.generation != self._generation:
			self.stats["stale_discarded"] += 1
			logger.debug("[Detector] discarded stale %s result (token=%d)", ticket.purpose, ticket.token)
			waiter = self._template_waiters.get(ticket.token) if ticket.purpose == PURPOSE_TEMPLATE else None
			if waiter is not None and not waiter.done():
				waiter.set_exception(DetectionSuperseded("Template request was superseded"))
			return False

		if ticket.purpose == PURPOSE_TEMPLATE:
			waiter = self._template_waiters.get(ticket.token)
			if waiter is None or waiter.done():
				return False
			waiter.set_result(skeleton)
			self.stats["template_delivered"] += 1
			return True

		if ticket.purpose == PURPOSE_LIVE:
			if self._live_sink is not None:
				self._live_sink(skeleton)
			self.stats["live_delivered"] += 1
			return True

		logger.warning("[Detector] unknown ticket purpose %r", ticket.purpose)
		return False

	async def detect_template(self, rgb: Any) -> Optional[Skeleton]:
		"""
		Run detection for a template image.

		Live submission is paused for the whole call and live results issued
		before it are invalidated. Raises DetectionSuperseded if the request is
		invalidated before its result is delivered.
		"""
		if not self.ready:
			raise DetectorInitFailed("Detector not ready")
		self._generation += 1
		self._template_pending += 1
		ticket: Optional[DetectionTicket] = None
		try:
			async with self._slot:
				ticket = self._issue(PURPOSE_TEMPLATE)
				waiter = asyncio.get_running_loop().create_future()
				self._template_waiters[ticket.token] = waiter
				result = await self._infer(rgb)
				self.deliver(ticket, result)
				return await waiter
		finally:
			self._template_pending -= 1
			if ticket is not None:
				self._template_waiters.pop(ticket.token, None)

	def submit_live(self, rgb: Any) -> Optional[DetectionTicket]:
		"""
		Submit one live frame. Dropped (None) when the detector is not ready,
		a template request is pending, or the previous submission is still
		outstanding; live frames are never queued.
		"""
		if not self.ready or self.live_paused or self._live_outstanding is not None or self._slot.locked():
			self.stats["live_dropped"] += 1
			return None
		ticket = self._issue(PURPOSE_LIVE)
		self._live_outstanding = ticket
		self.stats["live_submitted"] += 1
		self._live_task = asyncio.ensure_future(self._run_live(ticket, rgb))
		return ticket

	async def _run_live(self, ticket: DetectionTicket, rgb: Any) -> None:
		try:
			async with self._slot:
				try:
					result = await self._infer(rgb)
				except DetectorInitFailed:
					return
				except Exception as e:
					logger.warning("[Detector] live inference failed: %r", e)
					return
				self.deliver(ticket, result)
		finally:
			if self._live_outstanding == ticket:
				self._live_outstanding = None

	def get_status(self) -> Dict[str, Any]:
		return {
			"ready": self.ready,
			"provider": self._provider.name() if self._provider is not None else None,
			"generation": self._generation,
			"live_paused": self.live_paused,
			"live_outstanding": self._live_outstanding is not None,
			"error": self._last_error,
			"stats": dict(self.stats),
		}
