import asyncio
import threading

import pytest

from posematch.detector import (
	PURPOSE_LIVE,
	PURPOSE_TEMPLATE,
	DetectionSuperseded,
	DetectionTicket,
	DetectorChannel,
)
from posematch.errors import DetectorInitFailed
from posematch.pose.base import PoseProvider
from tests.conftest import FakeProvider, make_skeleton, shifted

TEMPLATE_SKEL = make_skeleton()
LIVE_SKEL = shifted(make_skeleton(), dx=0.1)


class GatedProvider(PoseProvider):
	"""Blocks on `gates[rgb]` (if present) before answering."""

	def __init__(self, gated=("live",)) -> None:
		self.gates = {key: threading.Event() for key in gated}
		self.calls = []

	def name(self) -> str:
		return "gated"

	def detect(self, rgb):
		self.calls.append(rgb)
		gate = self.gates.get(rgb)
		if gate is not None:
			gate.wait(5)
		return LIVE_SKEL if rgb == "live" else TEMPLATE_SKEL

	def close(self) -> None:
		pass


async def _wait_live(channel: DetectorChannel) -> None:
	task = channel._live_task
	if task is not None:
		await asyncio.wait_for(task, 5)


def test_live_result_in_flight_during_template_request_is_discarded():
	async def scenario():
		provider = GatedProvider()
		received = []
		ch = DetectorChannel(lambda: provider, live_sink=received.append)
		await ch.start()

		assert ch.submit_live("live") is not None
		await asyncio.sleep(0.05)
		template_task = asyncio.ensure_future(ch.detect_template("template"))
		await asyncio.sleep(0.01)
		assert ch.live_paused
		assert ch.submit_live("live") is None

		provider.gates["live"].set()
		result = await asyncio.wait_for(template_task, 5)
		await _wait_live(ch)
		return ch, received, result

	ch, received, result = asyncio.run(scenario())
	assert result == TEMPLATE_SKEL
	assert received == []
	assert ch.stats["stale_discarded"] == 1
	assert ch.stats["template_delivered"] == 1
	assert not ch.live_paused


def test_live_results_reach_sink_after_template_is_done():
	async def scenario():
		provider = GatedProvider(gated=())
		received = []
		ch = DetectorChannel(lambda: provider, live_sink=received.append)
		await ch.start()
		tpl = await ch.detect_template("template")
		assert ch.submit_live("live") is not None
		await _wait_live(ch)
		return tpl, received

	tpl, received = asyncio.run(scenario())
	assert tpl == TEMPLATE_SKEL
	assert received == [LIVE_SKEL]


def test_newer_template_request_supersedes_older_one():
	async def scenario():
		provider = GatedProvider(gated=("first",))
		ch = DetectorChannel(lambda: provider)
		await ch.start()
		first = asyncio.ensure_future(ch.detect_template("first"))
		await asyncio.sleep(0.05)
		second = asyncio.ensure_future(ch.detect_template("second"))
		await asyncio.sleep(0.01)
		provider.gates["first"].set()
		with pytest.raises(DetectionSuperseded):
			await asyncio.wait_for(first, 5)
		return await asyncio.wait_for(second, 5)

	assert asyncio.run(scenario()) == TEMPLATE_SKEL


def test_frames_before_ready_are_dropped():
	ch = DetectorChannel(lambda: FakeProvider())
	assert ch.submit_live("live") is None
	assert ch.stats["live_dropped"] == 1
	with pytest.raises(DetectorInitFailed):
		asyncio.run(ch.detect_template("template"))


def test_live_submission_is_not_reentrant():
	async def scenario():
		ch = DetectorChannel(lambda: FakeProvider())
		await ch.start()
		first = ch.submit_live("a")
		second = ch.submit_live("b")
		await _wait_live(ch)
		third = ch.submit_live("c")
		await _wait_live(ch)
		return ch, first, second, third

	ch, first, second, third = asyncio.run(scenario())
	assert first is not None and third is not None
	assert second is None
	assert ch.stats["live_submitted"] == 2
	assert ch.stats["live_dropped"] == 1


def test_start_failure_is_reported():
	def boom():
		raise RuntimeError("no model")

	ch = DetectorChannel(boom)
	with pytest.raises(DetectorInitFailed):
		asyncio.run(ch.start())
	assert not ch.ready
	assert "no model" in ch.get_status()["error"]


def test_deliver_routes_by_ticket_not_by_mode():
	received = []
	ch = DetectorChannel(lambda: FakeProvider(), live_sink=received.append)

	stale = DetectionTicket(token=1, purpose=PURPOSE_LIVE, generation=ch.generation)
	ch.invalidate()
	assert ch.deliver(stale, LIVE_SKEL) is False

	# A template ticket nobody waits for never leaks into the live sink.
	orphan = DetectionTicket(token=2, purpose=PURPOSE_TEMPLATE, generation=ch.generation)
	assert ch.deliver(orphan, TEMPLATE_SKEL) is False

	live = DetectionTicket(token=3, purpose=PURPOSE_LIVE, generation=ch.generation)
	assert ch.deliver(live, LIVE_SKEL) is True
	assert received == [LIVE_SKEL]


def test_close_releases_provider():
	provider = FakeProvider()
	ch = DetectorChannel(lambda: provider)
	asyncio.run(ch.start())
	ch.close()
	assert provider.closed
	assert not ch.ready
