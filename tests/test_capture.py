import asyncio

import pytest

from posematch.capture import CAPTURE_AUTO, CAPTURE_MANUAL, AutoCaptureMachine, CaptureState
from posematch.config import CaptureProfile
from posematch.errors import CaptureBusy


class Clock:
	def __init__(self) -> None:
		self.now = 0.0

	def __call__(self) -> float:
		return self.now


class Renderer:
	def __init__(self, image=b"\xff\xd8jpeg\xff\xd9") -> None:
		self.image = image
		self.calls = 0

	def __call__(self):
		self.calls += 1
		return self.image


@pytest.fixture
def renderer():
	return Renderer()


@pytest.fixture
def machine(renderer):
	m = AutoCaptureMachine(profile=CaptureProfile(), render_still=renderer, clock=Clock())
	m.pose_name = "Wall Lean"
	return m


def _hold_until_countdown(m, start=0.0):
	m.update(90, start)
	m.update(90, start + 3000)
	assert m.state == CaptureState.COUNTDOWN


def test_hold_shorter_than_threshold_does_not_start_countdown(machine):
	assert machine.update(85, 0) == CaptureState.HOLDING
	assert machine.update(85, 2999) == CaptureState.HOLDING
	assert machine.session.countdown is None


def test_hold_of_exactly_three_seconds_starts_countdown(machine):
	machine.update(85, 0)
	assert machine.update(85, 3000) == CaptureState.COUNTDOWN
	assert machine.session.countdown == 3


def test_dip_restarts_hold_from_zero(machine):
	machine.update(85, 0)
	machine.update(85, 2500)
	assert machine.update(79, 2500) == CaptureState.IDLE
	machine.update(85, 2600)
	assert machine.update(85, 5599) == CaptureState.HOLDING
	assert machine.update(85, 5600) == CaptureState.COUNTDOWN


def test_dip_during_countdown_cancels_it(machine, renderer):
	_hold_until_countdown(machine)
	assert machine.update(50, 3500) == CaptureState.IDLE
	assert machine.tick(10_000) is None
	assert renderer.calls == 0


def test_countdown_fires_one_auto_capture(machine, renderer):
	_hold_until_countdown(machine)
	assert machine.tick(3999) is None
	assert machine.session.countdown == 3
	machine.tick(4000)
	assert machine.session.countdown == 2
	machine.tick(5000)
	assert machine.session.countdown == 1
	artifact = machine.tick(6000)
	assert artifact is not None
	assert artifact.capture_type == CAPTURE_AUTO
	assert artifact.pose_name == "Wall Lean"
	assert artifact.score == 90
	assert machine.state == CaptureState.CONFIRMING
	assert renderer.calls == 1


def test_late_tick_still_captures_once(machine, renderer):
	_hold_until_countdown(machine)
	assert machine.tick(60_000) is not None
	assert machine.tick(120_000) is None
	assert renderer.calls == 1


def test_at_most_one_capture_in_flight(machine, renderer):
	assert machine.capture(CAPTURE_MANUAL) is not None
	assert machine.capture(CAPTURE_MANUAL) is None
	machine.update(99, 0)
	machine.update(99, 10_000)
	assert machine.tick(20_000) is None
	assert machine.state == CaptureState.CONFIRMING
	assert renderer.calls == 1


def test_manual_capture_skips_countdown(machine):
	_hold_until_countdown(machine)
	artifact = machine.capture(CAPTURE_MANUAL)
	assert artifact.capture_type == CAPTURE_MANUAL
	assert machine.session.countdown is None
	assert machine.session.hold_start_ms is None


def test_disabled_never_auto_captures(machine, renderer):
	machine.set_enabled(False)
	machine.update(95, 0)
	machine.update(95, 5000)
	assert machine.state == CaptureState.IDLE
	assert machine.tick(10_000) is None
	assert renderer.calls == 0


def test_disabling_mid_countdown_cancels(machine):
	_hold_until_countdown(machine)
	machine.set_enabled(False)
	assert machine.state == CaptureState.IDLE


def test_no_frame_leaves_machine_idle():
	m = AutoCaptureMachine(render_still=lambda: None, clock=Clock())
	assert m.capture(CAPTURE_MANUAL) is None
	assert m.state == CaptureState.IDLE


def test_unknown_capture_type_rejected(machine):
	with pytest.raises(ValueError):
		machine.capture("burst")


def test_confirm_persists_and_returns_to_idle(machine):
	machine.capture(CAPTURE_MANUAL)
	saved = []

	async def persist(artifact):
		saved.append(artifact)
		return {"id": "abc"}

	assert asyncio.run(machine.confirm(persist)) == {"id": "abc"}
	assert len(saved) == 1
	assert saved[0].data_url().startswith("data:image/jpeg;base64,")
	assert machine.state == CaptureState.IDLE


def test_confirm_swallows_save_failure(machine):
	machine.capture(CAPTURE_MANUAL)
	logged = []
	machine.log = logged.append

	async def persist(artifact):
		raise RuntimeError("db down")

	assert asyncio.run(machine.confirm(persist)) is None
	assert machine.state == CaptureState.IDLE
	assert any("Save failed" in line for line in logged)


def test_confirm_without_staged_photo_is_noop(machine):
	calls = []

	async def persist(artifact):
		calls.append(artifact)

	assert asyncio.run(machine.confirm(persist)) is None
	assert calls == []


def test_pending_save_blocks_retry_and_second_capture(machine, renderer):
	first = machine.capture(CAPTURE_MANUAL)
	saved = []

	async def scenario():
		gate = asyncio.Event()

		async def persist(artifact):
			await gate.wait()
			saved.append(artifact)
			return {"id": "g1"}

		pending = asyncio.create_task(machine.confirm(persist))
		await asyncio.sleep(0)
		assert machine.saving
		assert machine.in_flight
		with pytest.raises(CaptureBusy):
			machine.retry()
		with pytest.raises(CaptureBusy):
			machine.reset()
		second = machine.capture(CAPTURE_MANUAL)
		machine.update(95, 0)
		assert machine.state == CaptureState.CONFIRMING
		gate.set()
		return second, await pending

	second, result = asyncio.run(scenario())
	assert second is None
	assert result == {"id": "g1"}
	assert saved == [first]
	assert renderer.calls == 1
	assert machine.state == CaptureState.IDLE
	assert machine.capture(CAPTURE_MANUAL) is not None


def test_retry_discards_and_allows_next_capture(machine, renderer):
	machine.capture(CAPTURE_MANUAL)
	machine.retry()
	assert machine.state == CaptureState.IDLE
	assert machine.capture(CAPTURE_MANUAL) is not None
	assert renderer.calls == 2


def test_snapshot_reports_hold_progress(machine):
	machine._clock.now = 1200.0
	machine.update(85, 1000)
	snap = machine.snapshot()
	assert snap["state"] == "holding"
	assert snap["holding_ms"] == pytest.approx(200.0)
	assert snap["threshold"] == 80
	assert snap["staged"] is None
