import asyncio
import logging

import pytest

import arpsync.scheduler


def test_calls_run_in_time_order (scheduler: arpsync.scheduler.ManualScheduler) -> None:

	"""Calls fire by due time, and calls due together fire in scheduling order."""

	fired: list[str] = []

	scheduler.call_at(0.2, fired.append, "late")
	scheduler.call_at(0.1, fired.append, "early-a")
	scheduler.call_at(0.1, fired.append, "early-b")

	ran = scheduler.advance(0.5)

	assert fired == ["early-a", "early-b", "late"]
	assert ran == 3
	assert scheduler.now() == pytest.approx(0.5)


def test_now_reports_due_time_inside_callback (scheduler: arpsync.scheduler.ManualScheduler) -> None:

	"""A callback sees its own due time, so follow-up calls are relative to it."""

	seen: list[float] = []

	def first () -> None:
		seen.append(scheduler.now())
		scheduler.call_later(0.1, lambda: seen.append(scheduler.now()))

	scheduler.call_later(0.25, first)
	scheduler.advance(1.0)

	assert seen == pytest.approx([0.25, 0.35])


def test_cancelled_call_does_not_run (scheduler: arpsync.scheduler.ManualScheduler) -> None:

	fired: list[int] = []

	handle = scheduler.call_later(0.1, fired.append, 1)
	scheduler.call_later(0.2, fired.append, 2)

	handle.cancel()
	handle.cancel()

	assert scheduler.pending() == 1

	scheduler.advance(1.0)

	assert fired == [2]


def test_negative_delay_runs_at_current_time (scheduler: arpsync.scheduler.ManualScheduler) -> None:

	"""A call scheduled in the past runs on the next advance, never before now()."""

	scheduler.advance(1.0)

	fired: list[float] = []

	scheduler.call_later(-0.5, lambda: fired.append(scheduler.now()))
	scheduler.advance(0.0)

	assert fired == [pytest.approx(1.0)]


def test_advance_backwards_raises (scheduler: arpsync.scheduler.ManualScheduler) -> None:

	with pytest.raises(ValueError):
		scheduler.advance(-0.1)


def test_failing_callback_is_logged_and_later_calls_still_run (scheduler: arpsync.scheduler.ManualScheduler, caplog: pytest.LogCaptureFixture) -> None:

	"""An exception in one deferred call is logged and does not block the rest."""

	fired: list[str] = []

	def broken () -> None:
		raise RuntimeError("boom")

	scheduler.call_later(0.1, broken)
	scheduler.call_later(0.2, fired.append, "after")

	with caplog.at_level(logging.ERROR, logger="arpsync.scheduler"):
		scheduler.advance(1.0)

	assert fired == ["after"]
	assert any("failed" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_asyncio_scheduler_runs_on_event_loop () -> None:

	"""AsyncioScheduler delivers calls on the running loop in real time."""

	scheduler = arpsync.scheduler.AsyncioScheduler()
	fired: list[str] = []

	scheduler.call_later(0.01, fired.append, "a")
	cancelled = scheduler.call_later(0.01, fired.append, "b")
	cancelled.cancel()

	await asyncio.sleep(0.05)

	assert fired == ["a"]
	assert scheduler.loop is asyncio.get_running_loop()
