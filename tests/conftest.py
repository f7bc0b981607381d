import typing

import mido
import pytest

import arpsync.clock
import arpsync.scheduler


class FakeMidiOut:

	"""Minimal MIDI output stub for tests that keeps every sent message."""

	def __init__ (self) -> None:

		self.sent: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Store outgoing MIDI messages."""

		self.sent.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


class FakeMidiIn:

	"""Minimal MIDI input stub for tests."""

	def __init__ (self, callback: typing.Optional[typing.Callable] = None) -> None:

		"""Store the callback for injecting test messages."""

		self.callback = callback
		self.closed = False

	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True

	def inject (self, message: mido.Message) -> None:

		"""Simulate receiving a MIDI message by calling the stored callback."""

		if self.callback is not None:
			self.callback(message)


class RecordingNoteEngine:

	"""
	Note engine that records ``(time, kind, note, velocity, channel)`` tuples.
	"""

	def __init__ (self, scheduler: typing.Optional[arpsync.scheduler.Scheduler] = None) -> None:

		self.scheduler = scheduler
		self.events: typing.List[typing.Tuple[float, str, int, int, int]] = []


	def _now (self) -> float:

		return self.scheduler.now() if self.scheduler is not None else 0.0


	def note_on (self, note: int, velocity: int, channel: int) -> None:

		self.events.append((self._now(), "on", note, velocity, channel))


	def note_off (self, note: int, velocity: int, channel: int) -> None:

		self.events.append((self._now(), "off", note, velocity, channel))


	def ons (self) -> typing.List[typing.Tuple[float, str, int, int, int]]:

		return [event for event in self.events if event[1] == "on"]


	def offs (self) -> typing.List[typing.Tuple[float, str, int, int, int]]:

		return [event for event in self.events if event[1] == "off"]


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


# Module-level references so tests can reach the most recently opened fake ports.
_current_fake_output: typing.Optional[FakeMidiOut] = None
_current_fake_input: typing.Optional[FakeMidiIn] = None


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut()
	_current_fake_output = fake
	return fake


def _fake_get_input_names () -> list[str]:

	"""Return a fixed list of MIDI input names for tests."""

	return ["Dummy MIDI"]


def _fake_open_input (name: str, callback: typing.Optional[typing.Callable] = None) -> FakeMidiIn:

	"""Return a fake MIDI input regardless of the name."""

	global _current_fake_input
	fake = FakeMidiIn(callback=callback)
	_current_fake_input = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use fake MIDI output and input for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)
	monkeypatch.setattr(mido, "get_input_names", _fake_get_input_names)
	monkeypatch.setattr(mido, "open_input", _fake_open_input)


@pytest.fixture
def scheduler () -> arpsync.scheduler.ManualScheduler:

	"""A virtual-time scheduler starting at t=0."""

	return arpsync.scheduler.ManualScheduler()


@pytest.fixture
def engine (scheduler: arpsync.scheduler.ManualScheduler) -> RecordingNoteEngine:

	"""A note engine timestamping calls on the virtual clock."""

	return RecordingNoteEngine(scheduler)


@pytest.fixture
def external_clock (scheduler: arpsync.scheduler.ManualScheduler) -> arpsync.clock.Clock:

	"""A clock following external pulses on virtual time."""

	return arpsync.clock.Clock(scheduler, source=arpsync.clock.ClockSource.EXTERNAL)


@pytest.fixture
def internal_clock (scheduler: arpsync.scheduler.ManualScheduler) -> arpsync.clock.Clock:

	"""A 120 BPM internal clock on virtual time."""

	return arpsync.clock.Clock(scheduler, source=arpsync.clock.ClockSource.INTERNAL, internal_bpm=120)
