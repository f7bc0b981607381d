"""Clock engine - tempo acquisition and beat-grid events.

The clock produces a tick stream at 24 pulses per quarter note from exactly
one of two sources:

- **external**: discrete pulses delivered by a MIDI clock (or any pulse
  source) through ``ingest_pulse()`` plus transport commands. Duplicate
  deliveries are filtered, the tempo is estimated from a rolling window of
  recent intervals, and a silence watchdog declares the clock stopped when
  pulses cease without an explicit Stop.
- **internal**: a self-driven periodic generator at an asserted BPM.

Subscribers register for ``tick``, ``quarter_note``, ``sixteenth_note``,
``start`` and ``stop``. They fire synchronously, in registration order, inside
the processing of the pulse that caused them - a pulse is fully processed
before the next one is accepted.

The source is held as a tagged state object (``ExternalClockState``,
``InternalClockState`` or ``OffClockState``) so each mode carries only the
resources it owns, and switching mode discards the previous mode's timers.
"""

import collections
import dataclasses
import enum
import logging
import typing

import arpsync.constants
import arpsync.constants.clock
import arpsync.event_emitter
import arpsync.scheduler
import arpsync.sequence_utils


logger = logging.getLogger(__name__)


EVENT_TICK = "tick"
EVENT_QUARTER_NOTE = "quarter_note"
EVENT_SIXTEENTH_NOTE = "sixteenth_note"
EVENT_START = "start"
EVENT_STOP = "stop"


class ClockSource (str, enum.Enum):

	"""Where the clock's pulses come from."""

	EXTERNAL = "external"
	INTERNAL = "internal"
	OFF = "off"


class ClockStatus (str, enum.Enum):

	"""Sync status reported to callers."""

	SYNCED = "synced"
	FREE = "free"
	STOPPED = "stopped"


@dataclasses.dataclass
class ExternalClockState:

	"""
	Resources owned by the external source: interval window and watchdog.
	"""

	recent_intervals: typing.Deque[float] = dataclasses.field(
		default_factory=lambda: collections.deque(maxlen=arpsync.constants.clock.INTERVAL_CAPACITY)
	)
	last_pulse_time: typing.Optional[float] = None
	watchdog: typing.Optional[arpsync.scheduler.TimerHandle] = None


	def forget_timing (self) -> None:

		"""Drop interval history after a discontinuity."""

		self.recent_intervals.clear()
		self.last_pulse_time = None


@dataclasses.dataclass
class InternalClockState:

	"""
	Resources owned by the internal source: the periodic generator.
	"""

	tick_interval: float
	next_tick_time: float = 0.0
	generator: typing.Optional[arpsync.scheduler.TimerHandle] = None


@dataclasses.dataclass
class OffClockState:

	"""No source: the clock never ticks."""


ModeState = typing.Union[ExternalClockState, InternalClockState, OffClockState]


@dataclasses.dataclass(frozen=True)
class ClockSnapshot:

	"""Read-only copy of the clock's state."""

	source: ClockSource
	running: bool
	tick_count: int
	bpm: float
	status: ClockStatus
	last_tick_time: typing.Optional[float]
	recent_intervals: typing.Tuple[float, ...]


def tick_interval_for (bpm: float) -> float:

	"""Return the seconds between pulses at a tempo (24 pulses per beat)."""

	return 60.0 / (bpm * arpsync.constants.MIDI_QUARTER_NOTE)


class Clock:

	"""
	Dual-source clock producing a jitter-filtered tick stream and tempo.

	Parameters:
		scheduler: Time source and timer provider. Defaults to the running
			asyncio event loop.
		source: Initial source. The clock never starts on its own.
		internal_bpm: Tempo used by the internal generator (clamped to 20-240).
		watchdog_timeout: Seconds of pulse silence after which an external
			clock is declared stopped.

	Example::

		clock = Clock(scheduler, source=ClockSource.INTERNAL, internal_bpm=128)
		clock.on_quarter_note(lambda tick: print("beat", tick // 24))
		clock.start_internal()
	"""

	def __init__ (
		self,
		scheduler: typing.Optional[arpsync.scheduler.Scheduler] = None,
		source: typing.Union[str, ClockSource] = ClockSource.EXTERNAL,
		internal_bpm: float = arpsync.constants.clock.DEFAULT_BPM,
		watchdog_timeout: float = arpsync.constants.clock.WATCHDOG_TIMEOUT
	) -> None:

		self.scheduler: arpsync.scheduler.Scheduler = scheduler or arpsync.scheduler.AsyncioScheduler()
		self.events = arpsync.event_emitter.EventEmitter()
		self.watchdog_timeout = watchdog_timeout
		self.pulses_per_beat = arpsync.constants.MIDI_QUARTER_NOTE

		self._internal_bpm: float = self._clamp_bpm(internal_bpm)

		self.running: bool = False
		self.tick_count: int = 0
		self.status: ClockStatus = ClockStatus.STOPPED
		self.last_tick_time: typing.Optional[float] = None
		self._estimated_bpm: float = arpsync.constants.clock.DEFAULT_BPM

		parsed = self._parse_source(source)
		self._mode: ModeState = self._new_mode(parsed if parsed is not None else ClockSource.EXTERNAL)


	# ─── Accessors ───────────────────────────────────────────────────

	@property
	def source (self) -> ClockSource:

		"""The active source, derived from the mode state."""

		if isinstance(self._mode, ExternalClockState):
			return ClockSource.EXTERNAL

		if isinstance(self._mode, InternalClockState):
			return ClockSource.INTERNAL

		return ClockSource.OFF


	@property
	def bpm (self) -> float:

		"""Current tempo: asserted when internal, estimated when external."""

		if isinstance(self._mode, InternalClockState):
			return self._internal_bpm

		return self._estimated_bpm


	def get_bpm (self) -> float:

		"""Return the current tempo."""

		return self.bpm


	def get_internal_bpm (self) -> float:

		"""Return the tempo the internal generator runs (or will run) at."""

		return self._internal_bpm


	@property
	def recent_intervals (self) -> typing.Tuple[float, ...]:

		"""The pulse intervals currently used for tempo estimation."""

		if isinstance(self._mode, ExternalClockState):
			return tuple(self._mode.recent_intervals)

		return ()


	def get_state (self) -> ClockSnapshot:

		"""Return a snapshot of the clock's state."""

		return ClockSnapshot(
			source = self.source,
			running = self.running,
			tick_count = self.tick_count,
			bpm = self.bpm,
			status = self.status,
			last_tick_time = self.last_tick_time,
			recent_intervals = self.recent_intervals
		)


	# ─── Subscriptions ───────────────────────────────────────────────

	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for a named clock event.

		``tick``, ``quarter_note`` and ``sixteenth_note`` callbacks receive the
		tick count; ``start`` and ``stop`` callbacks receive no arguments.
		"""

		self.events.on(event_name, callback)


	def on_tick (self, callback: typing.Callable[[int], typing.Any]) -> None:

		self.events.on(EVENT_TICK, callback)


	def on_quarter_note (self, callback: typing.Callable[[int], typing.Any]) -> None:

		self.events.on(EVENT_QUARTER_NOTE, callback)


	def on_sixteenth_note (self, callback: typing.Callable[[int], typing.Any]) -> None:

		self.events.on(EVENT_SIXTEENTH_NOTE, callback)


	def on_start (self, callback: typing.Callable[[], typing.Any]) -> None:

		self.events.on(EVENT_START, callback)


	def on_stop (self, callback: typing.Callable[[], typing.Any]) -> None:

		self.events.on(EVENT_STOP, callback)


	def clear_callbacks (self) -> None:

		"""Remove every subscriber."""

		self.events.clear()


	# ─── Source selection ────────────────────────────────────────────

	def set_source (self, source: typing.Union[str, ClockSource]) -> None:

		"""
		Switch the clock source.

		The previous source's timers are cancelled before anything else, the
		clock is left stopped with a zero tick count, and the new source is not
		started. A Stop event fires if the clock was running.
		"""

		new_source = self._parse_source(source)

		if new_source is None:
			return

		if new_source is self.source:
			logger.debug(f"Clock source already {new_source.value}")
			return

		was_running = self.running

		self._quiesce()

		self._mode = self._new_mode(new_source)
		self.running = False
		self.tick_count = 0
		self.status = ClockStatus.STOPPED
		self.last_tick_time = None

		logger.info(f"Clock source set to {new_source.value}")

		if was_running:
			self.events.emit_sync(EVENT_STOP)


	def close (self) -> None:

		"""
		Cancel every pending clock timer and leave the clock stopped.

		No events fire. Used on session teardown.
		"""

		self._quiesce()
		self.running = False
		self.status = ClockStatus.STOPPED


	# ─── External source ─────────────────────────────────────────────

	def ingest_pulse (self, now: typing.Optional[float] = None) -> bool:

		"""
		Process one external pulse.

		Parameters:
			now: Arrival time of the pulse in seconds. Defaults to the
				scheduler's current time.

		Returns:
			True if the pulse was accepted as a tick, False if it was absorbed
			(duplicate, implausible, or the source is not external).
		"""

		mode = self._mode

		if not isinstance(mode, ExternalClockState):
			logger.debug("Pulse ignored - clock source is not external")
			return False

		if now is None:
			now = self.scheduler.now()

		if not self.running:
			self.running = True
			self.status = ClockStatus.SYNCED
			self.events.emit_sync(EVENT_START)

		if mode.last_pulse_time is not None:

			interval = now - mode.last_pulse_time

			if interval < arpsync.constants.clock.MIN_PULSE_INTERVAL:
				# Duplicate delivery: keep the timestamp so the next interval is not inflated.
				mode.last_pulse_time = now
				return False

			mode.recent_intervals.append(interval)

			if len(mode.recent_intervals) >= arpsync.constants.clock.MIN_INTERVAL_SAMPLES:
				mean_interval = sum(mode.recent_intervals) / len(mode.recent_intervals)
				self._estimated_bpm = round(60.0 / (mean_interval * self.pulses_per_beat))

		mode.last_pulse_time = now

		self._arm_watchdog(mode)
		self._tick(now)

		return True


	def ingest_start (self) -> None:

		"""Transport Start: restart from tick zero and re-estimate tempo."""

		mode = self._mode

		if not isinstance(mode, ExternalClockState):
			logger.debug("Start ignored - clock source is not external")
			return

		logger.info("External clock start")

		self.running = True
		self.status = ClockStatus.SYNCED
		self.tick_count = 0
		self.last_tick_time = None
		mode.forget_timing()

		self.events.emit_sync(EVENT_START)


	def ingest_continue (self) -> None:

		"""Transport Continue: resume without resetting the tick count."""

		mode = self._mode

		if not isinstance(mode, ExternalClockState):
			logger.debug("Continue ignored - clock source is not external")
			return

		logger.info("External clock continue")

		self._cancel_watchdog(mode)
		self.running = True
		self.status = ClockStatus.SYNCED
		mode.forget_timing()

		self.events.emit_sync(EVENT_START)


	def ingest_stop (self) -> None:

		"""Transport Stop."""

		mode = self._mode

		if not isinstance(mode, ExternalClockState):
			logger.debug("Stop ignored - clock source is not external")
			return

		logger.info("External clock stop")

		self._cancel_watchdog(mode)
		self.running = False
		self.status = ClockStatus.STOPPED

		self.events.emit_sync(EVENT_STOP)


	# ─── Internal source ─────────────────────────────────────────────

	def start_internal (self, bpm: typing.Optional[float] = None) -> None:

		"""
		Start the internal generator from tick zero.

		Only valid when the source is internal; otherwise a warning is logged
		and nothing happens.
		"""

		mode = self._mode

		if not isinstance(mode, InternalClockState):
			logger.warning("Cannot start internal clock - clock source is not internal")
			return

		if bpm is not None:
			self.set_internal_bpm(bpm)

		if self.running:
			return

		self.running = True
		self.status = ClockStatus.SYNCED
		self.tick_count = 0

		logger.info(f"Internal clock started at {self._internal_bpm:.2f} BPM")

		self.events.emit_sync(EVENT_START)

		# A Start subscriber may have stopped the clock or switched source.
		if self._mode is mode and self.running and mode.generator is None:
			self._arm_generator(mode)


	def stop_internal (self) -> None:

		"""Stop the internal generator. Only valid when the source is internal."""

		mode = self._mode

		if not isinstance(mode, InternalClockState):
			logger.warning("Cannot stop internal clock - clock source is not internal")
			return

		if not self.running:
			return

		self._cancel_generator(mode)
		self.running = False
		self.status = ClockStatus.STOPPED

		logger.info("Internal clock stopped")

		self.events.emit_sync(EVENT_STOP)


	def set_internal_bpm (self, bpm: float) -> float:

		"""
		Set the internal generator's tempo.

		Out-of-range values are clamped to 20-240 with a warning. When the
		internal clock is running the generator restarts with the new period
		from now, keeping the tick count and without firing Start. When the
		source is not internal the value is stored for later use.

		Returns:
			The BPM actually applied.
		"""

		self._internal_bpm = self._clamp_bpm(bpm)

		mode = self._mode

		if isinstance(mode, InternalClockState):

			mode.tick_interval = tick_interval_for(self._internal_bpm)

			if self.running:
				self._cancel_generator(mode)
				self._arm_generator(mode)

		logger.info(f"Internal BPM set to {self._internal_bpm:.2f}")

		return self._internal_bpm


	# ─── Internals ───────────────────────────────────────────────────

	def _parse_source (self, source: typing.Union[str, ClockSource]) -> typing.Optional[ClockSource]:

		try:
			return ClockSource(source)
		except ValueError:
			logger.warning(f"Unknown clock source {source!r} - ignored")
			return None


	def _clamp_bpm (self, bpm: float) -> float:

		return arpsync.sequence_utils.clamp_setting(
			"Internal BPM",
			bpm,
			arpsync.constants.clock.MIN_BPM,
			arpsync.constants.clock.MAX_BPM
		)


	def _new_mode (self, source: ClockSource) -> ModeState:

		if source is ClockSource.EXTERNAL:
			return ExternalClockState()

		if source is ClockSource.INTERNAL:
			return InternalClockState(tick_interval=tick_interval_for(self._internal_bpm))

		return OffClockState()


	def _quiesce (self) -> None:

		"""Cancel whichever timers the current mode owns."""

		mode = self._mode

		if isinstance(mode, InternalClockState):
			self._cancel_generator(mode)

		elif isinstance(mode, ExternalClockState):
			self._cancel_watchdog(mode)


	def _tick (self, now: float) -> None:

		"""Count an accepted pulse and fire the grid events it lands on."""

		self.tick_count += 1
		self.last_tick_time = now

		tick = self.tick_count

		self.events.emit_sync(EVENT_TICK, tick)

		if tick % arpsync.constants.MIDI_QUARTER_NOTE == 0:
			self.events.emit_sync(EVENT_QUARTER_NOTE, tick)

		if tick % arpsync.constants.MIDI_SIXTEENTH_NOTE == 0:
			self.events.emit_sync(EVENT_SIXTEENTH_NOTE, tick)


	def _arm_watchdog (self, mode: ExternalClockState) -> None:

		self._cancel_watchdog(mode)
		mode.watchdog = self.scheduler.call_later(self.watchdog_timeout, self._on_watchdog, mode)


	def _cancel_watchdog (self, mode: ExternalClockState) -> None:

		if mode.watchdog is not None:
			mode.watchdog.cancel()
			mode.watchdog = None


	def _on_watchdog (self, mode: ExternalClockState) -> None:

		"""No pulse for ``watchdog_timeout`` seconds: the external clock has stopped."""

		mode.watchdog = None

		if self._mode is not mode or not self.running:
			return

		logger.info(f"No clock pulses for {self.watchdog_timeout:.2f}s - clock stopped")

		self.running = False
		self.status = ClockStatus.STOPPED
		# The gap would otherwise enter the tempo estimate as one huge interval.
		mode.forget_timing()

		self.events.emit_sync(EVENT_STOP)


	def _arm_generator (self, mode: InternalClockState) -> None:

		mode.next_tick_time = self.scheduler.now() + mode.tick_interval
		mode.generator = self.scheduler.call_at(mode.next_tick_time, self._on_generator, mode)


	def _cancel_generator (self, mode: InternalClockState) -> None:

		if mode.generator is not None:
			mode.generator.cancel()
			mode.generator = None


	def _on_generator (self, mode: InternalClockState) -> None:

		"""One internal pulse, then schedule the next at an absolute deadline."""

		mode.generator = None

		if self._mode is not mode or not self.running:
			return

		self._tick(mode.next_tick_time)

		# A subscriber may have stopped the clock, switched source or re-armed via set_internal_bpm().
		if self._mode is not mode or not self.running or mode.generator is not None:
			return

		# Deadlines advance by the configured period rather than from the wake-up
		# time, so late wake-ups never accumulate into drift.
		mode.next_tick_time += mode.tick_interval
		mode.generator = self.scheduler.call_at(mode.next_tick_time, self._on_generator, mode)
