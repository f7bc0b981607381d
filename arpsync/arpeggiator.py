"""Arpeggiator engine driven by clock ticks.

The arpeggiator owns the set of held notes and its playback settings. On every
clock tick that lands on a step boundary it plays the step at the current
index of the derived note order, then advances the index. Each step goes
through the modifiers in a fixed order:

1. ``GateProbability`` decides whether the step sounds at all (the index
   advances either way).
2. ``notes_per_step`` consecutive entries are selected from the note order
   (the whole order for the ``chord`` pattern).
3. Velocity = (base velocity + ``VelocityHumanize`` offset) x
   ``AccentPattern`` multiplier, clamped to 1-127.
4. The ``TimingStrategy`` offset moves the trigger relative to the boundary.
5. With ``ratchet_count > 1`` the step is split into equal slices and the
   notes re-trigger in each slice.
6. Each note-off follows its note-on by ``gate_length`` of a slice, never
   less than a fixed minimum.

Every deferred note-on and note-off is a cancellable scheduler call. Pending
note-ons are cancelled when the arpeggiator is disabled or torn down; pending
note-offs are flushed (sent immediately) so no note is left hanging.
"""

import dataclasses
import itertools
import logging
import random
import typing

import arpsync.clock
import arpsync.constants
import arpsync.constants.clock
import arpsync.constants.velocity
import arpsync.event_emitter
import arpsync.modifiers
import arpsync.note_order
import arpsync.scheduler
import arpsync.sequence_utils
import arpsync.timing


logger = logging.getLogger(__name__)


EVENT_STEP = "step"
EVENT_HOLD = "hold"
EVENT_RELEASE = "release"


@typing.runtime_checkable
class NoteEngine (typing.Protocol):

	"""
	Protocol for the collaborator that turns note events into output.

	Calls are fire-and-forget and must not block.
	"""

	def note_on (self, note: int, velocity: int, channel: int) -> None:

		...


	def note_off (self, note: int, velocity: int, channel: int) -> None:

		...


@dataclasses.dataclass(frozen=True)
class ArpeggiatorSnapshot:

	"""Read-only copy of the arpeggiator's state."""

	held_notes: typing.Tuple[int, ...]
	note_order: typing.Tuple[int, ...]
	enabled: bool
	pattern: arpsync.note_order.ArpPattern
	octave_range: int
	clock_divisor: int
	current_step: int
	gate_length: float
	notes_per_step: int
	sliding_window_overlap: bool
	ratchet_count: int
	latch_mode: bool
	velocity: int
	channel: int


class Arpeggiator:

	"""
	Clock-driven arpeggiator.

	Parameters:
		clock: The clock whose ticks drive the steps.
		note_engine: Receiver for ``note_on`` / ``note_off`` calls.
		scheduler: Timer provider for deferred notes. Defaults to the clock's.
		channel: MIDI channel (0-15) for emitted notes.
		velocity: Base velocity before humanize and accents.
		seed: Seed for the ``random`` pattern's permutations.

	Example::

		arp = Arpeggiator(clock, note_engine, seed=1)
		arp.set_pattern("up-down")
		arp.set_octave_range(2)
		arp.set_enabled(True)
		arp.press(60)
		arp.press(64)
	"""

	def __init__ (
		self,
		clock: arpsync.clock.Clock,
		note_engine: typing.Optional[NoteEngine] = None,
		scheduler: typing.Optional[arpsync.scheduler.Scheduler] = None,
		channel: int = 0,
		velocity: int = arpsync.constants.velocity.DEFAULT_VELOCITY,
		seed: typing.Optional[int] = None
	) -> None:

		self.clock = clock
		self.note_engine = note_engine
		self.scheduler: arpsync.scheduler.Scheduler = scheduler or clock.scheduler
		self.events = arpsync.event_emitter.EventEmitter()
		self.rng = random.Random(seed)

		self._held_notes: typing.List[int] = []
		self._note_order: typing.List[int] = []
		self._enabled = False
		self._pattern = arpsync.note_order.ArpPattern.UP
		self._octave_range = 1
		self._clock_divisor = arpsync.constants.clock.DEFAULT_CLOCK_DIVISOR
		self._current_step = 0
		self._gate_length = arpsync.constants.clock.DEFAULT_GATE_LENGTH
		self._notes_per_step = 1
		self._sliding_window_overlap = True
		self._ratchet_count = 1
		self._latch_mode = False
		self._velocity = arpsync.constants.velocity.DEFAULT_VELOCITY
		self._channel = 0

		self.timing_strategy: arpsync.timing.TimingStrategy = arpsync.timing.StraightTiming()
		self.velocity_humanize = arpsync.modifiers.VelocityHumanize(amount=0.0, seed=0)
		self.accent_pattern = arpsync.modifiers.AccentPattern()
		self.gate_probability = arpsync.modifiers.GateProbability(p=1.0, seed=0)

		self._last_processed_tick = -1
		self._pending_triggers: typing.Dict[int, arpsync.scheduler.TimerHandle] = {}
		self._trigger_ids = itertools.count(1)
		self._sounding: typing.Dict[typing.Tuple[int, int], arpsync.scheduler.TimerHandle] = {}

		self.set_channel(channel)
		self.set_velocity(velocity)
		self.attach()


	def attach (self) -> None:

		"""
		Subscribe to the clock's tick and start events.

		Called on construction; call again after ``clock.clear_callbacks()``.
		"""

		self.clock.on_tick(self._on_tick)
		self.clock.on_start(self._on_clock_start)


	# ─── Read access ─────────────────────────────────────────────────

	@property
	def enabled (self) -> bool:

		return self._enabled


	@property
	def current_step (self) -> int:

		return self._current_step


	@property
	def held_notes (self) -> typing.Tuple[int, ...]:

		"""Held notes in press order."""

		return tuple(self._held_notes)


	@property
	def pulses_per_step (self) -> int:

		"""Clock pulses between step boundaries."""

		return max(1, arpsync.constants.MIDI_QUARTER_NOTE // self._clock_divisor)


	def get_note_order (self) -> typing.List[int]:

		"""Return a copy of the derived note order."""

		return list(self._note_order)


	def step_duration (self) -> float:

		"""
		Length of one step in seconds at the clock's current tempo.

		Measured on the pulse grid, so a divisor that does not divide 24 gets
		the length of the pulses that actually separate its boundaries.
		"""

		bpm = max(1.0, float(self.clock.get_bpm()))

		return self.pulses_per_step * arpsync.clock.tick_interval_for(bpm)


	def get_state (self) -> ArpeggiatorSnapshot:

		"""Return a snapshot of the arpeggiator's state."""

		return ArpeggiatorSnapshot(
			held_notes = tuple(self._held_notes),
			note_order = tuple(self._note_order),
			enabled = self._enabled,
			pattern = self._pattern,
			octave_range = self._octave_range,
			clock_divisor = self._clock_divisor,
			current_step = self._current_step,
			gate_length = self._gate_length,
			notes_per_step = self._notes_per_step,
			sliding_window_overlap = self._sliding_window_overlap,
			ratchet_count = self._ratchet_count,
			latch_mode = self._latch_mode,
			velocity = self._velocity,
			channel = self._channel
		)


	def on_step (self, callback: typing.Callable[[int, typing.Tuple[int, ...]], typing.Any]) -> None:

		"""Register a callback receiving ``(step_index, notes)`` for every sounding step."""

		self.events.on(EVENT_STEP, callback)


	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""Register a callback for ``step``, ``hold`` or ``release``."""

		self.events.on(event_name, callback)


	# ─── Held notes ──────────────────────────────────────────────────

	def add_note (self, note: int) -> None:

		"""Hold a note. Re-adding a held note changes nothing."""

		if not arpsync.constants.velocity.MIDI_DATA_MIN <= note <= arpsync.constants.velocity.MIDI_DATA_MAX:
			logger.warning(f"Note {note} is outside 0-127 - ignored")
			return

		if note in self._held_notes:
			return

		self._held_notes.append(note)
		self._regenerate()
		self.events.emit_sync(EVENT_HOLD, note)


	def remove_note (self, note: int) -> None:

		"""Release a held note by value."""

		if note not in self._held_notes:
			return

		self._held_notes.remove(note)
		self._regenerate()
		self.events.emit_sync(EVENT_RELEASE, note)


	def press (self, note: int) -> None:

		"""
		Input adapter note-on: hold the note, or toggle it when latched.
		"""

		if self._latch_mode and note in self._held_notes:
			self.remove_note(note)
		else:
			self.add_note(note)


	def release (self, note: int) -> None:

		"""
		Input adapter note-off: release the note, ignored when latched.
		"""

		if self._latch_mode:
			return

		self.remove_note(note)


	def set_notes (self, notes: typing.Iterable[int]) -> None:

		"""Replace the held notes (duplicates and out-of-range notes are dropped)."""

		replacement: typing.List[int] = []

		for note in notes:
			if arpsync.constants.velocity.MIDI_DATA_MIN <= note <= arpsync.constants.velocity.MIDI_DATA_MAX and note not in replacement:
				replacement.append(note)

		self._held_notes = replacement
		self._regenerate()


	def clear_notes (self) -> None:

		"""Release every held note, each exactly once, and restart from step 0."""

		for note in list(self._held_notes):
			self.remove_note(note)

		self._current_step = 0


	# ─── Configuration ───────────────────────────────────────────────

	def set_enabled (self, enabled: bool) -> None:

		"""
		Turn the arpeggiator on or off.

		Both directions restart from step 0. Enabling regenerates the note
		order from the held notes. Disabling cancels pending note-ons and
		flushes pending note-offs; it does not otherwise silence the output.
		"""

		if enabled == self._enabled:
			return

		self._enabled = enabled
		self._current_step = 0
		self._cancel_pending_triggers()

		if enabled:
			self._regenerate()
			logger.info("Arpeggiator enabled")

		else:
			self._flush_sounding()
			logger.info("Arpeggiator disabled")


	def set_pattern (self, pattern: typing.Union[str, arpsync.note_order.ArpPattern]) -> None:

		"""
		Choose the note order. The current step index is kept (modulo the new
		order's length) so a live change does not restart the phrase.
		"""

		parsed = arpsync.note_order.parse_pattern(pattern)

		if parsed is None or parsed is self._pattern:
			return

		self._pattern = parsed
		self._regenerate()


	def set_octave_range (self, octave_range: int) -> int:

		"""Set how many octave layers the order spans (1-4). Returns the applied value."""

		self._octave_range = arpsync.sequence_utils.clamp_setting(
			"Octave range",
			int(octave_range),
			arpsync.constants.clock.MIN_OCTAVE_RANGE,
			arpsync.constants.clock.MAX_OCTAVE_RANGE
		)

		self._regenerate()

		return self._octave_range


	def set_clock_divisor (self, divisor: int) -> int:

		"""
		Set steps per quarter note (1 = quarters, 2 = eighths, 4 = sixteenths,
		8 = thirty-seconds). Returns the applied value.
		"""

		self._clock_divisor = arpsync.sequence_utils.clamp_setting(
			"Clock divisor",
			int(divisor),
			arpsync.constants.clock.MIN_CLOCK_DIVISOR,
			arpsync.constants.clock.MAX_CLOCK_DIVISOR
		)

		return self._clock_divisor


	def set_gate_length (self, gate_length: float) -> float:

		"""Set the fraction (0-1) of a step or slice each note is held. Returns the applied value."""

		self._gate_length = arpsync.sequence_utils.clamp_setting("Gate length", float(gate_length), 0.0, 1.0)

		return self._gate_length


	def set_notes_per_step (self, notes_per_step: int) -> int:

		"""Set how many consecutive notes sound together on each step. Returns the applied value."""

		self._notes_per_step = arpsync.sequence_utils.clamp_setting("Notes per step", int(notes_per_step), 1, 128)

		return self._notes_per_step


	def set_sliding_window_overlap (self, overlap: bool) -> None:

		"""
		When True the note window slides by one per step (notes repeat across
		consecutive steps); when False it jumps by ``notes_per_step``.
		"""

		self._sliding_window_overlap = bool(overlap)


	def set_ratchet_count (self, ratchet_count: int) -> int:

		"""Set how many times (1-4) each step re-triggers. Returns the applied value."""

		self._ratchet_count = arpsync.sequence_utils.clamp_setting(
			"Ratchet count",
			int(ratchet_count),
			arpsync.constants.clock.MIN_RATCHET_COUNT,
			arpsync.constants.clock.MAX_RATCHET_COUNT
		)

		return self._ratchet_count


	def set_timing_strategy (self, strategy: typing.Optional[arpsync.timing.TimingStrategy]) -> None:

		"""Set the timing feel. ``None`` restores straight timing."""

		self.timing_strategy = strategy if strategy is not None else arpsync.timing.StraightTiming()


	def set_velocity_humanize (self, humanize: typing.Optional[arpsync.modifiers.VelocityHumanize]) -> None:

		self.velocity_humanize = humanize if humanize is not None else arpsync.modifiers.VelocityHumanize(amount=0.0, seed=0)


	def set_accent_pattern (self, accent: typing.Union[str, arpsync.modifiers.AccentKind, arpsync.modifiers.AccentPattern, None]) -> None:

		if isinstance(accent, arpsync.modifiers.AccentPattern):
			self.accent_pattern = accent
		else:
			self.accent_pattern = arpsync.modifiers.AccentPattern(accent or arpsync.modifiers.AccentKind.NONE)


	def set_gate_probability (self, gate: typing.Optional[arpsync.modifiers.GateProbability]) -> None:

		self.gate_probability = gate if gate is not None else arpsync.modifiers.GateProbability(p=1.0, seed=0)


	def set_velocity (self, velocity: int) -> int:

		"""Set the base velocity (1-127). Returns the applied value."""

		self._velocity = arpsync.sequence_utils.clamp_setting(
			"Velocity",
			int(velocity),
			arpsync.constants.velocity.MIN_VELOCITY,
			arpsync.constants.velocity.MAX_VELOCITY
		)

		return self._velocity


	def set_channel (self, channel: int) -> int:

		"""Set the output channel (0-15). Returns the applied value."""

		self._channel = arpsync.sequence_utils.clamp_setting("Channel", int(channel), 0, arpsync.constants.velocity.MIDI_CHANNELS - 1)

		return self._channel


	def set_latch_mode (self, latch: bool) -> None:

		"""
		Toggle latch mode.

		Leaving latch mode releases every held note, since the held set no
		longer reflects which keys are physically down.
		"""

		latch = bool(latch)

		if latch == self._latch_mode:
			return

		self._latch_mode = latch

		if not latch:
			self.clear_notes()


	# ─── Teardown ────────────────────────────────────────────────────

	def close (self) -> None:

		"""Cancel pending note-ons and send every pending note-off now."""

		self._cancel_pending_triggers()
		self._flush_sounding()


	# ─── Step processing ─────────────────────────────────────────────

	def _on_clock_start (self) -> None:

		self._last_processed_tick = -1

		if self._enabled:
			self._current_step = 0
			self._cancel_pending_triggers()


	def _on_tick (self, tick: int) -> None:

		# Several subscriptions (e.g. after a second attach()) must not double-step.
		if tick == self._last_processed_tick:
			return

		self._last_processed_tick = tick

		if not self._enabled:
			return

		if tick % self.pulses_per_step != 0:
			return

		self._fire_step()


	def _fire_step (self) -> None:

		if not self._note_order:
			return

		step = self._current_step % len(self._note_order)

		if self.gate_probability.should_play(step):
			notes = self._select_notes(step)
			velocity = self._step_velocity(step)
			self._schedule_step(step, notes, velocity)
			self.events.emit_sync(EVENT_STEP, step, notes)

		else:
			logger.debug(f"Step {step} skipped by gate probability")

		self._advance()


	def _select_notes (self, step: int) -> typing.Tuple[int, ...]:

		if self._pattern is arpsync.note_order.ArpPattern.CHORD:
			return tuple(self._note_order)

		length = len(self._note_order)
		count = min(self._notes_per_step, length)

		return tuple(self._note_order[(step + i) % length] for i in range(count))


	def _step_velocity (self, step: int) -> int:

		velocity = (self._velocity + self.velocity_humanize.offset(step)) * self.accent_pattern.multiplier(step)

		return max(
			arpsync.constants.velocity.MIN_VELOCITY,
			min(arpsync.constants.velocity.MAX_VELOCITY, int(round(velocity)))
		)


	def _schedule_step (self, step: int, notes: typing.Tuple[int, ...], velocity: int) -> None:

		step_duration = self.step_duration()
		offset = self.timing_strategy.delay_offset(step, step_duration)
		slice_duration = step_duration / self._ratchet_count
		gate = max(arpsync.constants.clock.MIN_GATE_DURATION, self._gate_length * slice_duration)
		channel = self._channel

		for ratchet in range(self._ratchet_count):

			delay = offset + ratchet * slice_duration

			if delay <= 0:
				self._trigger(notes, velocity, channel, gate)
				continue

			trigger_id = next(self._trigger_ids)
			self._pending_triggers[trigger_id] = self.scheduler.call_later(
				delay, self._run_trigger, trigger_id, notes, velocity, channel, gate
			)


	def _run_trigger (self, trigger_id: int, notes: typing.Tuple[int, ...], velocity: int, channel: int, gate: float) -> None:

		self._pending_triggers.pop(trigger_id, None)

		if not self._enabled:
			return

		self._trigger(notes, velocity, channel, gate)


	def _trigger (self, notes: typing.Tuple[int, ...], velocity: int, channel: int, gate: float) -> None:

		"""Sound notes now and schedule their note-offs."""

		for note in notes:

			key = (channel, note)
			previous = self._sounding.pop(key, None)

			# Re-triggering a still-gated note: end the old instance first.
			if previous is not None:
				previous.cancel()
				self._send_note_off(note, channel)

			self._send_note_on(note, velocity, channel)
			self._sounding[key] = self.scheduler.call_later(gate, self._release_sounding, key)


	def _release_sounding (self, key: typing.Tuple[int, int]) -> None:

		if self._sounding.pop(key, None) is None:
			return

		channel, note = key
		self._send_note_off(note, channel)


	def _advance (self) -> None:

		if not self._note_order:
			return

		increment = 1 if self._sliding_window_overlap else self._notes_per_step

		self._current_step = (self._current_step + increment) % len(self._note_order)


	def _regenerate (self) -> None:

		"""Rebuild the note order; keep the step index within the new length."""

		self._note_order = arpsync.note_order.derive_note_order(
			self._held_notes,
			self._pattern,
			self._octave_range,
			self.rng
		)

		if self._note_order:
			self._current_step %= len(self._note_order)
		else:
			self._current_step = 0


	def _cancel_pending_triggers (self) -> None:

		for handle in self._pending_triggers.values():
			handle.cancel()

		self._pending_triggers.clear()


	def _flush_sounding (self) -> None:

		sounding = list(self._sounding.items())
		self._sounding.clear()

		for (channel, note), handle in sounding:
			handle.cancel()
			self._send_note_off(note, channel)


	def _send_note_on (self, note: int, velocity: int, channel: int) -> None:

		if self.note_engine is None:
			return

		try:
			self.note_engine.note_on(note, velocity, channel)
		except Exception:
			logger.exception(f"Note engine rejected note_on {note}")


	def _send_note_off (self, note: int, channel: int) -> None:

		if self.note_engine is None:
			return

		try:
			self.note_engine.note_off(note, 0, channel)
		except Exception:
			logger.exception(f"Note engine rejected note_off {note}")
