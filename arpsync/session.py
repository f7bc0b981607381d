import asyncio
import logging
import signal
import typing

import arpsync.arpeggiator
import arpsync.clock
import arpsync.config
import arpsync.midi_input
import arpsync.midi_utils
import arpsync.modifiers
import arpsync.note_engine
import arpsync.scheduler
import arpsync.sequence_utils
import arpsync.timing


logger = logging.getLogger(__name__)


class Session:

	"""
	A clock, an arpeggiator and a MIDI note engine wired together from a
	``SessionConfig``.

	``run()`` plays live on the asyncio event loop until interrupted.
	``render()`` drives the internal clock on virtual time as fast as possible
	and writes the result to a MIDI file.

	Example::

		config = SessionConfig.from_dict(load_config("config.yaml"))
		session = Session(config, scheduler=ManualScheduler())
		session.render(bars=8, filename="arp.mid")
	"""

	def __init__ (
		self,
		config: typing.Optional[arpsync.config.SessionConfig] = None,
		scheduler: typing.Optional[arpsync.scheduler.Scheduler] = None
	) -> None:

		self.config = config or arpsync.config.SessionConfig()
		self.scheduler: arpsync.scheduler.Scheduler = scheduler or arpsync.scheduler.AsyncioScheduler()

		# One concrete seed shared by every generative modifier, so a config
		# without a seed still behaves consistently within the session.
		self.seed = arpsync.sequence_utils.resolve_seed(self.config.seed)

		self.note_engine = arpsync.note_engine.MidoNoteEngine(scheduler=self.scheduler)

		self.clock = arpsync.clock.Clock(
			self.scheduler,
			source = self.config.clock_source,
			internal_bpm = self.config.bpm
		)

		self.arpeggiator = arpsync.arpeggiator.Arpeggiator(
			self.clock,
			self.note_engine,
			channel = self.config.channel,
			velocity = self.config.velocity,
			seed = self.seed
		)

		self.input_router = arpsync.midi_input.MidiInputRouter(self.clock, self.arpeggiator)

		self.midi_in: typing.Optional[typing.Any] = None
		self._stop_event: typing.Optional[asyncio.Event] = None
		self._closed = False

		self.apply_config(self.config)


	def apply_config (self, config: arpsync.config.SessionConfig) -> None:

		"""
		Push arpeggiator settings through the engine's setters.

		Out-of-range values are clamped (with a warning) by the setters.
		"""

		arp = self.arpeggiator

		arp.set_pattern(config.pattern)
		arp.set_octave_range(config.octave_range)
		arp.set_clock_divisor(config.clock_divisor)
		arp.set_gate_length(config.gate_length)
		arp.set_notes_per_step(config.notes_per_step)
		arp.set_sliding_window_overlap(config.sliding_window_overlap)
		arp.set_ratchet_count(config.ratchet_count)
		arp.set_latch_mode(config.latch)

		arp.set_timing_strategy(arpsync.timing.create_timing_strategy(
			config.timing_kind,
			config.timing_amount,
			seed = self.seed,
			components = config.timing_components
		))

		arp.set_velocity_humanize(arpsync.modifiers.VelocityHumanize(amount=config.velocity_humanize, seed=self.seed))
		arp.set_accent_pattern(config.accent)
		arp.set_gate_probability(arpsync.modifiers.GateProbability(p=config.gate_probability, seed=self.seed))

		if config.notes:
			arp.set_notes(config.notes)

		arp.set_enabled(config.enabled)


	# ─── Live playback ───────────────────────────────────────────────

	async def run (self) -> None:

		"""
		Open the MIDI ports and play until ``request_stop()`` or a signal.
		"""

		loop = asyncio.get_running_loop()

		self._stop_event = asyncio.Event()

		self._open_ports(loop)

		if self.clock.source is arpsync.clock.ClockSource.INTERNAL:
			self.clock.start_internal()

		else:
			logger.info(f"Waiting for clock ({self.clock.source.value} source)")

		for sig in (signal.SIGINT, signal.SIGTERM):
			try:
				loop.add_signal_handler(sig, self.request_stop)
			except (NotImplementedError, RuntimeError):
				# Not available off the main thread or on Windows.
				pass

		logger.info("Playing. Press Ctrl+C to stop.")

		try:
			await self._stop_event.wait()

		finally:
			for sig in (signal.SIGINT, signal.SIGTERM):
				try:
					loop.remove_signal_handler(sig)
				except (NotImplementedError, RuntimeError):
					pass

			self.teardown()


	def request_stop (self) -> None:

		"""Ask a running ``run()`` to return."""

		if self._stop_event is not None:
			self._stop_event.set()


	def _open_ports (self, loop: asyncio.AbstractEventLoop) -> None:

		output_name, midi_out = arpsync.midi_utils.select_output_device(self.config.output_device)

		if midi_out is None:
			logger.warning("No MIDI output opened - notes will not be sent")

		else:
			logger.info(f"Sending notes to {output_name} on channel {self.arpeggiator.get_state().channel + 1}")

		self.note_engine.midi_out = midi_out

		# The router must know the loop before the port can deliver anything.
		self.input_router.bind(loop)

		_, self.midi_in = arpsync.midi_utils.select_input_device(
			self.config.input_device,
			callback = self.input_router.on_message
		)


	# ─── Offline render ──────────────────────────────────────────────

	def render (self, bars: int, filename: str = "render.mid") -> typing.Optional[str]:

		"""
		Render ``bars`` bars of 4/4 on the internal clock to a MIDI file.

		Needs a ``ManualScheduler``: virtual time advances as fast as the
		engines can process it. Held notes come from the config's ``notes``
		(or any added before calling).

		Returns:
			The filename written, or None if nothing sounded.

		Raises:
			ValueError: If ``bars`` is not positive or the session runs on a
				real-time scheduler.
		"""

		if bars <= 0:
			raise ValueError(f"render() needs a positive number of bars, got {bars}")

		if not isinstance(self.scheduler, arpsync.scheduler.ManualScheduler):
			raise ValueError("render() requires a session built on a ManualScheduler")

		if self.clock.source is not arpsync.clock.ClockSource.INTERNAL:
			logger.info("Rendering uses the internal clock")
			self.clock.set_source(arpsync.clock.ClockSource.INTERNAL)

		self.note_engine.recording = True
		self.note_engine.recorded_events.clear()

		bpm = self.clock.get_internal_bpm()
		duration = bars * 4 * 60.0 / bpm

		logger.info(f"Rendering {bars} bars at {bpm:.2f} BPM ({duration:.2f}s)")

		self.clock.start_internal()
		self.scheduler.advance(duration)
		self.clock.stop_internal()

		# Let notes that started inside the window finish.
		self.arpeggiator.close()

		return self.note_engine.save_recording(filename, bpm=bpm)


	# ─── Teardown ────────────────────────────────────────────────────

	def teardown (self) -> None:

		"""
		Stop every timer, end every sounding note and close the ports.

		Safe to call more than once.
		"""

		if self._closed:
			return

		self._closed = True

		logger.info("Stopping...")

		if self.midi_in is not None:
			self.midi_in.close()
			self.midi_in = None

		self.clock.close()
		self.arpeggiator.close()

		if self.note_engine.midi_out is not None:
			self.note_engine.panic()

		self.note_engine.close()

		logger.info("Stopped")
