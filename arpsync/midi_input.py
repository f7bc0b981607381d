"""Route incoming MIDI to the clock and the arpeggiator.

mido delivers input on its own callback thread. ``MidiInputRouter.on_message``
runs on that thread, stamps the arrival time and hands the message to the
asyncio event loop with ``call_soon_threadsafe``; ``dispatch`` then runs on the
loop thread, so pulses are processed one at a time, in arrival order, on the
same thread as every other clock and arpeggiator operation.

Message mapping:

- ``clock`` -> ``Clock.ingest_pulse(arrival_time)``
- ``start`` / ``continue`` / ``stop`` -> the clock's transport commands
- ``note_on`` (velocity > 0) -> ``Arpeggiator.press``
- ``note_off`` or ``note_on`` with velocity 0 -> ``Arpeggiator.release``
"""

import asyncio
import logging
import typing

import arpsync.arpeggiator
import arpsync.clock


logger = logging.getLogger(__name__)


class MidiInputRouter:

	"""
	Bridge from a mido input port callback to the engines.

	Parameters:
		clock: Receives pulses and transport.
		arpeggiator: Receives note presses and releases (optional).
		loop: Event loop to dispatch on. Defaults to the running loop at the
			time ``bind()`` is called.
		note_channel: Only route notes from this channel (None = all channels).
	"""

	def __init__ (
		self,
		clock: arpsync.clock.Clock,
		arpeggiator: typing.Optional[arpsync.arpeggiator.Arpeggiator] = None,
		loop: typing.Optional[asyncio.AbstractEventLoop] = None,
		note_channel: typing.Optional[int] = None
	) -> None:

		self.clock = clock
		self.arpeggiator = arpeggiator
		self.note_channel = note_channel
		self._loop = loop


	def bind (self, loop: typing.Optional[asyncio.AbstractEventLoop] = None) -> None:

		"""Attach to an event loop (the running one by default)."""

		self._loop = loop or asyncio.get_running_loop()


	def on_message (self, message: typing.Any) -> None:

		"""
		mido port callback. Runs on mido's thread - never touches engine state.
		"""

		if self._loop is None or self._loop.is_closed():
			return

		arrival = self._loop.time()

		self._loop.call_soon_threadsafe(self.dispatch, message, arrival)


	def dispatch (self, message: typing.Any, arrival: typing.Optional[float] = None) -> None:

		"""Apply one message to the engines. Must run on the loop thread."""

		message_type = message.type

		if message_type == "clock":
			self.clock.ingest_pulse(arrival)

		elif message_type == "start":
			self.clock.ingest_start()

		elif message_type == "continue":
			self.clock.ingest_continue()

		elif message_type == "stop":
			self.clock.ingest_stop()

		elif message_type in ("note_on", "note_off"):
			self._dispatch_note(message)


	def _dispatch_note (self, message: typing.Any) -> None:

		if self.arpeggiator is None:
			return

		if self.note_channel is not None and message.channel != self.note_channel:
			return

		if message.type == "note_on" and message.velocity > 0:
			self.arpeggiator.press(message.note)

		else:
			self.arpeggiator.release(message.note)
