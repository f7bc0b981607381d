import datetime
import logging
import typing

import mido

import arpsync.constants.velocity
import arpsync.scheduler


logger = logging.getLogger(__name__)


class MidoNoteEngine:

	"""
	Note-engine collaborator that sends note messages to a mido output port.

	Values are checked before sending: out-of-range notes, velocities or
	channels are dropped with a warning rather than raised. Sounding notes are
	tracked so ``panic()`` can silence exactly what this engine turned on.

	Parameters:
		midi_out: An open mido output port, or None to send nothing (useful
			with ``record=True`` for offline rendering).
		scheduler: Time source for recorded event timestamps.
		record: When True, keep every sent message for ``save_recording()``.
	"""

	def __init__ (
		self,
		midi_out: typing.Optional[typing.Any] = None,
		scheduler: typing.Optional[arpsync.scheduler.Scheduler] = None,
		record: bool = False
	) -> None:

		self.midi_out = midi_out
		self.scheduler = scheduler
		self.recording = record
		self.recorded_events: typing.List[typing.Tuple[float, mido.Message]] = []
		self.active_notes: typing.Set[typing.Tuple[int, int]] = set()


	def note_on (self, note: int, velocity: int, channel: int) -> None:

		"""Send a note-on."""

		if not self._valid(note, velocity, channel):
			return

		self.active_notes.add((channel, note))
		self._send(mido.Message('note_on', channel=channel, note=note, velocity=velocity))


	def note_off (self, note: int, velocity: int, channel: int) -> None:

		"""Send a note-off."""

		if not self._valid(note, velocity, channel):
			return

		self.active_notes.discard((channel, note))
		self._send(mido.Message('note_off', channel=channel, note=note, velocity=velocity))


	def panic (self) -> None:

		"""
		Send note-off for every tracked note, then All Notes Off (CC 123) and
		All Sound Off (CC 120) on all 16 channels.
		"""

		logger.info("Panic: sending all notes off.")

		for channel, note in sorted(self.active_notes):
			self._send(mido.Message('note_off', channel=channel, note=note, velocity=0))

		self.active_notes.clear()

		for channel in range(arpsync.constants.velocity.MIDI_CHANNELS):
			self._send(mido.Message('control_change', channel=channel, control=123, value=0))
			self._send(mido.Message('control_change', channel=channel, control=120, value=0))


	def close (self) -> None:

		"""Close the output port."""

		if self.midi_out is not None:
			self.midi_out.close()
			self.midi_out = None


	def save_recording (self, filename: typing.Optional[str] = None, bpm: float = 120) -> typing.Optional[str]:

		"""
		Save the recorded messages to a standard MIDI file.

		Timestamps are converted from seconds to ticks at ``bpm`` with 480
		ticks per beat. Returns the filename written, or None if there was
		nothing to save.
		"""

		if not self.recording or not self.recorded_events:
			return None

		if filename is None:
			now = datetime.datetime.now()
			filename = now.strftime("arp_%Y%m%d_%H%M%S.mid")

		logger.info(f"Saving MIDI recording ({len(self.recorded_events)} events) to {filename}...")

		ticks_per_beat = 480
		tempo = mido.bpm2tempo(bpm)

		mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)
		track = mido.MidiTrack()
		mid.tracks.append(track)

		track.append(mido.MetaMessage('set_tempo', tempo=tempo, time=0))

		events = sorted(self.recorded_events, key=lambda event: event[0])
		start_time = events[0][0]
		last_tick = 0

		for timestamp, message in events:

			absolute_tick = int(round(mido.second2tick(timestamp - start_time, ticks_per_beat, tempo)))
			delta_ticks = max(0, absolute_tick - last_tick)

			track.append(message.copy(time=delta_ticks))

			last_tick = max(last_tick, absolute_tick)

		mid.save(filename)
		logger.info(f"Saved {filename}")

		return filename


	def _valid (self, note: int, velocity: int, channel: int) -> bool:

		lo = arpsync.constants.velocity.MIDI_DATA_MIN
		hi = arpsync.constants.velocity.MIDI_DATA_MAX

		if not (lo <= note <= hi and lo <= velocity <= hi and 0 <= channel < arpsync.constants.velocity.MIDI_CHANNELS):
			logger.warning(f"Rejected note event note={note} velocity={velocity} channel={channel}")
			return False

		return True


	def _send (self, message: mido.Message) -> None:

		if self.recording and self.scheduler is not None:
			self.recorded_events.append((self.scheduler.now(), message))

		if self.midi_out is None:
			return

		try:
			self.midi_out.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")
