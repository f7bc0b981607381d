import logging
import pathlib

import mido
import pytest

import arpsync.note_engine
import arpsync.scheduler
import conftest


def test_note_messages_are_sent () -> None:

	out = conftest.FakeMidiOut()
	engine = arpsync.note_engine.MidoNoteEngine(out)

	engine.note_on(60, 100, 2)
	engine.note_off(60, 0, 2)

	assert out.sent == [
		mido.Message('note_on', channel=2, note=60, velocity=100),
		mido.Message('note_off', channel=2, note=60, velocity=0)
	]


def test_active_notes_are_tracked () -> None:

	engine = arpsync.note_engine.MidoNoteEngine(conftest.FakeMidiOut())

	engine.note_on(60, 100, 0)
	engine.note_on(64, 100, 1)
	engine.note_off(60, 0, 0)

	assert engine.active_notes == {(1, 64)}


def test_out_of_range_values_are_rejected (caplog: pytest.LogCaptureFixture) -> None:

	out = conftest.FakeMidiOut()
	engine = arpsync.note_engine.MidoNoteEngine(out)

	with caplog.at_level(logging.WARNING, logger="arpsync.note_engine"):
		engine.note_on(128, 100, 0)
		engine.note_on(60, 200, 0)
		engine.note_on(60, 100, 16)

	assert out.sent == []
	assert len(caplog.records) == 3


def test_panic_ends_tracked_notes_and_sends_all_notes_off () -> None:

	out = conftest.FakeMidiOut()
	engine = arpsync.note_engine.MidoNoteEngine(out)

	engine.note_on(60, 100, 0)
	out.sent.clear()

	engine.panic()

	assert out.sent[0] == mido.Message('note_off', channel=0, note=60, velocity=0)

	controls = [message for message in out.sent if message.type == 'control_change']

	assert len(controls) == 32
	assert {message.control for message in controls} == {120, 123}
	assert engine.active_notes == set()


def test_send_failure_is_logged (caplog: pytest.LogCaptureFixture) -> None:

	class BrokenOut (conftest.FakeMidiOut):

		def send (self, message: mido.Message) -> None:
			raise OSError("unplugged")

	engine = arpsync.note_engine.MidoNoteEngine(BrokenOut())

	with caplog.at_level(logging.ERROR, logger="arpsync.note_engine"):
		engine.note_on(60, 100, 0)

	assert "MIDI send failed" in caplog.text


def test_close_closes_port () -> None:

	out = conftest.FakeMidiOut()
	engine = arpsync.note_engine.MidoNoteEngine(out)

	engine.close()
	engine.close()

	assert out.closed is True
	assert engine.midi_out is None


def test_nothing_to_save_without_recording (tmp_path: pathlib.Path) -> None:

	engine = arpsync.note_engine.MidoNoteEngine(conftest.FakeMidiOut())
	engine.note_on(60, 100, 0)

	assert engine.save_recording(str(tmp_path / "out.mid")) is None


def test_recording_is_saved_with_second_based_timing (tmp_path: pathlib.Path) -> None:

	"""Recorded times become ticks at 480 per beat; half a second at 120 BPM is one beat."""

	scheduler = arpsync.scheduler.ManualScheduler()
	engine = arpsync.note_engine.MidoNoteEngine(scheduler=scheduler, record=True)

	scheduler.advance(1.0)
	engine.note_on(60, 100, 0)
	scheduler.advance(0.5)
	engine.note_off(60, 0, 0)

	filename = engine.save_recording(str(tmp_path / "out.mid"), bpm=120)

	assert filename == str(tmp_path / "out.mid")

	mid = mido.MidiFile(filename)
	track = mid.tracks[0]
	notes = [message for message in track if message.type in ('note_on', 'note_off')]

	assert mid.ticks_per_beat == 480
	assert track[0].type == 'set_tempo'
	assert track[0].tempo == mido.bpm2tempo(120)
	assert [message.time for message in notes] == [0, 480]
	assert [message.type for message in notes] == ['note_on', 'note_off']
