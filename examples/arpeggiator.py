"""
arpsync - Live Arpeggiator

Plays a swung, accented arpeggio over a held minor seventh chord, either on
its own internal clock or following an external MIDI clock (a DAW, a drum
machine). Notes played on the input device are added to the chord.

How it works
────────────
The clock produces 24 pulses per quarter note. With a clock divisor of 4 the
arpeggiator takes one step every 6 pulses (a sixteenth note). Each step plays
the next note of the up-down order across two octaves, with a touch of swing,
downbeat accents and a small chance of skipping a step.

How to run
──────────
1. Set MIDI_OUTPUT below to your MIDI interface name (None = auto-select).
2. Set MIDI_INPUT to follow an external clock, or leave it None.
3. Run: python examples/arpeggiator.py
4. Press Ctrl+C to stop.

Tweakable parameters
────────────────────
- PATTERN: up, down, up-down, down-up, random or chord.
- Clock divisor: 2 = eighths, 4 = sixteenths, 8 = thirty-seconds.
- Ratchets: 2-4 re-triggers each step inside its own length.
- Timing: try "shuffle" or "dotted", or layer "swing" with "humanize".
"""

import asyncio
import logging

import arpsync
import arpsync.config
import arpsync.session


logging.basicConfig(level=logging.INFO)


# ─── MIDI Setup ──────────────────────────────────────────────────────
#
# Channel numbers are 0-indexed (MIDI channel 1 = 0).

MIDI_OUTPUT = None
MIDI_INPUT = None
MIDI_CHANNEL = 0

PATTERN = "up-down"
CHORD = [57, 60, 64, 67]   # A minor seventh


config = arpsync.config.SessionConfig(
	seed = 7,
	output_device = MIDI_OUTPUT,
	input_device = MIDI_INPUT,
	channel = MIDI_CHANNEL,
	clock_source = "external" if MIDI_INPUT else "internal",
	bpm = 118,
	pattern = PATTERN,
	octave_range = 2,
	clock_divisor = 4,
	gate_length = 0.6,
	timing_kind = "layered",
	timing_components = [("swing", 0.4), ("humanize", 0.2)],
	accent = "downbeats",
	gate_probability = 0.9,
	notes = CHORD,
)

session = arpsync.session.Session(config)

# Print every step as it plays.
session.arpeggiator.on_step(lambda step, notes: logging.debug(f"step {step}: {notes}"))

try:
	asyncio.run(session.run())
except KeyboardInterrupt:
	pass
