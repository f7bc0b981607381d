"""Pulse-based MIDI timing constants.

The clock engine uses **24 pulses per quarter note** (PPQN = 24), the
discretization of a standard MIDI clock stream (one 0xF8 message per pulse).
These constants represent the number of pulses for each standard note duration.

The clock fires a quarter-note event every ``MIDI_QUARTER_NOTE`` accepted
pulses and a sixteenth-note event every ``MIDI_SIXTEENTH_NOTE`` pulses.
"""

# MIDI Standards - number of pulses in each

MIDI_THIRTYSECOND_NOTE = 3
MIDI_SIXTEENTH_NOTE = 6
MIDI_EIGHTH_NOTE = 12
MIDI_QUARTER_NOTE = 24
MIDI_HALF_NOTE = 48
MIDI_WHOLE_NOTE = 96
