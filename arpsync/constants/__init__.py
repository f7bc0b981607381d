"""Constants for arpsync.

This package contains three sets of constants:

- ``arpsync.constants.pulses`` - Pulse-based MIDI timing (24 PPQN clock grid)
- ``arpsync.constants.velocity`` - MIDI velocity constants
- ``arpsync.constants.clock`` - Clock engine and arpeggiator limits

Pulse constants are re-exported here, so ``arpsync.constants.MIDI_QUARTER_NOTE``
works without importing the submodule.
"""

# These match the values in arpsync.constants.pulses.

MIDI_THIRTYSECOND_NOTE = 3
MIDI_SIXTEENTH_NOTE = 6
MIDI_EIGHTH_NOTE = 12
MIDI_QUARTER_NOTE = 24
MIDI_HALF_NOTE = 48
MIDI_WHOLE_NOTE = 96
