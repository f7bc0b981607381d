"""MIDI velocity constants.

Velocity is the MIDI attack strength. Arpeggiated notes are always clamped to
``MIN_VELOCITY``..``MAX_VELOCITY`` - a velocity of 0 would be read by most
receivers as a note-off, so the lower bound is 1.
"""

# Primary default
DEFAULT_VELOCITY = 100          # Base velocity for arpeggiated notes

# Valid range for a sounding note
MIN_VELOCITY = 1
MAX_VELOCITY = 127

# Full MIDI data byte range (used by the note engine's defensive checks)
MIDI_DATA_MIN = 0
MIDI_DATA_MAX = 127
MIDI_CHANNELS = 16
