"""Clock engine and arpeggiator limits.

All durations are in **seconds**.
"""

# Internal clock tempo range (BPM)
MIN_BPM = 20
MAX_BPM = 240
DEFAULT_BPM = 120

# External pulse filtering
MIN_PULSE_INTERVAL = 0.003      # Shorter intervals are duplicate deliveries (~833 BPM ceiling)
INTERVAL_CAPACITY = 10          # Rolling window used for tempo estimation
MIN_INTERVAL_SAMPLES = 3        # Samples required before the estimate is trusted
WATCHDOG_TIMEOUT = 0.5          # Silence after which an external clock is considered stopped

# Arpeggiator ranges
MIN_OCTAVE_RANGE = 1
MAX_OCTAVE_RANGE = 4
MIN_RATCHET_COUNT = 1
MAX_RATCHET_COUNT = 4
MIN_CLOCK_DIVISOR = 1
MAX_CLOCK_DIVISOR = 24
DEFAULT_CLOCK_DIVISOR = 4       # Sixteenth notes
DEFAULT_GATE_LENGTH = 0.5
MIN_GATE_DURATION = 0.005       # No arpeggiated note is ever shorter than this

# Fraction of a step covered by full-strength timing humanization
HUMANIZE_STEP_FRACTION = 0.1
# Velocity units covered by full-strength velocity humanization
VELOCITY_HUMANIZE_RANGE = 10
