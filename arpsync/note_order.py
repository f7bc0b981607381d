"""Note orders derived from the held notes, one per arpeggio pattern."""

import enum
import logging
import random
import typing


logger = logging.getLogger(__name__)


class ArpPattern (str, enum.Enum):

	"""Orders in which held notes are played."""

	UP = "up"
	DOWN = "down"
	UP_DOWN = "up-down"
	DOWN_UP = "down-up"
	RANDOM = "random"
	CHORD = "chord"


def parse_pattern (value: typing.Union[str, ArpPattern]) -> typing.Optional[ArpPattern]:

	"""
	Return the ``ArpPattern`` for a name, or ``None`` (with a warning) if unknown.

	Underscores are accepted in place of hyphens (``"up_down"``).
	"""

	if isinstance(value, ArpPattern):
		return value

	try:
		return ArpPattern(str(value).replace("_", "-"))
	except ValueError:
		logger.warning(f"Unknown arpeggio pattern {value!r}")
		return None


def _ping_pong (first: typing.List[int], second: typing.List[int]) -> typing.List[int]:

	"""
	Join a run with the reverse run minus both endpoints, so the turnaround
	notes are not repeated when the sequence wraps.
	"""

	if len(first) <= 1:
		return list(first)

	return first + second[1:-1]


def derive_note_order (
	held_notes: typing.Sequence[int],
	pattern: ArpPattern,
	octave_range: int = 1,
	rng: typing.Optional[random.Random] = None
) -> typing.List[int]:

	"""
	Expand held notes into the sequence the arpeggiator steps through.

	The pattern is applied to the held notes first, then octave layers are
	concatenated: each layer is the whole pattern-ordered sequence transposed
	up by a further 12 semitones. Transposed notes above 127 are dropped.

	For ``CHORD`` the result is the set of notes sounded together on every
	step; for ``RANDOM`` a fresh permutation is drawn from ``rng`` on each call.

	Example::

		derive_note_order([60, 64, 67], ArpPattern.UP_DOWN)    # [60, 64, 67, 64]
		derive_note_order([60], ArpPattern.UP, octave_range=3)  # [60, 72, 84]
	"""

	if not held_notes:
		return []

	ascending = sorted(held_notes)
	descending = list(reversed(ascending))

	if pattern is ArpPattern.UP or pattern is ArpPattern.CHORD:
		ordered = ascending

	elif pattern is ArpPattern.DOWN:
		ordered = descending

	elif pattern is ArpPattern.UP_DOWN:
		ordered = _ping_pong(ascending, descending)

	elif pattern is ArpPattern.DOWN_UP:
		ordered = _ping_pong(descending, ascending)

	else:
		if rng is None:
			rng = random.Random()
		ordered = list(held_notes)
		rng.shuffle(ordered)

	notes: typing.List[int] = []

	for octave in range(max(1, octave_range)):
		for note in ordered:
			transposed = note + 12 * octave
			if transposed <= 127:
				notes.append(transposed)

	return notes
