import logging
import random
import typing


logger = logging.getLogger(__name__)

Number = typing.TypeVar("Number", int, float)

_MASK_64 = 0xFFFFFFFFFFFFFFFF


def _mix64 (value: int) -> int:

	"""
	SplitMix64 finalizer - scrambles a 64-bit integer into a well-distributed one.
	"""

	value = (value + 0x9E3779B97F4A7C15) & _MASK_64
	value = ((value ^ (value >> 30)) * 0xBF58476D1CE4E5B9) & _MASK_64
	value = ((value ^ (value >> 27)) * 0x94D049BB133111EB) & _MASK_64
	return value ^ (value >> 31)


def seeded_unit (seed: int, index: int) -> float:

	"""
	Return a deterministic pseudo-random float in ``[0, 1)`` for ``(seed, index)``.

	This is a counter-based generator: there is no stream state, so any index
	can be read in any order and the same pair always gives the same value -
	across instances, runs and platforms.
	"""

	mixed = _mix64(_mix64(seed & _MASK_64) ^ (index & _MASK_64))
	return (mixed >> 11) / float(1 << 53)


def seeded_signed (seed: int, index: int) -> float:

	"""
	Return a deterministic pseudo-random float in ``[-1, 1)`` for ``(seed, index)``.
	"""

	return seeded_unit(seed, index) * 2.0 - 1.0


def resolve_seed (seed: typing.Optional[int]) -> int:

	"""
	Return ``seed`` unchanged, or draw a fresh one when it is ``None``.

	Modifiers always hold a concrete seed so that a constructed instance is
	reproducible even when the caller did not choose the seed.
	"""

	if seed is not None:
		return int(seed)

	return random.randrange(1 << 32)


def clamp_setting (name: str, value: Number, minimum: Number, maximum: Number) -> Number:

	"""
	Clamp a configuration value into ``[minimum, maximum]``.

	Out-of-range values are never an error: the nearest valid value is returned
	and a warning is logged.
	"""

	if value != value:
		logger.warning(f"{name} is not a number - using {minimum}")
		return minimum

	if value < minimum:
		logger.warning(f"{name} {value} is below {minimum} - clamped to {minimum}")
		return minimum

	if value > maximum:
		logger.warning(f"{name} {value} is above {maximum} - clamped to {maximum}")
		return maximum

	return value
