"""Generative per-step modifiers.

Each modifier is a pure function of the step index plus its own configuration
and seed. Two instances built with the same parameters agree on every index,
which keeps arpeggiator output reproducible and testable.
"""

import dataclasses
import enum
import logging
import typing

import arpsync.constants.clock
import arpsync.sequence_utils


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class VelocityHumanize:

	"""
	Reproducible velocity variation.

	``offset(index)`` lies in ``[-10 * amount, +10 * amount]`` velocity units.
	The index is the wrapping note-order position, so a single held note gets
	the same offset on every step.

	Parameters:
		amount: Strength of the variation (0-1).
		seed: Seed for the variation. ``None`` draws one at construction.
	"""

	amount: float = 0.0
	seed: typing.Optional[int] = None

	def __post_init__ (self) -> None:
		self.amount = arpsync.sequence_utils.clamp_setting("Velocity humanize amount", float(self.amount), 0.0, 1.0)
		self.seed = arpsync.sequence_utils.resolve_seed(self.seed)

	def offset (self, index: int) -> float:

		"""Return the velocity offset for a step index."""

		if self.amount == 0:
			return 0.0

		assert self.seed is not None
		variation = arpsync.sequence_utils.seeded_signed(self.seed, index)

		return variation * arpsync.constants.clock.VELOCITY_HUMANIZE_RANGE * self.amount


class AccentKind (str, enum.Enum):

	"""Accent layouts understood by ``AccentPattern``."""

	NONE = "none"
	DOWNBEATS = "downbeats"
	OFFBEATS = "offbeats"
	EVERY_3RD = "every-3rd"


class AccentPattern:

	"""
	Velocity multiplier emphasising certain step positions.

	- ``none``: 1.0 everywhere.
	- ``downbeats``: 1.25 on every fourth step starting at 0.
	- ``offbeats``: 1.25 on steps 2, 6, 10, ...
	- ``every-3rd``: 1.2 on steps 2, 5, 8, ...
	"""

	def __init__ (self, kind: typing.Union[str, AccentKind] = AccentKind.NONE) -> None:

		try:
			self.kind = AccentKind(kind)
		except ValueError:
			logger.warning(f"Unknown accent pattern {kind!r} - accents disabled")
			self.kind = AccentKind.NONE


	def multiplier (self, index: int) -> float:

		"""Return the velocity multiplier for a step index."""

		if self.kind is AccentKind.DOWNBEATS:
			return 1.25 if index % 4 == 0 else 1.0

		if self.kind is AccentKind.OFFBEATS:
			return 1.25 if index % 4 == 2 else 1.0

		if self.kind is AccentKind.EVERY_3RD:
			return 1.2 if index % 3 == 2 else 1.0

		return 1.0


	def __repr__ (self) -> str:

		return f"AccentPattern({self.kind.value!r})"


@dataclasses.dataclass
class GateProbability:

	"""
	Reproducible per-step play/skip decision.

	``should_play(index)`` is true with probability ``p``. ``p=1`` always
	plays, ``p=0`` never does, and the same ``(p, seed)`` pair always yields
	the same accept/reject sequence.

	The arpeggiator keys decisions by its position in the note order, which
	wraps. With a single held note every step uses index 0, so a step either
	always plays or never does for a given seed.
	"""

	p: float = 1.0
	seed: typing.Optional[int] = None

	def __post_init__ (self) -> None:
		self.p = arpsync.sequence_utils.clamp_setting("Gate probability", float(self.p), 0.0, 1.0)
		self.seed = arpsync.sequence_utils.resolve_seed(self.seed)

	def should_play (self, index: int) -> bool:

		"""Decide whether the step at ``index`` sounds."""

		if self.p >= 1.0:
			return True

		if self.p <= 0.0:
			return False

		assert self.seed is not None
		return arpsync.sequence_utils.seeded_unit(self.seed, index) < self.p
