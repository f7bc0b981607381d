"""Step timing strategies.

A timing strategy maps ``(step index, nominal step duration)`` to a trigger
offset relative to the step's clock boundary. Positive offsets delay the step,
negative offsets pull it earlier. Strategies hold configuration only, so the
same instance gives the same answer for the same inputs every time.

Example::

	swing = SwingTiming(amount=1.0)
	swing.delay_offset(0, 0.125)   # 0.0      (downbeat, straight)
	swing.delay_offset(1, 0.125)   # 0.0625   (offbeat, pushed half a step)

	feel = LayeredTiming([SwingTiming(0.5), HumanizeTiming(0.3, seed=7)])
"""

import abc
import dataclasses
import enum
import logging
import typing

import arpsync.constants.clock
import arpsync.sequence_utils


logger = logging.getLogger(__name__)


class TimingKind (str, enum.Enum):

	"""Names accepted by ``create_timing_strategy``."""

	STRAIGHT = "straight"
	SWING = "swing"
	SHUFFLE = "shuffle"
	DOTTED = "dotted"
	HUMANIZE = "humanize"
	LAYERED = "layered"


class TimingStrategy (abc.ABC):

	"""
	Base class for step timing strategies.
	"""

	@abc.abstractmethod
	def delay_offset (self, step_index: int, step_duration: float) -> float:

		"""
		Return the trigger offset in the same unit as ``step_duration``.
		"""


def _clamp_amount (name: str, amount: float) -> float:

	return arpsync.sequence_utils.clamp_setting(f"{name} amount", float(amount), 0.0, 1.0)


class StraightTiming (TimingStrategy):

	"""Every step lands exactly on its boundary."""

	def delay_offset (self, step_index: int, step_duration: float) -> float:

		return 0.0


	def __repr__ (self) -> str:

		return "StraightTiming()"


@dataclasses.dataclass
class SwingTiming (TimingStrategy):

	"""
	Delay odd steps by up to half a step.

	``amount`` (0-1) maps to a delay of 0-50% of the step duration, so 1.0
	puts the offbeat exactly halfway to the next step.
	"""

	amount: float = 0.5

	def __post_init__ (self) -> None:
		self.amount = _clamp_amount("Swing", self.amount)

	def delay_offset (self, step_index: int, step_duration: float) -> float:

		if step_index % 2 == 0:
			return 0.0

		return self.amount * 0.5 * step_duration


@dataclasses.dataclass
class ShuffleTiming (TimingStrategy):

	"""
	Delay odd steps toward the 2/3 point of the step - a triplet shuffle.
	"""

	amount: float = 0.5

	def __post_init__ (self) -> None:
		self.amount = _clamp_amount("Shuffle", self.amount)

	def delay_offset (self, step_index: int, step_duration: float) -> float:

		if step_index % 2 == 0:
			return 0.0

		return self.amount * (2.0 / 3.0) * step_duration


@dataclasses.dataclass
class DottedTiming (TimingStrategy):

	"""
	Delay odd steps toward the 3/4 point of the step - a dotted feel.
	"""

	amount: float = 0.5

	def __post_init__ (self) -> None:
		self.amount = _clamp_amount("Dotted", self.amount)

	def delay_offset (self, step_index: int, step_duration: float) -> float:

		if step_index % 2 == 0:
			return 0.0

		return self.amount * 0.75 * step_duration


@dataclasses.dataclass
class HumanizeTiming (TimingStrategy):

	"""
	Nudge every step by a small, reproducible amount.

	The offset is derived from ``(seed, step_index)`` and scaled by the step
	duration: a slower tempo gives a proportionally larger absolute variation,
	because timing error is heard relative to the beat. At ``amount=1.0`` the
	offset stays within 10% of a step either side of the boundary.

	Parameters:
		amount: Strength of the variation (0-1).
		seed: Seed for the variation. ``None`` draws one at construction; the
			instance is reproducible from then on.
	"""

	amount: float = 0.5
	seed: typing.Optional[int] = None

	def __post_init__ (self) -> None:
		self.amount = _clamp_amount("Humanize", self.amount)
		self.seed = arpsync.sequence_utils.resolve_seed(self.seed)

	def delay_offset (self, step_index: int, step_duration: float) -> float:

		if self.amount == 0:
			return 0.0

		assert self.seed is not None
		variation = arpsync.sequence_utils.seeded_signed(self.seed, step_index)

		return variation * self.amount * arpsync.constants.clock.HUMANIZE_STEP_FRACTION * step_duration


class LayeredTiming (TimingStrategy):

	"""
	Sum the offsets of several strategies.

	The total is kept within one step either side of the boundary so a stack
	of strong feels can never push a step past its neighbour.
	"""

	def __init__ (self, strategies: typing.Iterable[TimingStrategy]) -> None:

		self.strategies: typing.List[TimingStrategy] = list(strategies)


	def delay_offset (self, step_index: int, step_duration: float) -> float:

		total = sum(strategy.delay_offset(step_index, step_duration) for strategy in self.strategies)

		limit = abs(step_duration)

		return max(-limit, min(limit, total))


	def __repr__ (self) -> str:

		return f"LayeredTiming({self.strategies!r})"


def create_timing_strategy (
	kind: typing.Union[str, TimingKind],
	amount: float = 0.0,
	seed: typing.Optional[int] = None,
	components: typing.Optional[typing.Sequence[typing.Tuple[typing.Union[str, TimingKind], float]]] = None
) -> TimingStrategy:

	"""
	Build a timing strategy by name.

	Parameters:
		kind: ``"straight"``, ``"swing"``, ``"shuffle"``, ``"dotted"``,
			``"humanize"`` or ``"layered"``. Unknown names fall back to straight
			timing with a warning.
		amount: Strength (0-1). Swing, shuffle and dotted with ``amount <= 0``
			are straight timing.
		seed: Seed for humanize (also passed to humanize components of a layer).
		components: For ``"layered"`` - a list of ``(kind, amount)`` pairs.

	Example::

		create_timing_strategy("layered", components=[("swing", 0.6), ("humanize", 0.2)], seed=3)
	"""

	try:
		kind = TimingKind(kind)
	except ValueError:
		logger.warning(f"Unknown timing strategy {kind!r} - using straight timing")
		return StraightTiming()

	if kind is TimingKind.LAYERED:

		layers: typing.List[TimingStrategy] = []

		for component_kind, component_amount in components or []:

			if component_kind in (TimingKind.LAYERED, TimingKind.LAYERED.value):
				logger.warning("Nested layered timing is not supported - component skipped")
				continue

			layers.append(create_timing_strategy(component_kind, component_amount, seed))

		return LayeredTiming(layers)

	if kind is TimingKind.HUMANIZE:
		return HumanizeTiming(amount=amount, seed=seed)

	if kind is TimingKind.STRAIGHT or amount <= 0:
		return StraightTiming()

	if kind is TimingKind.SWING:
		return SwingTiming(amount=amount)

	if kind is TimingKind.SHUFFLE:
		return ShuffleTiming(amount=amount)

	return DottedTiming(amount=amount)
