import unittest

import arpsync.timing


STEP = 100.0


class TimingStrategyTests (unittest.TestCase):

	"""
	Tests for step timing strategies.
	"""

	def test_straight_never_moves (self) -> None:

		strategy = arpsync.timing.StraightTiming()

		self.assertEqual([strategy.delay_offset(i, STEP) for i in range(4)], [0.0, 0.0, 0.0, 0.0])

	def test_full_swing_pushes_offbeat_half_a_step (self) -> None:

		"""
		Swing at 1.0 moves odd steps by 50% and leaves even steps alone.
		"""

		swing = arpsync.timing.SwingTiming(amount=1.0)

		self.assertEqual(swing.delay_offset(0, STEP), 0.0)
		self.assertAlmostEqual(swing.delay_offset(1, STEP), 50.0)
		self.assertEqual(swing.delay_offset(2, STEP), 0.0)

	def test_shuffle_and_dotted_positions (self) -> None:

		shuffle = arpsync.timing.ShuffleTiming(amount=1.0)
		dotted = arpsync.timing.DottedTiming(amount=0.5)

		self.assertAlmostEqual(shuffle.delay_offset(1, STEP), 200.0 / 3.0)
		self.assertAlmostEqual(dotted.delay_offset(3, STEP), 37.5)
		self.assertEqual(dotted.delay_offset(4, STEP), 0.0)

	def test_amount_is_clamped (self) -> None:

		with self.assertLogs("arpsync.sequence_utils", level="WARNING"):
			swing = arpsync.timing.SwingTiming(amount=3.0)

		self.assertEqual(swing.amount, 1.0)

	def test_humanize_is_deterministic_and_bounded (self) -> None:

		"""
		The same seed gives the same offsets; offsets stay within 10% of a step.
		"""

		a = arpsync.timing.HumanizeTiming(amount=1.0, seed=42)
		b = arpsync.timing.HumanizeTiming(amount=1.0, seed=42)

		offsets_a = [a.delay_offset(i, STEP) for i in range(64)]
		offsets_b = [b.delay_offset(i, STEP) for i in range(64)]

		self.assertEqual(offsets_a, offsets_b)
		self.assertTrue(all(-10.0 <= offset <= 10.0 for offset in offsets_a))
		self.assertGreater(len(set(offsets_a)), 1)

	def test_humanize_scales_with_step_duration (self) -> None:

		humanize = arpsync.timing.HumanizeTiming(amount=0.5, seed=7)

		self.assertAlmostEqual(humanize.delay_offset(3, 2 * STEP), 2 * humanize.delay_offset(3, STEP))

	def test_humanize_without_seed_is_still_reproducible (self) -> None:

		humanize = arpsync.timing.HumanizeTiming(amount=1.0)

		self.assertIsNotNone(humanize.seed)
		self.assertEqual(humanize.delay_offset(5, STEP), humanize.delay_offset(5, STEP))

	def test_layered_sums_offsets (self) -> None:

		layered = arpsync.timing.LayeredTiming([
			arpsync.timing.SwingTiming(amount=0.5),
			arpsync.timing.DottedTiming(amount=0.5)
		])

		self.assertAlmostEqual(layered.delay_offset(1, STEP), 25.0 + 37.5)
		self.assertEqual(layered.delay_offset(0, STEP), 0.0)

	def test_layered_total_is_clamped_to_one_step (self) -> None:

		layered = arpsync.timing.LayeredTiming([
			arpsync.timing.ShuffleTiming(amount=1.0),
			arpsync.timing.DottedTiming(amount=1.0)
		])

		self.assertEqual(layered.delay_offset(1, STEP), STEP)


class CreateTimingStrategyTests (unittest.TestCase):

	"""
	Tests for building strategies by name.
	"""

	def test_named_kinds (self) -> None:

		self.assertIsInstance(arpsync.timing.create_timing_strategy("swing", 0.5), arpsync.timing.SwingTiming)
		self.assertIsInstance(arpsync.timing.create_timing_strategy("shuffle", 0.5), arpsync.timing.ShuffleTiming)
		self.assertIsInstance(arpsync.timing.create_timing_strategy("dotted", 0.5), arpsync.timing.DottedTiming)
		self.assertIsInstance(arpsync.timing.create_timing_strategy("humanize", 0.5, seed=1), arpsync.timing.HumanizeTiming)
		self.assertIsInstance(arpsync.timing.create_timing_strategy("straight"), arpsync.timing.StraightTiming)

	def test_zero_amount_is_straight (self) -> None:

		self.assertIsInstance(arpsync.timing.create_timing_strategy("swing", 0.0), arpsync.timing.StraightTiming)

	def test_unknown_kind_falls_back_to_straight (self) -> None:

		with self.assertLogs("arpsync.timing", level="WARNING"):
			strategy = arpsync.timing.create_timing_strategy("lazy")

		self.assertIsInstance(strategy, arpsync.timing.StraightTiming)

	def test_layered_from_components (self) -> None:

		strategy = arpsync.timing.create_timing_strategy(
			"layered",
			components=[("swing", 1.0), ("humanize", 0.0)],
			seed=3
		)

		self.assertIsInstance(strategy, arpsync.timing.LayeredTiming)
		self.assertEqual(len(strategy.strategies), 2)
		self.assertAlmostEqual(strategy.delay_offset(1, STEP), 50.0)

	def test_nested_layered_component_is_skipped (self) -> None:

		with self.assertLogs("arpsync.timing", level="WARNING"):
			strategy = arpsync.timing.create_timing_strategy(
				"layered",
				components=[("layered", 1.0), ("swing", 1.0)]
			)

		self.assertEqual(len(strategy.strategies), 1)
