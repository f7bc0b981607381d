import logging

import pytest

import arpsync.modifiers


# --- GateProbability ---


def test_gate_probability_one_always_plays () -> None:

	gate = arpsync.modifiers.GateProbability(p=1.0, seed=3)

	assert all(gate.should_play(i) for i in range(200))


def test_gate_probability_zero_never_plays () -> None:

	gate = arpsync.modifiers.GateProbability(p=0.0, seed=3)

	assert not any(gate.should_play(i) for i in range(200))


def test_gate_probability_same_seed_same_decisions () -> None:

	"""Two instances with the same (p, seed) agree on every index."""

	a = arpsync.modifiers.GateProbability(p=0.5, seed=99)
	b = arpsync.modifiers.GateProbability(p=0.5, seed=99)

	decisions = [a.should_play(i) for i in range(256)]

	assert decisions == [b.should_play(i) for i in range(256)]
	# Order of queries does not matter.
	assert [b.should_play(i) for i in reversed(range(256))] == list(reversed(decisions))


def test_gate_probability_rate_is_roughly_p () -> None:

	gate = arpsync.modifiers.GateProbability(p=0.25, seed=1)

	played = sum(gate.should_play(i) for i in range(4000))

	assert 800 < played < 1200


def test_gate_probability_is_clamped (caplog: pytest.LogCaptureFixture) -> None:

	with caplog.at_level(logging.WARNING):
		gate = arpsync.modifiers.GateProbability(p=1.5, seed=0)

	assert gate.p == 1.0
	assert "clamped" in caplog.text


# --- VelocityHumanize ---


def test_velocity_humanize_range () -> None:

	humanize = arpsync.modifiers.VelocityHumanize(amount=0.5, seed=11)

	offsets = [humanize.offset(i) for i in range(500)]

	assert all(-5.0 <= offset <= 5.0 for offset in offsets)
	assert min(offsets) < 0 < max(offsets)


def test_velocity_humanize_zero_amount () -> None:

	humanize = arpsync.modifiers.VelocityHumanize(amount=0.0, seed=11)

	assert humanize.offset(7) == 0.0


def test_velocity_humanize_is_reproducible () -> None:

	a = arpsync.modifiers.VelocityHumanize(amount=1.0, seed=5)
	b = arpsync.modifiers.VelocityHumanize(amount=1.0, seed=5)
	c = arpsync.modifiers.VelocityHumanize(amount=1.0, seed=6)

	assert [a.offset(i) for i in range(32)] == [b.offset(i) for i in range(32)]
	assert [a.offset(i) for i in range(32)] != [c.offset(i) for i in range(32)]


# --- AccentPattern ---


@pytest.mark.parametrize("kind, expected", [
	("none", [1.0, 1.0, 1.0, 1.0, 1.0, 1.0]),
	("downbeats", [1.25, 1.0, 1.0, 1.0, 1.25, 1.0]),
	("offbeats", [1.0, 1.0, 1.25, 1.0, 1.0, 1.0]),
	("every-3rd", [1.0, 1.0, 1.2, 1.0, 1.0, 1.2]),
])
def test_accent_multipliers (kind: str, expected: list[float]) -> None:

	accent = arpsync.modifiers.AccentPattern(kind)

	assert [accent.multiplier(i) for i in range(6)] == expected


def test_unknown_accent_disables_accents (caplog: pytest.LogCaptureFixture) -> None:

	with caplog.at_level(logging.WARNING, logger="arpsync.modifiers"):
		accent = arpsync.modifiers.AccentPattern("backbeat")

	assert accent.kind is arpsync.modifiers.AccentKind.NONE
	assert "backbeat" in caplog.text
