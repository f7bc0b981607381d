"""Internal clock jitter benchmark.

Runs the internal clock on the asyncio event loop for a configurable number of
bars and measures how late each pulse callback runs relative to its ideal
deadline, plus how far the last deadline sits from the first one plus a whole
number of periods (drift).

Usage:
    python benchmarks/clock_jitter.py [--bpm BPM] [--bars N] [--with-arp]

Options:
    --bpm BPM           Tempo in BPM (default: 120)
    --bars N            Number of bars to measure (default: 8)
    --with-arp          Drive an enabled arpeggiator (no MIDI output) from the
                        clock so step processing is part of the measurement
"""

import argparse
import asyncio
import logging
import statistics

# Suppress engine logging during benchmark - we want clean output.
logging.basicConfig(level=logging.ERROR)

import arpsync.arpeggiator
import arpsync.clock
import arpsync.scheduler

# ---------------------------------------------------------------------------

PPQN      = 24   # MIDI quarter note = 24 pulses
BEATS_PER_BAR = 4


def _run_benchmark (bpm: float, bars: int, with_arp: bool) -> tuple[list[float], float]:

	"""Run the internal clock for *bars* bars and return (per-pulse lateness, drift) in seconds."""

	jitter_log: list[float] = []
	pulses = bars * BEATS_PER_BAR * PPQN
	drift = 0.0

	async def _run () -> None:

		nonlocal drift

		scheduler = arpsync.scheduler.AsyncioScheduler()
		clock = arpsync.clock.Clock(scheduler, source=arpsync.clock.ClockSource.INTERNAL, internal_bpm=bpm)
		done = asyncio.Event()

		if with_arp:
			arp = arpsync.arpeggiator.Arpeggiator(clock)
			arp.set_enabled(True)
			arp.set_notes([48, 55, 60, 63, 67])
			arp.set_ratchet_count(2)

		deadlines: list[float] = []

		def _on_tick (tick: int) -> None:

			assert clock.last_tick_time is not None
			deadlines.append(clock.last_tick_time)
			jitter_log.append(scheduler.now() - clock.last_tick_time)

			if tick >= pulses:
				done.set()

		clock.on_tick(_on_tick)
		clock.start_internal()

		await done.wait()

		drift = deadlines[pulses - 1] - (deadlines[0] + (pulses - 1) * arpsync.clock.tick_interval_for(bpm))

		clock.close()

	asyncio.run(_run())

	return jitter_log[:pulses], drift


def _print_report (jitter: list[float], drift: float, bpm: float, bars: int, with_arp: bool) -> None:

	if not jitter:
		print("No jitter data collected.")
		return

	ms = [j * 1000 for j in jitter]   # convert to milliseconds

	mean_ms   = statistics.mean(ms)
	median_ms = statistics.median(ms)
	stdev_ms  = statistics.stdev(ms) if len(ms) > 1 else 0.0
	p95_ms    = sorted(ms)[int(len(ms) * 0.95)]
	p99_ms    = sorted(ms)[int(len(ms) * 0.99)]
	max_ms    = max(ms)

	pulse_interval_ms = arpsync.clock.tick_interval_for(bpm) * 1000

	mode = "with arpeggiator" if with_arp else "clock only"

	print(f"\nInternal Clock Jitter - {bars} bars at {bpm:.0f} BPM ({mode})")
	print(f"{'-' * 62}")
	print(f"  Pulses measured : {len(ms)}")
	print(f"  Pulse interval  : {pulse_interval_ms:.3f} ms  ({PPQN} PPQN)")
	print(f"{'-' * 62}")
	print(f"  Mean lateness   : {mean_ms:>8.3f} ms")
	print(f"  Median lateness : {median_ms:>8.3f} ms")
	print(f"  Std deviation   : {stdev_ms:>8.3f} ms")
	print(f"  P95 lateness    : {p95_ms:>8.3f} ms")
	print(f"  P99 lateness    : {p99_ms:>8.3f} ms")
	print(f"  Max lateness    : {max_ms:>8.3f} ms")
	print(f"  Deadline drift  : {drift * 1000:>+8.6f} ms  (should be ~0)")
	print(f"{'-' * 62}")

	# Qualitative rating.
	if mean_ms < 0.5:
		rating = "Very good  (sub-500 us - well below human perception)"
	elif mean_ms < 2.0:
		rating = "Good       (< 2 ms - at or below human perception threshold)"
	elif mean_ms < 5.0:
		rating = "Fair       (2-5 ms - may affect tight sync with hardware)"
	else:
		rating = "Poor       (> 5 ms - noticeable timing issues likely)"

	print(f"  Rating          : {rating}")
	print()


def main () -> None:

	parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	parser.add_argument("--bpm",      type=float, default=120, help="Tempo in BPM (default: 120)")
	parser.add_argument("--bars",     type=int,   default=8,   help="Bars to measure (default: 8)")
	parser.add_argument("--with-arp", action="store_true",     help="Drive an arpeggiator from the clock")
	args = parser.parse_args()

	jitter, drift = _run_benchmark(args.bpm, args.bars, args.with_arp)
	_print_report(jitter, drift, args.bpm, args.bars, args.with_arp)


if __name__ == "__main__":
	main()
