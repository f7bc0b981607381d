"""
arpsync - a clock-synced MIDI arpeggiator for Python.

arpsync follows a tempo source and turns the notes you hold into a
continuously regenerated arpeggio. It generates pure MIDI (no audio engine)
to drive hardware synths, software instruments or a DAW.

What it does:

- **Dual-source clock.** Follow an external MIDI clock (24 pulses per
  quarter note) with duplicate filtering, rolling tempo estimation and a
  silence watchdog, or run a drift-free internal clock at a set BPM.
- **Beat-grid events.** Subscribe to ``tick``, ``quarter_note``,
  ``sixteenth_note``, ``start`` and ``stop``.
- **Arpeggiator.** Up, down, up-down, down-up, random and chord orders
  across up to four octaves. Steps per beat, gate length, notes per step,
  sliding or jumping windows, ratchets and latch mode.
- **Feel.** Swing, shuffle, dotted and humanized timing, layered together
  if you like. Velocity humanize, accent patterns and per-step gate
  probability. Every generative decision is seeded and reproducible.
- **Render.** Drive the internal clock on virtual time and write a
  standard MIDI file without waiting for real-time playback.

Minimal example:

    ```python
    import asyncio
    import arpsync

    async def main ():
        clock = arpsync.Clock(source="internal", internal_bpm=120)
        arp = arpsync.Arpeggiator(clock, note_engine=my_engine, seed=1)
        arp.set_pattern("up-down")
        arp.set_enabled(True)
        arp.set_notes([60, 64, 67])
        clock.start_internal()
        await asyncio.sleep(8)

    asyncio.run(main())
    ```

Or from the command line, with a YAML config::

    python -m arpsync --config config.yaml
    python -m arpsync --config config.yaml --render 8 --output arp.mid

Package-level exports: ``Clock``, ``ClockSource``, ``Arpeggiator``,
``ArpPattern``, ``Session``, ``SessionConfig``, ``ManualScheduler`` and the
timing strategies and modifiers.
"""

import arpsync.arpeggiator
import arpsync.clock
import arpsync.config
import arpsync.modifiers
import arpsync.note_order
import arpsync.scheduler
import arpsync.session
import arpsync.timing


Clock = arpsync.clock.Clock
ClockSource = arpsync.clock.ClockSource
Arpeggiator = arpsync.arpeggiator.Arpeggiator
ArpPattern = arpsync.note_order.ArpPattern
Session = arpsync.session.Session
SessionConfig = arpsync.config.SessionConfig
ManualScheduler = arpsync.scheduler.ManualScheduler

StraightTiming = arpsync.timing.StraightTiming
SwingTiming = arpsync.timing.SwingTiming
ShuffleTiming = arpsync.timing.ShuffleTiming
DottedTiming = arpsync.timing.DottedTiming
HumanizeTiming = arpsync.timing.HumanizeTiming
LayeredTiming = arpsync.timing.LayeredTiming
create_timing_strategy = arpsync.timing.create_timing_strategy

VelocityHumanize = arpsync.modifiers.VelocityHumanize
AccentPattern = arpsync.modifiers.AccentPattern
GateProbability = arpsync.modifiers.GateProbability
