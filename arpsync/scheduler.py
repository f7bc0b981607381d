"""Cancellable deferred calls for the clock and arpeggiator engines.

Every suspension point in the engines - the internal clock generator, the
external clock's silence watchdog, and deferred note-on/note-off delivery -
goes through a ``Scheduler``. Two implementations are provided:

- ``AsyncioScheduler`` runs callbacks on the running asyncio event loop in
  real time (``loop.call_at``).
- ``ManualScheduler`` keeps a virtual clock that only moves when ``advance()``
  is called. It runs as fast as possible, which makes it the engine behind
  offline rendering and deterministic tests.

Both run callbacks one at a time on a single thread, so a callback never
overlaps another.
"""

import abc
import asyncio
import dataclasses
import heapq
import itertools
import logging
import typing


logger = logging.getLogger(__name__)


@typing.runtime_checkable
class TimerHandle (typing.Protocol):

	"""
	Protocol for the handle returned by a scheduler call.
	"""

	def cancel (self) -> None:

		"""
		Prevent the callback from running. Cancelling twice is harmless.
		"""

		...


def _run_guarded (callback: typing.Callable[..., typing.Any], args: typing.Tuple[typing.Any, ...]) -> None:

	"""Run a deferred callback, logging (not propagating) any failure."""

	try:
		callback(*args)
	except Exception:
		logger.exception(f"Deferred callback {callback!r} failed")


class Scheduler (abc.ABC):

	"""
	Time source plus cancellable one-shot callbacks, in seconds.
	"""

	@abc.abstractmethod
	def now (self) -> float:

		"""Return the current monotonic time in seconds."""

	@abc.abstractmethod
	def call_at (self, when: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> TimerHandle:

		"""Run ``callback(*args)`` at absolute time ``when``."""

	def call_later (self, delay: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> TimerHandle:

		"""Run ``callback(*args)`` after ``delay`` seconds (negative delays run as soon as possible)."""

		return self.call_at(self.now() + max(0.0, delay), callback, *args)


class AsyncioScheduler (Scheduler):

	"""
	Real-time scheduler backed by an asyncio event loop.

	The loop is looked up lazily so the scheduler can be constructed before
	``asyncio.run()`` starts, as long as it is used from inside the loop.
	"""

	def __init__ (self, loop: typing.Optional[asyncio.AbstractEventLoop] = None) -> None:

		self._loop = loop


	@property
	def loop (self) -> asyncio.AbstractEventLoop:

		"""The event loop callbacks are scheduled on."""

		if self._loop is None:
			self._loop = asyncio.get_running_loop()

		return self._loop


	def now (self) -> float:

		return self.loop.time()


	def call_at (self, when: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> TimerHandle:

		return self.loop.call_at(when, _run_guarded, callback, args)


@dataclasses.dataclass (order=True)
class ScheduledCall:

	"""
	A pending callback on a ``ManualScheduler``.
	"""

	when: float
	order: int
	callback: typing.Callable[..., typing.Any] = dataclasses.field(compare=False)
	args: typing.Tuple[typing.Any, ...] = dataclasses.field(compare=False, default=())
	cancelled: bool = dataclasses.field(compare=False, default=False)


	def cancel (self) -> None:

		"""Mark the call so the scheduler skips it."""

		self.cancelled = True


class ManualScheduler (Scheduler):

	"""
	Virtual-time scheduler: time only moves inside ``advance()``.

	Calls due at the same instant run in the order they were scheduled.
	While a callback runs, ``now()`` reports that callback's due time, so
	anything it schedules is relative to its own instant rather than to the
	end of the ``advance()`` window.

	Example::

		scheduler = ManualScheduler()
		scheduler.call_later(0.5, print, "half a second")
		scheduler.advance(1.0)   # prints, and now() == 1.0
	"""

	def __init__ (self, start: float = 0.0) -> None:

		self._now = start
		self._queue: typing.List[ScheduledCall] = []
		self._counter = itertools.count()


	def now (self) -> float:

		return self._now


	def call_at (self, when: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> TimerHandle:

		call = ScheduledCall(
			when = max(when, self._now),
			order = next(self._counter),
			callback = callback,
			args = args
		)

		heapq.heappush(self._queue, call)

		return call


	def advance (self, seconds: float) -> int:

		"""
		Move virtual time forward, running every call that falls due.

		Returns the number of callbacks that ran.
		"""

		if seconds < 0:
			raise ValueError("Cannot advance a scheduler backwards")

		return self.advance_to(self._now + seconds)


	def advance_to (self, when: float) -> int:

		"""
		Run every call due at or before ``when`` and leave ``now()`` at ``when``.
		"""

		ran = 0

		while self._queue and self._queue[0].when <= when:

			call = heapq.heappop(self._queue)

			if call.cancelled:
				continue

			self._now = call.when
			_run_guarded(call.callback, call.args)
			ran += 1

		self._now = max(self._now, when)

		return ran


	def pending (self) -> int:

		"""Return the number of calls still waiting to run."""

		return sum(1 for call in self._queue if not call.cancelled)
