import asyncio
import typing


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A simple synchronous event emitter.

	Listeners fire in registration order. ``emit_sync`` runs every listener
	before returning, so all subscribers of a clock pulse are processed within
	the same pass.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		if event_name not in self._listeners:
			self._listeners[event_name] = []

		self._listeners[event_name].append(callback)


	def clear (self) -> None:

		"""
		Remove every listener.
		"""

		self._listeners = {}


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and call non-async listeners immediately.
		"""

		if event_name not in self._listeners:
			return

		# Copy so a listener may register or clear listeners while being called.
		for callback in list(self._listeners[event_name]):

			if asyncio.iscoroutinefunction(callback):
				raise ValueError("Async callback encountered in emit_sync")

			callback(*args, **kwargs)
