import pytest

import arpsync.event_emitter


def test_on_and_emit_sync () -> None:

	"""Registered sync callbacks are called on emit_sync."""

	emitter = arpsync.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on("tick", lambda v: received.append(v))
	emitter.emit_sync("tick", 42)

	assert received == [42]


def test_listeners_fire_in_registration_order () -> None:

	"""Subscribers of one event run in the order they were added."""

	emitter = arpsync.event_emitter.EventEmitter()
	order: list[str] = []

	emitter.on("tick", lambda v: order.append("first"))
	emitter.on("tick", lambda v: order.append("second"))
	emitter.on("tick", lambda v: order.append("third"))
	emitter.emit_sync("tick", 1)

	assert order == ["first", "second", "third"]


def test_clear_removes_every_listener () -> None:

	"""After clear() no event reaches its old subscribers."""

	emitter = arpsync.event_emitter.EventEmitter()
	received: list[str] = []

	emitter.on("start", lambda: received.append("start"))
	emitter.on("stop", lambda: received.append("stop"))

	emitter.clear()

	emitter.emit_sync("start")
	emitter.emit_sync("stop")

	assert received == []


def test_emit_without_listeners_is_a_no_op () -> None:

	emitter = arpsync.event_emitter.EventEmitter()

	emitter.emit_sync("tick", 1)


def test_listener_may_clear_during_emit () -> None:

	"""Clearing inside a callback does not skip the rest of the current emit."""

	emitter = arpsync.event_emitter.EventEmitter()
	received: list[str] = []

	emitter.on("tick", lambda: emitter.clear())
	emitter.on("tick", lambda: received.append("later"))

	emitter.emit_sync("tick")
	emitter.emit_sync("tick")

	assert received == ["later"]


def test_emit_sync_rejects_async_callback () -> None:

	"""emit_sync cannot await, so coroutine callbacks are an error."""

	emitter = arpsync.event_emitter.EventEmitter()

	async def cb () -> None:
		pass

	emitter.on("start", cb)

	with pytest.raises(ValueError):
		emitter.emit_sync("start")
