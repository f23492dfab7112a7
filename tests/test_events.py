"""Tests for the bridge event emitter."""

import pytest

from chess_bridge.events import CHECKMATE, MOVE, EventEmitter
from chess_bridge.scheduling import CooperativeScheduler


def test_emit_in_registration_order():
    """
    Test listeners are called in order with the payload.

    :return: None
    :rtype: None
    """
    emitter = EventEmitter()
    calls = []
    emitter.on(MOVE, lambda payload: calls.append(("first", payload)))
    emitter.on(MOVE, lambda payload: calls.append(("second", payload)))

    assert emitter.emit(MOVE, "e4") == 2
    assert calls == [("first", "e4"), ("second", "e4")]
    assert emitter.emit(CHECKMATE, "black") == 0


def test_off():
    """
    Test unsubscribing a listener.

    :return: None
    :rtype: None
    """
    emitter = EventEmitter()
    calls = []
    listener = emitter.on(MOVE, calls.append)
    assert emitter.off(MOVE, listener) is True
    assert emitter.off(MOVE, listener) is False
    emitter.emit(MOVE, "e4")
    assert calls == []


def test_listener_exception_propagates():
    """
    Test listener errors reach the emitter's caller.

    :return: None
    :rtype: None
    """
    emitter = EventEmitter()

    def broken(payload):
        raise RuntimeError("listener failed")

    emitter.on(MOVE, broken)
    with pytest.raises(RuntimeError):
        emitter.emit(MOVE, "e4")


def test_async_listener_goes_to_scheduler():
    """
    Test an async listener runs when the scheduler is flushed.

    :return: None
    :rtype: None
    """
    scheduler = CooperativeScheduler()
    emitter = EventEmitter(scheduler)
    calls = []

    async def listener(payload):
        calls.append(payload)

    emitter.on(MOVE, listener)
    emitter.emit(MOVE, "e4")
    assert calls == []
    scheduler.flush()
    assert calls == ["e4"]
