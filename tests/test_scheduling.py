"""Tests for the cooperative scheduler."""

import pytest

from chess_bridge.scheduling import CooperativeScheduler


def test_call_soon_without_loop_waits_for_flush():
    """
    Test deferred callbacks run only on flush.

    :return: None
    :rtype: None
    """
    scheduler = CooperativeScheduler()
    calls = []
    scheduler.call_soon(calls.append, 1)
    assert calls == []
    assert scheduler.pending == 1
    assert scheduler.flush() == 1
    assert calls == [1]
    assert scheduler.pending == 0


def test_flush_runs_work_queued_while_flushing():
    """
    Test callbacks scheduled by callbacks run in the same flush.

    :return: None
    :rtype: None
    """
    scheduler = CooperativeScheduler()
    calls = []

    def first():
        calls.append("first")
        scheduler.call_soon(calls.append, "second")

    scheduler.call_soon(first)
    assert scheduler.flush() == 2
    assert calls == ["first", "second"]


def test_spawn_without_loop():
    """
    Test a coroutine spawned outside a loop runs on flush.

    :return: None
    :rtype: None
    """
    scheduler = CooperativeScheduler()
    calls = []

    async def work():
        calls.append("done")

    scheduler.spawn(work())
    assert calls == []
    scheduler.flush()
    assert calls == ["done"]


@pytest.mark.asyncio
async def test_call_soon_in_loop():
    """
    Test callbacks go through the running loop.

    :return: None
    :rtype: None
    """
    scheduler = CooperativeScheduler()
    calls = []
    scheduler.call_soon(calls.append, "soon")
    assert calls == []
    assert scheduler.pending == 1
    await scheduler.drain()
    assert calls == ["soon"]
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_async_callback_result_is_awaited():
    """
    Test an awaitable returned by a deferred callback is run to completion.

    :return: None
    :rtype: None
    """
    scheduler = CooperativeScheduler()
    calls = []

    async def work():
        calls.append("async")

    scheduler.call_soon(work)
    await scheduler.drain()
    assert calls == ["async"]
