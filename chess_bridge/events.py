"""Domain events emitted by the game-state bridge."""

import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional

from chess_bridge.scheduling import CooperativeScheduler

logger = logging.getLogger(__name__)

MOVE = "move"
DRAW = "draw"
CHECKMATE = "checkmate"

Listener = Callable[..., Any]


class EventEmitter:
    """
    Minimal synchronous publish/subscribe hub.

    Listeners run in registration order. A listener returning an awaitable
    has it handed to the scheduler; listener exceptions propagate to the
    emitter's caller.

    :param scheduler: Scheduler used for asynchronous listeners
    :type scheduler: Optional[CooperativeScheduler]
    """

    def __init__(self, scheduler: Optional[CooperativeScheduler] = None) -> None:
        self.scheduler = scheduler or CooperativeScheduler()
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        """
        Subscribe ``listener`` to ``event``.

        :param event: Event name
        :type event: str
        :param listener: Callable receiving the event payload
        :type listener: Listener
        :return: The listener, so this can be used as a decorator factory target
        :rtype: Listener
        """
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> bool:
        """
        Unsubscribe ``listener`` from ``event``.

        :return: True if the listener was registered
        :rtype: bool
        """
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listeners(self, event: str) -> List[Listener]:
        return list(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> int:
        """
        Call every listener of ``event`` with ``args``.

        :param event: Event name
        :type event: str
        :return: Number of listeners called
        :rtype: int
        """
        listeners = self.listeners(event)
        logger.debug(f"[Events] Emitting '{event}' to {len(listeners)} listener(s)")
        for listener in listeners:
            result = listener(*args)
            if inspect.isawaitable(result):
                self.scheduler.spawn(result)
        return len(listeners)
