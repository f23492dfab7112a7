"""Ordered hook chains for board event slots."""

import inspect
import logging
from collections.abc import MutableMapping
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Hook = Callable[..., Any]


class HookChain:
    """
    Handlers for a single event slot, run in order with the internal one first.

    Calling the chain runs the handlers synchronously until one of them
    returns an awaitable. The rest of the chain then continues inside the
    coroutine returned to the caller, so later handlers always observe the
    completed result of earlier ones.

    :param internal: Handler owned by the bridge
    :type internal: Hook
    :param callers: Handlers supplied by the host application
    :type callers: Sequence[Hook]
    """

    def __init__(self, internal: Hook, callers: Sequence[Hook] = ()) -> None:
        self.internal = internal
        self.callers: Tuple[Hook, ...] = tuple(callers)

    @property
    def handlers(self) -> Tuple[Hook, ...]:
        return (self.internal,) + self.callers

    def __call__(self, *args: Any, **kwargs: Any) -> Optional[Awaitable[None]]:
        handlers = self.handlers
        for position, handler in enumerate(handlers):
            result = handler(*args, **kwargs)
            if inspect.isawaitable(result):
                return self._finish(result, handlers[position + 1:], args, kwargs)
        return None

    async def _finish(
        self,
        pending: Awaitable[Any],
        remaining: Sequence[Hook],
        args: Tuple[Any, ...],
        kwargs: dict,
    ) -> None:
        await pending
        for handler in remaining:
            result = handler(*args, **kwargs)
            if inspect.isawaitable(result):
                await result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HookChain):
            return NotImplemented
        return self.internal == other.internal and self.callers == other.callers

    def __hash__(self) -> int:
        return hash((self.internal, self.callers))

    def __repr__(self) -> str:
        return f"HookChain(internal={self.internal!r}, callers={self.callers!r})"


def caller_handlers(value: Any) -> Tuple[Hook, ...]:
    """
    Host-supplied handlers held by a slot value.

    A chain contributes only its caller handlers, so a chain read back from
    the board and passed in again never wraps the internal handler twice.

    :param value: Slot value: None, a callable, a HookChain or a sequence of those
    :type value: Any
    :return: Flat tuple of caller handlers
    :rtype: Tuple[Hook, ...]
    """
    if value is None:
        return ()
    if isinstance(value, HookChain):
        return value.callers
    if isinstance(value, (list, tuple)):
        handlers: Tuple[Hook, ...] = ()
        for item in value:
            handlers += caller_handlers(item)
        return handlers
    if not callable(value):
        raise TypeError(f"Event hook must be callable, got {type(value).__name__}")
    return (value,)


def patch_event_slot(config: MutableMapping, path: Sequence[str], internal: Hook) -> bool:
    """
    Replace the slot at ``path`` with a chain running ``internal`` first.

    The slot is only patched when it is present in ``config``; a slot the
    caller did not mention keeps whatever the board already has. A record on
    the path that is set to None is replaced by one holding just the slot, so
    the slot is never left empty. ``config`` is modified in place and must be
    a copy owned by the caller.

    :param config: Partial board configuration
    :type config: MutableMapping
    :param path: Keys leading to the slot, e.g. ``("movable", "events", "after")``
    :type path: Sequence[str]
    :param internal: Handler that must run before any caller handler
    :type internal: Hook
    :return: True if the slot was patched
    :rtype: bool
    """
    parent: MutableMapping = config
    reset = False
    for part in path[:-1]:
        child = parent.get(part)
        if child is None and (reset or part in parent):
            reset = True
            child = parent[part] = {}
        elif not isinstance(child, MutableMapping):
            return False
        parent = child
    slot = path[-1]
    if slot not in parent and not reset:
        return False
    callers = caller_handlers(parent.get(slot))
    parent[slot] = HookChain(internal, callers)
    logger.debug(f"[Hooks] Patched {'.'.join(path)} with {len(callers)} caller handler(s)")
    return True
