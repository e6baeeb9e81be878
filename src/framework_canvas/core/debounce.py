"""trailing-edge debounce for deferred side effects such as autosave."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


CallLater = Callable[[float, Callable[[], Any]], TimerHandle]


def _loop_call_later(delay: float, callback: Callable[[], Any]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class Debouncer:
    """run callback once, `delay` seconds after the last schedule() call.

    at most one timer is pending: scheduling again cancels it first.
    `call_later` defaults to the running asyncio loop.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        call_later: Optional[CallLater] = None,
    ):
        self.delay = delay
        self.callback = callback
        self._call_later = call_later or _loop_call_later
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        self._handle = self._call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """run a pending callback immediately. returns True if one ran."""
        if self._handle is None:
            return False
        self.cancel()
        self.callback()
        return True

    def _fire(self) -> None:
        self._handle = None
        logger.debug("debounce fired after %.2fs", self.delay)
        self.callback()
