"""Async debounce helper for completion and documentation triggers."""

import asyncio
import inspect
from typing import Any, Callable, Optional


class Debouncer:
    """
    Coalesces rapid-fire calls into a single delayed invocation.

    Calling the instance restarts the quiet period; when it elapses the
    callback runs once with the arguments of the last call. A coroutine
    returned by the callback runs as a task, cancelling the previous one.
    """

    def __init__(self, callback: Callable[..., Any], timeout_ms: int):
        """
        Initialize debouncer.

        Args:
            callback: Function (or coroutine function) to invoke
            timeout_ms: Quiet period in milliseconds
        """
        self.callback = callback
        self.timeout_ms = timeout_ms
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def __call__(self, *args: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout_ms / 1000, self._fire, args)

    @property
    def pending(self) -> bool:
        """True while a call is scheduled but has not fired yet."""
        return self._handle is not None

    def cancel(self) -> None:
        """Drop the scheduled call and any running task."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _fire(self, args: tuple) -> None:
        self._handle = None
        result = self.callback(*args)
        if inspect.isawaitable(result):
            if self._task is not None and not self._task.done():
                self._task.cancel()
            self._task = asyncio.ensure_future(result)
