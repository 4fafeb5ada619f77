"""Caller-side cancellation of in-flight operations."""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """A thread-safe cancellation signal.

    The caller hands the token to an operation and may call cancel() from
    any thread. Callbacks registered on the token run exactly once: either
    when cancel() is called, or immediately when registered on a token that
    is already cancelled.

    Example:
        >>> token = CancellationToken()
        >>> node.get(cancellation=token)  # token.cancel() elsewhere aborts it
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_id = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        logger.debug(f"Cancellation requested, running {len(callbacks)} callback(s)")
        for callback in callbacks:
            callback()

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            if not self._cancelled:
                key = self._next_id
                self._next_id += 1
                self._callbacks[key] = callback
                return lambda: self._unregister(key)

        callback()
        return lambda: None

    def _unregister(self, key: int) -> None:
        with self._lock:
            self._callbacks.pop(key, None)
