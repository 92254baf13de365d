"""Cooperative cancellation primitives for streaming calls.

A :class:`CancellationToken` is checked by :class:`~GeminiKit.net.transport.ResponseStream`
before every network read and before every element is handed to the
consumer. Once the token is cancelled the stream closes its HTTP response,
reads no further bytes and fires no further ``on_element`` callbacks. Tokens
may be cancelled from any thread, which lets a UI or signal handler stop a
stream owned by an event loop elsewhere.

:class:`CancellationTokenGroup` cancels related tokens together;
:class:`~GeminiKit.service.GeminiClient` keeps one so that closing the client
stops every stream it handed out.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

__all__ = ["CancellationToken", "CancellationTokenGroup"]

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancellation token for cooperative stream cancellation.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel("user pressed stop")
        >>> token.is_cancelled(), token.reason
        (True, 'user pressed stop')
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Signal that cancellation has been requested. Idempotent."""
        with self._lock:
            if self._is_cancelled.is_set():
                return
            self.reason = reason
            self._is_cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:  # a failing listener must not stop the others
                logger.exception("Cancellation callback failed")

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        with self._lock:
            if not self._is_cancelled.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def reset(self) -> None:
        """Reset the token to its initial state.

        Only meant for tests or tightly controlled reuse.
        """
        with self._lock:
            self._is_cancelled.clear()
            self.reason = None


class CancellationTokenGroup:
    """A group of cancellation tokens that can be cancelled together."""

    def __init__(self) -> None:
        self._tokens: list[CancellationToken] = []
        self._lock = threading.Lock()
        self._cancelled = False

    def add_token(self, token: CancellationToken) -> None:
        """Add ``token``; it is cancelled at once if the group already was."""
        with self._lock:
            self._tokens.append(token)
            cancelled = self._cancelled
        if cancelled:
            token.cancel("group cancelled")

    def create_token(self) -> CancellationToken:
        token = CancellationToken()
        self.add_token(token)
        return token

    def remove_token(self, token: CancellationToken) -> None:
        with self._lock:
            if token in self._tokens:
                self._tokens.remove(token)

    def cancel_all(self, reason: str | None = None) -> None:
        with self._lock:
            self._cancelled = True
            tokens = list(self._tokens)
        for token in tokens:
            token.cancel(reason)

    def is_any_cancelled(self) -> bool:
        with self._lock:
            return any(token.is_cancelled() for token in self._tokens)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
