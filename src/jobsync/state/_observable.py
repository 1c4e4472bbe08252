"""Listener registry and teardown flag shared by the stores."""

from __future__ import annotations

import logging
from collections.abc import Callable

_logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ObservableStore:
    """Synchronous change notifications plus a liveness flag.

    Asynchronous completions check :attr:`is_alive` before touching state so
    that nothing is applied after :meth:`close`.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._alive = True

    @property
    def is_alive(self) -> bool:
        return self._alive

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._alive:
            return
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                _logger.warning("Store listener %r failed", listener, exc_info=True)

    def _mark_closed(self) -> None:
        self._alive = False
        self._listeners.clear()
