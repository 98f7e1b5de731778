"""Synchronous listener registry for lifecycle events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..errors.handling import log_error

Listener = Callable[[Any], Any]


class EventPublisher:
    """Manages registration and firing of lifecycle and error listeners.

    Listeners run synchronously on the task performing the transition, in
    registration order. A failing listener is logged and skipped; slow
    listeners delay the transition that fired them.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Listener] = []
        self._error_listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        if listener is None:
            raise ValueError("Listener must not be null")
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> bool:
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def add_error_listener(self, listener: Listener) -> None:
        if listener is None:
            raise ValueError("Error listener must not be null")
        self._error_listeners.append(listener)

    def remove_error_listener(self, listener: Listener) -> bool:
        try:
            self._error_listeners.remove(listener)
            return True
        except ValueError:
            return False

    def publish(self, event: Any) -> None:
        logging.debug(f"📣 {self.name} event {type(event).__name__}")
        self._fire(self._listeners, event)

    def publish_error(self, event: Any) -> None:
        self._fire(self._error_listeners, event)

    def _fire(self, listeners: list[Listener], event: Any) -> None:
        for listener in list(listeners):
            try:
                listener(event)
            except Exception as e:
                log_error(
                    f"{self.name} listener failed on {type(event).__name__}",
                    e,
                    {"listener": getattr(listener, "__qualname__", repr(listener))},
                )
