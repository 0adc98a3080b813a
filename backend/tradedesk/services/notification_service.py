"""
Post-commit notification hooks.

Listeners are called after a write has committed, typically to invalidate
caches held by other parts of the system. Delivery is fire-and-forget: a
failing listener is logged and never changes the outcome of the write that
triggered it.
"""

from __future__ import annotations

from typing import Any, Callable

from flask import current_app

Listener = Callable[[str, dict], Any]

_listeners: list[Listener] = []


def register_listener(fn: Listener) -> Listener:
    """Register fn(event, payload). Usable as a decorator."""
    if fn not in _listeners:
        _listeners.append(fn)
    return fn


def unregister_listener(fn: Listener) -> None:
    if fn in _listeners:
        _listeners.remove(fn)


def clear_listeners() -> None:
    _listeners.clear()


def notify(event: str, payload: dict | None = None) -> None:
    payload = payload or {}
    for listener in list(_listeners):
        try:
            listener(event, payload)
        except Exception:
            current_app.logger.exception("Notification listener failed for %s", event)
