"""Hook bus: named extension points that other components listen on.

Handlers are plain callables invoked synchronously. Lower priority runs first;
equal priorities run in registration order.

Usage:
    hooks = HookBus()
    hooks.on(FEATURES_REGISTERED, register_my_features)
    hooks.emit(FEATURES_REGISTERED, manager)
"""

from collections import defaultdict
from dataclasses import dataclass
from itertools import count
from typing import Any, Callable

from ..utils.logging import get_logger

logger = get_logger(__name__)

HookHandler = Callable[..., Any]

DEFAULT_PRIORITY = 10

# Fired once the built-in experiments are registered. Args: the manager.
FEATURES_REGISTERED = "experiments/features-registered"


def after_create_settings(page_id: str) -> str:
    """Hook fired after a settings page is created. Args: the page."""
    return f"admin/after_create_settings/{page_id}"


@dataclass(frozen=True)
class _Listener:
    priority: int
    seq: int
    handler: HookHandler


class HookBus:
    """Registry of hook listeners."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Listener]] = defaultdict(list)
        self._seq = count()

    def on(self, hook_name: str, handler: HookHandler, priority: int = DEFAULT_PRIORITY) -> Callable[[], None]:
        """Listen on a hook. Returns an unsubscribe function."""
        registration = _Listener(priority, next(self._seq), handler)
        listeners = self._listeners[hook_name]
        listeners.append(registration)
        listeners.sort(key=lambda listener: (listener.priority, listener.seq))

        def unsubscribe() -> None:
            # Only this registration; the same handler may be on the hook twice
            current = self._listeners.get(hook_name)
            if current:
                self._listeners[hook_name] = [
                    listener for listener in current if listener is not registration
                ]

        return unsubscribe

    def off(self, hook_name: str, handler: HookHandler) -> None:
        """Remove a handler from a hook (all of its registrations)."""
        listeners = self._listeners.get(hook_name)
        if not listeners:
            return
        self._listeners[hook_name] = [listener for listener in listeners if listener.handler is not handler]

    def emit(self, hook_name: str, *args: Any) -> int:
        """Run every handler for a hook. Returns the number of handlers run."""
        listeners = list(self._listeners.get(hook_name, []))
        if not listeners:
            return 0

        for listener in listeners:
            try:
                listener.handler(*args)
            except Exception as e:
                logger.error(
                    "Hook handler error",
                    hook=hook_name,
                    handler=getattr(listener.handler, "__name__", str(listener.handler)),
                    error=str(e),
                    exc_info=True,
                )
        return len(listeners)

    def has_handlers(self, hook_name: str) -> bool:
        return bool(self._listeners.get(hook_name))

    def handler_count(self, hook_name: str | None = None) -> int:
        """Count registered handlers."""
        if hook_name:
            return len(self._listeners.get(hook_name, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    def clear(self) -> None:
        """Remove all handlers."""
        self._listeners.clear()
