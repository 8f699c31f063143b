"""
In-process change notifications.

Storage layers publish ``catalog_changed`` / ``cart_changed`` here; UI-facing
collaborators subscribe to refresh their views.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CATALOG_CHANGED = "catalog_changed"
CART_CHANGED = "cart_changed"

Listener = Callable[[str, Optional[Any]], None]


class Notifier:
    """Observer list keyed by event name."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``event``. Returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners[event].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[event]:
                    self._listeners[event].remove(listener)

        return unsubscribe

    def publish(self, event: str, payload: Optional[Any] = None) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, ()))

        for listener in listeners:
            try:
                listener(event, payload)
            except Exception:
                # Observer errors never propagate back to the writer
                logger.exception(f"Listener for '{event}' failed")
