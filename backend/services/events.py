"""Advisory change notifications. Listeners should re-read the live slot, not trust payloads."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

CONFIG_UPDATED = "config_updated"
CONFIG_REFRESH = "config_refresh"

Listener = Callable[[Dict[str, Any]], None]


class ConfigEvents:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """Register listener for name; returns a callable that unsubscribes it."""
        self._listeners.setdefault(name, []).append(listener)
        return lambda: self.unsubscribe(name, listener)

    def unsubscribe(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, name: str, payload: Dict[str, Any]) -> int:
        """Deliver payload to every listener. A failing listener is logged and skipped."""
        delivered = 0
        for listener in list(self._listeners.get(name, [])):
            try:
                listener(dict(payload))
                delivered += 1
            except Exception:
                logger.exception("EVENT_LISTENER_ERR event=%s listener=%r", name, listener)
        return delivered
