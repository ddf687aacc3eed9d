"""Key-value store capability.

The store is the only persistence this service uses.  It is
treated as having single-key atomic writes and nothing more:
values that must change together live under one key.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from sellermatch.utils import logger
from sellermatch.utils.errors import get_error_message

log = logger.create_logger("Store")

StoreListener = Callable[[dict[str, Any]], None]

SETTINGS_KEY = "settings"
REGISTRY_CACHE_KEY = "sellers_cache"


class KeyValueStore(Protocol):
    """Asynchronous get/set store with change notifications."""

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored values for *keys*; missing keys are omitted."""
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        """Write every item, then notify subscribers."""
        ...

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register *listener*; the returned callable unsubscribes it."""
        ...


class ObservableStore:
    """Listener bookkeeping shared by the concrete stores."""

    def __init__(self) -> None:
        self._listeners: list[StoreListener] = []

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, changes: dict[str, Any]) -> None:
        # A failing listener must not stop the others or fail the write.
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception as exc:
                log.warn(
                    "Store listener failed",
                    {"keys": sorted(changes), "error": get_error_message(exc)},
                )
