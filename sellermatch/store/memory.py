"""In-process key-value store."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from sellermatch.store import ports


class MemoryStore(ports.ObservableStore):
    """Dictionary-backed store.

    Values are deep-copied on the way in and out so callers
    can never mutate stored state in place.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def set(self, items: Mapping[str, Any]) -> None:
        changes = copy.deepcopy(dict(items))
        self._data.update(copy.deepcopy(changes))
        self._notify(changes)
