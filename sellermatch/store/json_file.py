"""JSON-file backed key-value store.

All keys live in one JSON document.  Writes go to a temporary
file that is then renamed over the original, so a reader sees
either the previous document or the new one, never a partial
write.  A missing or corrupt file is treated as an empty store.
"""

from __future__ import annotations

import contextlib
import copy
import json
import os
import pathlib
from collections.abc import Iterable, Mapping
from typing import Any

from sellermatch.store import ports
from sellermatch.utils import logger
from sellermatch.utils.errors import get_error_message

log = logger.create_logger("JsonFileStore")


class JsonFileStore(ports.ObservableStore):
    """Persistent store kept in a single JSON file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__()
        self._path = pathlib.Path(path)
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        """Read the document on first use."""
        if self._data is not None:
            return self._data

        if not self._path.exists():
            log.debug("No store file yet", {"path": str(self._path)})
            self._data = {}
            return self._data

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("store document is not a JSON object")
            self._data = data
            log.info("Store loaded", {"path": str(self._path), "keys": len(data)})
        except (OSError, ValueError) as exc:
            log.warn(
                "Failed to read store file, starting empty",
                {"path": str(self._path), "error": get_error_message(exc)},
            )
            self._data = {}
        return self._data

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        data = self._load()
        return {k: copy.deepcopy(data[k]) for k in keys if k in data}

    async def set(self, items: Mapping[str, Any]) -> None:
        changes = copy.deepcopy(dict(items))
        updated = {**self._load(), **changes}
        self._write(updated)
        self._data = updated
        log.debug("Store written", {"keys": sorted(changes)})
        self._notify(copy.deepcopy(changes))
