"""Pydantic models for page extraction and per-session scan state."""

from __future__ import annotations

from typing import Any, Literal

import pydantic

from sellermatch.utils import serialization
from sellermatch.utils.errors import ExtractionError

SessionPhase = Literal["idle", "pending", "scanning"]


class ExtractionResult(pydantic.BaseModel):
    """Seller ids declared in a page's ads.txt / app-ads.txt.

    Produced fresh for every scan and never persisted.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    ok: bool
    ids: frozenset[str] = frozenset()

    @classmethod
    def failed(cls) -> ExtractionResult:
        return cls(ok=False)

    @classmethod
    def from_payload(cls, payload: Any) -> ExtractionResult:
        """Validate the ``{ok, ids}`` object returned by the in-page routine.

        Raises:
            ExtractionError: If the payload is not in that shape.
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("ok"), bool):
            raise ExtractionError(f"Malformed extraction payload: {type(payload).__name__}")
        if not payload["ok"]:
            return cls.failed()

        raw_ids = payload.get("ids", [])
        if not isinstance(raw_ids, list):
            raise ExtractionError("Extraction payload 'ids' is not a list")

        ids: set[str] = set()
        for raw in raw_ids:
            if isinstance(raw, bool) or not isinstance(raw, (str, int)):
                raise ExtractionError(f"Unexpected seller id type: {type(raw).__name__}")
            text = str(raw).strip()
            if text:
                ids.add(text)
        return cls(ok=True, ids=frozenset(ids))


class SessionView(pydantic.BaseModel):
    """Read-only view of one session, as returned to clients."""

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel, populate_by_name=True
    )

    session_id: str
    url: str | None
    count: int
    phase: SessionPhase
    active: bool
    last_scan_at: float | None
