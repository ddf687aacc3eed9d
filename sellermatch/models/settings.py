"""Pydantic model for the user-editable scan settings.

The settings record is persisted under a single store key with
camelCase field names.  Values coming from the store or from a
partial update are sanitised one field at a time: a bad value
falls back to the current (or default) value instead of
rejecting the whole record.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Literal

import pydantic

from sellermatch.utils import serialization

ScanMode = Literal["background", "content"]
ScanTiming = Literal["immediate", "delayed"]

DEFAULT_REGISTRY_URL = "https://adwmg.com/sellers.json"
DEFAULT_CACHE_TTL_MINUTES = 60
DEFAULT_SCAN_DELAY_SECONDS = 10


def _is_number(value: object) -> bool:
    # bool is an int subclass; a flag is never a duration.
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class Settings(pydantic.BaseModel):
    """Process-wide scan settings snapshot.

    Instances are frozen; an update produces a new snapshot
    which replaces the old one by reference.

    Attributes:
        registry_url: Location of the sellers.json registry.
        cache_ttl_minutes: Registry cache lifetime, at least one minute.
        badge_enabled: Whether counts are computed and displayed.
        scan_mode: ``background`` scans from this process; ``content``
            relies on an external scanner reporting counts.
        scan_timing: ``immediate`` or ``delayed`` scans.
        scan_delay: Seconds to wait before a delayed scan.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel,
        populate_by_name=True,
        frozen=True,
    )

    registry_url: str = DEFAULT_REGISTRY_URL
    cache_ttl_minutes: int = pydantic.Field(default=DEFAULT_CACHE_TTL_MINUTES, ge=1)
    badge_enabled: bool = True
    scan_mode: ScanMode = "background"
    scan_timing: ScanTiming = "immediate"
    scan_delay: float = pydantic.Field(default=DEFAULT_SCAN_DELAY_SECONDS, ge=0)

    @property
    def cache_ttl_ms(self) -> int:
        """Registry cache lifetime in milliseconds."""
        return self.cache_ttl_minutes * 60 * 1000

    @property
    def effective_scan_delay(self) -> float:
        """Seconds to wait before scanning; zero for immediate scans."""
        if self.scan_timing == "delayed":
            return max(0.0, float(self.scan_delay))
        return 0.0

    def merged(self, patch: Mapping[str, Any] | None) -> Settings:
        """Return a new snapshot with the valid fields of *patch* applied.

        Accepts camelCase keys (as stored) and snake_case names.
        Unknown keys and values of the wrong type are ignored.
        """
        if not patch:
            return self

        def pick(field: str) -> Any:
            alias = serialization.snake_to_camel(field)
            if alias in patch:
                return patch[alias]
            return patch.get(field)

        values = self.model_dump()

        url = pick("registry_url")
        if isinstance(url, str):
            values["registry_url"] = url.strip() or DEFAULT_REGISTRY_URL

        ttl = pick("cache_ttl_minutes")
        if _is_number(ttl):
            values["cache_ttl_minutes"] = max(1, round(ttl))

        enabled = pick("badge_enabled")
        if isinstance(enabled, bool):
            values["badge_enabled"] = enabled

        mode = pick("scan_mode")
        if isinstance(mode, str):
            values["scan_mode"] = "content" if mode == "content" else "background"

        timing = pick("scan_timing")
        if isinstance(timing, str):
            values["scan_timing"] = "delayed" if timing == "delayed" else "immediate"

        delay = pick("scan_delay")
        if _is_number(delay):
            values["scan_delay"] = max(0.0, float(delay))

        return Settings.model_validate(values)

    @classmethod
    def from_stored(cls, raw: object) -> Settings:
        """Build a snapshot from a stored record, defaulting anything missing."""
        if not isinstance(raw, Mapping):
            return cls()
        return cls().merged(raw)

    def to_stored(self) -> dict[str, Any]:
        """Serialise to the camelCase record kept in the store."""
        return self.model_dump(by_alias=True)
