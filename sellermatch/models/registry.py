"""Pydantic models for the seller registry (sellers.json) and its cache record."""

from __future__ import annotations

from typing import Any

import pydantic

from sellermatch.utils import serialization


def normalize_seller_id(value: object) -> str:
    """Return the string form used to compare seller ids.

    Numbers are stringified and surrounding whitespace is
    dropped; no other rewriting takes place. Integer-valued
    floats lose their fraction, so ``1.0`` becomes ``"1"``.
    """
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


class SellerRecord(pydantic.BaseModel):
    """One seller entry from sellers.json.

    Only ``seller_id`` is required; every other field
    (``name``, ``domain``, ``seller_type`` ...) is kept as-is.
    """

    model_config = pydantic.ConfigDict(extra="allow")

    seller_id: str

    @pydantic.field_validator("seller_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError("seller_id must be a string or number")
        return normalize_seller_id(value)


class RegistrySnapshot(pydantic.BaseModel):
    """Cached copy of the registry as stored under a single key.

    ``fetched_at`` is epoch milliseconds of the last successful
    refresh; ``0`` means the registry was never fetched.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel, populate_by_name=True
    )

    sellers: list[SellerRecord] = pydantic.Field(default_factory=list)
    fetched_at: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.sellers

    def to_stored(self) -> dict[str, Any]:
        """Serialise to the camelCase record kept in the store."""
        return self.model_dump(by_alias=True)


def parse_seller_list(raw: object) -> tuple[list[SellerRecord], int]:
    """Shape-check a raw ``sellers`` value.

    Returns the valid records and the number of skipped
    entries.  A value that is not a list yields no records.
    """
    if not isinstance(raw, list):
        return [], 0

    sellers: list[SellerRecord] = []
    skipped = 0
    for item in raw:
        if isinstance(item, SellerRecord):
            sellers.append(item)
            continue
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            sellers.append(SellerRecord.model_validate(item))
        except pydantic.ValidationError:
            skipped += 1
    return sellers, skipped
