"""Pydantic models for the request/response messages the service answers."""

from __future__ import annotations

from typing import Any, Literal

import pydantic

from sellermatch.models import registry
from sellermatch.utils import serialization


class _Message(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel, populate_by_name=True
    )


class Ack(_Message):
    """Generic acknowledgement."""

    ok: bool = True
    ignored: bool | None = None


class RefreshResult(_Message):
    """Outcome of an explicit registry refresh."""

    ok: bool
    sellers: list[registry.SellerRecord] | None = None


class RefreshRequest(_Message):
    force: bool = True


class CountReport(_Message):
    """A count pushed by an external scanner or a direct badge update.

    ``count`` is kept loose on purpose: anything that is not a
    finite number is treated as zero.
    """

    count: Any = None


class LifecycleEvent(_Message):
    """Page lifecycle notification for one session."""

    status: Literal["loading", "complete"] | None = None
    url: str | None = None


class BadgeView(_Message):
    text: str
    color: str | None
