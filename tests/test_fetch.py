"""Tests for registry fetching with timeout and retry.

An in-process fake stands in for ``aiohttp.ClientSession`` so no
request leaves the test.
"""

from __future__ import annotations

import asyncio

import aiohttp
import pytest

from sellermatch.registry import fetch
from sellermatch.utils.errors import NetworkError


class _FakeResponse:
    def __init__(self, status: int, body: str, delay: float = 0.0) -> None:
        self.status = status
        self._body = body
        self._delay = delay

    async def text(self) -> str:
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._body

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


class _RaisingContext:
    def __init__(self, error: Exception) -> None:
        self._error = error

    async def __aenter__(self) -> None:
        raise self._error

    async def __aexit__(self, *exc: object) -> None:
        return None


class FakeSession:
    """Replays one scripted outcome per request."""

    def __init__(self, *outcomes: _FakeResponse | Exception) -> None:
        self._outcomes = list(outcomes)
        self.requested: list[str] = []

    def get(self, url: str, **_kwargs: object) -> _FakeResponse | _RaisingContext:
        self.requested.append(url)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            return _RaisingContext(outcome)
        return outcome


URL = "https://registry.example/sellers.json"


class TestFetchWithRetry:
    """Tests for fetch_with_retry()."""

    @pytest.mark.asyncio
    async def test_returns_body_on_2xx(self) -> None:
        session = FakeSession(_FakeResponse(200, '{"sellers": []}'))
        body = await fetch.fetch_with_retry(URL, http_session=session)  # type: ignore[arg-type]
        assert body == '{"sellers": []}'
        assert session.requested == [URL]

    @pytest.mark.asyncio
    async def test_non_2xx_is_network_error_with_status(self) -> None:
        session = FakeSession(_FakeResponse(404, "missing"))
        with pytest.raises(NetworkError) as info:
            await fetch.fetch_with_retry(URL, max_retries=0, http_session=session)  # type: ignore[arg-type]
        assert info.value.status == 404

    @pytest.mark.asyncio
    async def test_one_retry_after_failure(self) -> None:
        session = FakeSession(_FakeResponse(503, ""), _FakeResponse(200, "ok"))
        body = await fetch.fetch_with_retry(URL, max_retries=1, backoff_ms=1, http_session=session)  # type: ignore[arg-type]
        assert body == "ok"
        assert len(session.requested) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        session = FakeSession(_FakeResponse(500, ""), _FakeResponse(502, ""))
        with pytest.raises(NetworkError) as info:
            await fetch.fetch_with_retry(URL, max_retries=1, backoff_ms=1, http_session=session)  # type: ignore[arg-type]
        assert info.value.status == 502
        assert len(session.requested) == 2

    @pytest.mark.asyncio
    async def test_timeout_becomes_network_error(self) -> None:
        session = FakeSession(_FakeResponse(200, "late", delay=1.0))
        with pytest.raises(NetworkError, match="Timed out"):
            await fetch.fetch_with_retry(URL, timeout_ms=20, max_retries=0, http_session=session)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_client_error_becomes_network_error(self) -> None:
        session = FakeSession(aiohttp.ClientConnectionError("refused"), _FakeResponse(200, "ok"))
        body = await fetch.fetch_with_retry(URL, max_retries=1, backoff_ms=1, http_session=session)  # type: ignore[arg-type]
        assert body == "ok"

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        session = FakeSession(RuntimeError("bug"), _FakeResponse(200, "ok"))
        with pytest.raises(RuntimeError):
            await fetch.fetch_with_retry(URL, max_retries=1, backoff_ms=1, http_session=session)  # type: ignore[arg-type]
        assert len(session.requested) == 1
