"""
HTTP GET with a hard per-attempt timeout and bounded linear retry.
"""

from __future__ import annotations

import asyncio

import aiohttp

from sellermatch.utils import logger
from sellermatch.utils.errors import NetworkError, get_error_message
from sellermatch.utils.retry import with_retry

log = logger.create_logger("Fetch")

FETCH_TIMEOUT_MS = 8000
FETCH_RETRIES = 1
RETRY_BACKOFF_MS = 300

_FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; SellerMatch/1.0)",
    "Accept": "application/json, text/plain, */*",
}


async def _get_once(
    url: str,
    http_session: aiohttp.ClientSession,
    timeout_ms: int,
) -> str:
    """One attempt.  Every failure surfaces as ``NetworkError``."""
    try:
        async with asyncio.timeout(timeout_ms / 1000):
            async with http_session.get(url, headers=_FETCH_HEADERS) as response:
                if not 200 <= response.status < 300:
                    raise NetworkError(f"HTTP {response.status}", status=response.status)
                return await response.text()
    except TimeoutError as exc:
        raise NetworkError(f"Timed out after {timeout_ms}ms") from exc
    except aiohttp.ClientError as exc:
        raise NetworkError(get_error_message(exc)) from exc


async def fetch_with_retry(
    url: str,
    *,
    timeout_ms: int = FETCH_TIMEOUT_MS,
    max_retries: int = FETCH_RETRIES,
    backoff_ms: int = RETRY_BACKOFF_MS,
    http_session: aiohttp.ClientSession | None = None,
) -> str:
    """Fetch *url* and return the response body as text.

    Each attempt is bounded by *timeout_ms*.  Timeouts, non-2xx
    statuses and connection errors are retried up to
    *max_retries* more times, waiting ``backoff_ms * n`` before
    the n-th retry.

    Args:
        url: Absolute URL to GET.
        timeout_ms: Hard limit for one attempt.
        max_retries: Extra attempts after the first.
        backoff_ms: Linear backoff step.
        http_session: Shared session to reuse; when omitted a
            session is opened for this call and closed afterwards.

    Raises:
        NetworkError: The error of the last attempt.
    """
    if http_session is not None:
        return await with_retry(
            lambda: _get_once(url, http_session, timeout_ms),
            max_retries=max_retries,
            backoff_ms=backoff_ms,
            is_retryable=lambda e: isinstance(e, NetworkError),
            context=url,
        )

    async with aiohttp.ClientSession() as own_session:
        return await fetch_with_retry(
            url,
            timeout_ms=timeout_ms,
            max_retries=max_retries,
            backoff_ms=backoff_ms,
            http_session=own_session,
        )
