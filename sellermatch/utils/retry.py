"""
Retry utility with linear backoff for handling transient failures.
Used for registry downloads, where one quick retry covers most blips.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from sellermatch.utils import logger
from sellermatch.utils.errors import get_error_message

log = logger.create_logger("Retry")

T = TypeVar("T")


def _always(_error: BaseException) -> bool:
    return True


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 1,
    backoff_ms: int = 300,
    is_retryable: Callable[[BaseException], bool] = _always,
    context: str | None = None,
) -> T:
    """
    Execute an async function, retrying up to *max_retries* extra times.

    The n-th retry waits ``backoff_ms * n`` milliseconds.  Errors
    rejected by *is_retryable* and the error of the final attempt are
    re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as error:
            if not is_retryable(error):
                raise

            if attempt >= max_retries:
                log.warn(
                    "All retry attempts exhausted",
                    {
                        "context": context,
                        "attempts": attempt + 1,
                        "error": get_error_message(error),
                    },
                )
                raise

            attempt += 1
            delay_ms = backoff_ms * attempt
            log.debug(
                "Retrying after transient error",
                {
                    "context": context,
                    "attempt": attempt,
                    "maxRetries": max_retries,
                    "delayMs": delay_ms,
                    "error": get_error_message(error)[:100],
                },
            )
            await asyncio.sleep(delay_ms / 1000)
