"""
Error taxonomy and helpers for consistent error message extraction.

Registry refresh absorbs ``NetworkError`` and ``ParseError``; the scan
pipeline absorbs ``ExtractionError`` and ``SessionInvalid``.  None of
them is allowed to crash the process.
"""

from __future__ import annotations


class SellerMatchError(Exception):
    """Base class for all errors raised by this package."""


class NetworkError(SellerMatchError):
    """Timeout, non-success HTTP status, or connection failure."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(SellerMatchError):
    """A response body was not in the expected shape."""


class ExtractionError(SellerMatchError):
    """Page extraction failed or returned a malformed result."""


class SessionInvalid(SellerMatchError):
    """The referenced session no longer has an active page."""

    def __init__(self, session_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Session {session_id!r} has no active page")
        self.session_id = session_id


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return "Unknown error"
