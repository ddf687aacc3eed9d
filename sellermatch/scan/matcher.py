"""Counting page-declared seller ids that appear in the registry."""

from __future__ import annotations

from collections.abc import Iterable

from sellermatch.models.registry import SellerRecord, normalize_seller_id


def registry_id_set(registry: Iterable[SellerRecord]) -> set[str]:
    """Normalised ``seller_id`` of every registry record."""
    return {normalize_seller_id(record.seller_id) for record in registry}


def match(page_ids: Iterable[str], registry: Iterable[SellerRecord]) -> int:
    """Return how many of *page_ids* are known sellers.

    Pure and deterministic.  Ids are compared as exact strings
    after normalisation; there is no partial or fuzzy matching.
    """
    known = registry_id_set(registry)
    return sum(1 for page_id in page_ids if normalize_seller_id(page_id) in known)
