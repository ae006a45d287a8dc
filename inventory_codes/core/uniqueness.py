"""Catalog-wide uniqueness checks and bounded collision resolution.

The resolver never talks to the store: it checks candidates against the
catalog snapshot it is handed. Every caller passes the full catalog across
all stores, so a code is unique chain-wide, not just within one shop.

Resolution is bounded. When the budget runs out the resolver does not raise;
it returns ``ExhaustedNonUnique`` carrying the last candidate so the caller
decides whether that is fatal.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Iterable, Union

from .categories import classify, classify_legacy
from .identifiers import (
    INITIAL_SEQUENCE,
    LEGACY_SEQUENCE_WIDTH,
    LegacyStructuredCode,
    SimpleCode,
    legacy_sequence,
    legacy_store_part,
    synthesize,
    synthesize_legacy,
)

__all__ = [
    "IDENTIFIER_FIELDS",
    "MAX_ATTEMPTS",
    "MAX_SEQUENCE",
    "ExhaustedNonUnique",
    "Resolution",
    "Unique",
    "is_unique",
    "next_free_code",
    "resolve_unique",
    "resolve_unique_legacy",
]

MAX_ATTEMPTS = 100
MAX_SEQUENCE = 999
IDENTIFIER_FIELDS = ("code", "barcode", "qrcode")

_SUFFIX_WIDTH = 3


@dataclass(frozen=True)
class Unique:
    value: str
    attempts: int = 0

    is_unique = True


@dataclass(frozen=True)
class ExhaustedNonUnique:
    value: str
    attempts: int

    is_unique = False


Resolution = Union[Unique, ExhaustedNonUnique]


def is_unique(
    candidate: str,
    catalog: Iterable[Any] | None,
    exclude_id: str | None = None,
    field: str = "code",
) -> bool:
    """True when no other product in ``catalog`` holds ``candidate`` in ``field``."""

    if field not in IDENTIFIER_FIELDS:
        raise ValueError(f"field must be one of {', '.join(IDENTIFIER_FIELDS)}")
    if not catalog:
        return True
    for product in catalog:
        if getattr(product, "id", None) == exclude_id and exclude_id is not None:
            continue
        if getattr(product, field, None) == candidate:
            return False
    return True


def resolve_unique(
    name: str | None,
    product_id: str | None,
    catalog: Iterable[Any] | None,
    field: str = "code",
    existing_code: str | None = None,
    max_attempts: int = MAX_ATTEMPTS,
) -> Resolution:
    """Find a catalog-unique simple code for a product.

    Attempt ``n`` tries sequence ``n + 1``, so a clash on ``RICE001`` moves
    to ``RICE002`` first. An ``existing_code`` is ground truth and is never
    perturbed: it comes back as ``Unique`` when free and as
    ``ExhaustedNonUnique`` when another product already holds it.
    """

    catalog = list(catalog or ())
    candidate = synthesize(name, product_id, existing_code=existing_code)
    if is_unique(candidate, catalog, product_id, field):
        return Unique(candidate)
    if existing_code:
        return ExhaustedNonUnique(candidate, attempts=0)

    prefix = classify(name)
    max_attempts = min(max_attempts, MAX_SEQUENCE - INITIAL_SEQUENCE)
    for attempt in range(1, max_attempts + 1):
        candidate = SimpleCode(prefix=prefix, sequence=INITIAL_SEQUENCE + attempt).format()
        if is_unique(candidate, catalog, product_id, field):
            return Unique(candidate, attempts=attempt)
    return ExhaustedNonUnique(candidate, attempts=max_attempts)


def resolve_unique_legacy(
    name: str | None,
    product_id: str | None,
    catalog: Iterable[Any] | None,
    store_id: str | None = "001",
    rng: random.Random | None = None,
    max_attempts: int = MAX_ATTEMPTS,
) -> Resolution:
    """Find a catalog-unique legacy QR payload.

    Each retry keeps the last three digits of the id-derived sequence and
    appends a random three-digit suffix.
    """

    rng = rng or random.Random()
    catalog = list(catalog or ())
    candidate = synthesize_legacy(name, product_id, store_id, rng=rng)
    if is_unique(candidate, catalog, product_id, "qrcode"):
        return Unique(candidate)

    base = legacy_sequence(product_id, rng=rng)
    store_part = legacy_store_part(store_id)
    category = classify_legacy(name)
    for attempt in range(1, max_attempts + 1):
        suffix = str(rng.randrange(10 ** _SUFFIX_WIDTH)).zfill(_SUFFIX_WIDTH)
        sequence = (base + suffix)[-LEGACY_SEQUENCE_WIDTH:]
        candidate = LegacyStructuredCode(store_id=store_part, category=category, sequence=sequence).format()
        if is_unique(candidate, catalog, product_id, "qrcode"):
            return Unique(candidate, attempts=attempt)
    return ExhaustedNonUnique(candidate, attempts=max_attempts)


def next_free_code(prefix: str, taken: set[str] | frozenset[str]) -> Resolution:
    """First ``prefix`` + sequence in 1..999 that is not in ``taken``."""

    candidate = ""
    for sequence in range(INITIAL_SEQUENCE, MAX_SEQUENCE + 1):
        candidate = SimpleCode(prefix=prefix, sequence=sequence).format()
        if candidate not in taken:
            return Unique(candidate, attempts=sequence - INITIAL_SEQUENCE)
    return ExhaustedNonUnique(candidate, attempts=MAX_SEQUENCE)
