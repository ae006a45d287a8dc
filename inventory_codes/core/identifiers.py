"""Product identifier formats and candidate synthesis.

Two identifier schemes exist side by side:

``SimpleCode``
    The current format: a category prefix of 3-10 capital letters followed
    by a zero-padded 3-digit sequence (``RICE001``). New products only ever
    receive this format, and the same value is written to ``code``,
    ``barcode`` and ``qrcode``.

``LegacyStructuredCode``
    The old QR payload ``ST<store>_<CATEGORY>_<sequence>`` such as
    ``ST001_GRAIN_004211``. It is still parsed so labels printed before the
    switch keep scanning, and the legacy QR backfill can still produce it.

Each scheme owns its own ``parse``/``format`` pair; callers go through
``parse_identifier`` instead of matching regexes themselves.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Union

from .categories import classify, classify_legacy

__all__ = [
    "CODE_PATTERN",
    "INITIAL_SEQUENCE",
    "LEGACY_QR_PATTERN",
    "IdentifierScheme",
    "LegacyStructuredCode",
    "SimpleCode",
    "format_sequence",
    "is_valid_code",
    "is_valid_legacy_qrcode",
    "legacy_sequence",
    "legacy_store_part",
    "parse_identifier",
    "parse_legacy_qrcode",
    "synthesize",
    "synthesize_legacy",
]

CODE_PATTERN = re.compile(r"^([A-Z]{3,10})(\d{3})$")
LEGACY_QR_PATTERN = re.compile(r"^ST(\d{3})_([A-Z]+)_(\d{6})$")

INITIAL_SEQUENCE = 1
SEQUENCE_WIDTH = 3
LEGACY_SEQUENCE_WIDTH = 6
LEGACY_STORE_WIDTH = 3

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def format_sequence(sequence: int) -> str:
    return str(sequence).zfill(SEQUENCE_WIDTH)


@dataclass(frozen=True)
class SimpleCode:
    prefix: str
    sequence: int

    scheme = "simple"

    def format(self) -> str:
        return f"{self.prefix}{format_sequence(self.sequence)}"

    @classmethod
    def parse(cls, value: str | None) -> "SimpleCode | None":
        if not value:
            return None
        match = CODE_PATTERN.match(value)
        if not match:
            return None
        return cls(prefix=match.group(1), sequence=int(match.group(2)))

    def parts(self) -> dict[str, str]:
        return {"prefix": self.prefix, "sequence": format_sequence(self.sequence)}


@dataclass(frozen=True)
class LegacyStructuredCode:
    store_id: str
    category: str
    sequence: str

    scheme = "legacy"

    def format(self) -> str:
        return f"ST{self.store_id}_{self.category}_{self.sequence}"

    @classmethod
    def parse(cls, value: str | None) -> "LegacyStructuredCode | None":
        if not value:
            return None
        match = LEGACY_QR_PATTERN.match(value)
        if not match:
            return None
        store_id, category, sequence = match.groups()
        return cls(store_id=store_id, category=category, sequence=sequence)

    def parts(self) -> dict[str, str]:
        return {"storeId": self.store_id, "category": self.category, "sequence": self.sequence}


IdentifierScheme = Union[SimpleCode, LegacyStructuredCode]

_SCHEMES = (SimpleCode, LegacyStructuredCode)


def parse_identifier(value: str | None) -> IdentifierScheme | None:
    """Return the first scheme that recognises ``value``, or ``None``."""

    for scheme in _SCHEMES:
        parsed = scheme.parse(value)
        if parsed is not None:
            return parsed
    return None


def is_valid_code(value: str | None) -> bool:
    return SimpleCode.parse(value) is not None


def is_valid_legacy_qrcode(value: str | None) -> bool:
    return LegacyStructuredCode.parse(value) is not None


def parse_legacy_qrcode(value: str | None) -> dict[str, str] | None:
    """Decompose a legacy QR payload into ``storeId``/``category``/``sequence``."""

    parsed = LegacyStructuredCode.parse(value)
    return parsed.parts() if parsed else None


def synthesize(
    name: str | None,
    product_id: str | None = None,
    store_id: str | None = None,
    existing_code: str | None = None,
) -> str:
    """Return the initial code candidate for a product.

    A product that already has a code keeps it untouched. Otherwise the
    candidate is the category prefix with the first sequence number. The id
    and store id do not take part in the current scheme; they are accepted so
    both schemes share one call signature.
    """

    if existing_code:
        return existing_code
    return SimpleCode(prefix=classify(name), sequence=INITIAL_SEQUENCE).format()


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - (1 << 32) if value & _INT32_SIGN else value


def legacy_sequence(product_id: str | None, rng: random.Random | None = None) -> str:
    """Six-digit sequence derived from ``product_id``.

    The UTF-16 code units of the id are folded with ``hash = hash * 31 + unit``
    in signed 32-bit arithmetic, so ids outside the BMP hash the same way as
    existing legacy payloads. The last six digits of the absolute value are
    kept. Without an id the sequence is random, which is the only
    non-deterministic branch.
    """

    if not product_id:
        rng = rng or random.Random()
        return str(rng.randrange(10 ** LEGACY_SEQUENCE_WIDTH)).zfill(LEGACY_SEQUENCE_WIDTH)

    value = 0
    encoded = product_id.encode("utf-16-le")
    for offset in range(0, len(encoded), 2):
        unit = int.from_bytes(encoded[offset:offset + 2], "little")
        value = _to_int32(value * 31 + unit)
    return str(abs(value)).zfill(LEGACY_SEQUENCE_WIDTH)[-LEGACY_SEQUENCE_WIDTH:]


def legacy_store_part(store_id: str | None) -> str:
    digits = re.sub(r"\D", "", store_id or "")
    return (digits or "1").zfill(LEGACY_STORE_WIDTH)[-LEGACY_STORE_WIDTH:]


def synthesize_legacy(
    name: str | None,
    product_id: str | None,
    store_id: str | None = "001",
    rng: random.Random | None = None,
) -> str:
    return LegacyStructuredCode(
        store_id=legacy_store_part(store_id),
        category=classify_legacy(name),
        sequence=legacy_sequence(product_id, rng=rng),
    ).format()
