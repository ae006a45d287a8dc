"""Normalisation of scanned product identifiers.

Scanners and keyboard wedges deliver product codes and QR payloads with
stray whitespace, lower-case letters typed by hand, or a separator between
prefix and sequence (``rice-001``). Stored codes are always upper-case
``RICE001`` or legacy ``ST001_GRAIN_004211`` payloads.
"""

from __future__ import annotations

import re
from typing import List

__all__ = ["normalize_scan", "scan_aliases"]


_WHITESPACE_RE = re.compile(r"\s+")
# A prefix and sequence split by a space or dash: "RICE 001", "rice-001".
_SPLIT_CODE_RE = re.compile(r"^([A-Z]{3,10})[\s-]+(\d{3})$")


def normalize_scan(raw: str | None) -> str | None:
    """Trimmed, whitespace-collapsed, upper-cased scan; ``None`` when blank."""

    if raw is None:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", raw.strip())
    return cleaned.upper() or None


def scan_aliases(raw: str | None) -> list[str]:
    """Candidate values for one scan, most specific first.

    The trimmed scan comes first because QR payloads are stored verbatim,
    then its upper-case form, then a product code with its separator removed.
    """

    if raw is None:
        return []
    cleaned = _WHITESPACE_RE.sub(" ", raw.strip())
    if not cleaned:
        return []

    aliases: List[str] = [cleaned]
    upper = normalize_scan(cleaned)
    if upper not in aliases:
        aliases.append(upper)
    split = _SPLIT_CODE_RE.match(upper)
    if split:
        aliases.append("".join(split.groups()))
    return aliases
