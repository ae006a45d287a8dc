"""Category inference from free-text product names.

Two classifiers live here:

* ``classify`` produces the short prefix used by current product codes
  (``RICE`` in ``RICE001``).
* ``classify_legacy`` produces the long category names embedded in the old
  structured QR payloads (``GRAIN`` in ``ST001_GRAIN_004211``). Old records
  still carry that format, so it stays around for generating and reading them.

Both are ordered rule chains: the first matching rule wins, so a name such as
"rice flour" is ``RICE`` rather than ``FLOUR``. Keep that in mind when adding
keywords.
"""

from __future__ import annotations

import re
from typing import Callable, Sequence, Tuple

__all__ = [
    "CODE_PREFIX_RULES",
    "LEGACY_CATEGORY_RULES",
    "LEGACY_DEFAULT_CATEGORY",
    "classify",
    "classify_legacy",
    "fallback_prefix",
    "keyword_rule",
]

Predicate = Callable[[str], bool]
Rule = Tuple[Predicate, str]

_NON_LETTER_RE = re.compile(r"[^A-Z]")
FALLBACK_WIDTH = 4


def keyword_rule(*keywords: str) -> Predicate:
    """Build a predicate matching lower-cased names containing any keyword."""

    lowered = tuple(keyword.lower() for keyword in keywords)

    def predicate(name: str) -> bool:
        return any(keyword in name for keyword in lowered)

    predicate.__name__ = "contains_" + "_or_".join(lowered)
    return predicate


CODE_PREFIX_RULES: Sequence[Rule] = (
    (keyword_rule("rice"), "RICE"),
    (keyword_rule("wheat"), "WHEAT"),
    (keyword_rule("flour"), "FLOUR"),
    (keyword_rule("oil"), "OIL"),
    (keyword_rule("ghee"), "GHEE"),
    (keyword_rule("butter"), "BUTTER"),
    (keyword_rule("sugar"), "SUGAR"),
    (keyword_rule("salt"), "SALT"),
    (keyword_rule("milk"), "MILK"),
    (keyword_rule("bread"), "BREAD"),
    (keyword_rule("biscuit"), "BISCUIT"),
    (keyword_rule("tea"), "TEA"),
    (keyword_rule("coffee"), "COFFEE"),
    (keyword_rule("juice"), "JUICE"),
    (keyword_rule("egg"), "EGGS"),
    (keyword_rule("soap"), "SOAP"),
    (keyword_rule("shampoo"), "SHAMPOO"),
    (keyword_rule("toothpaste"), "PASTE"),
    (keyword_rule("detergent"), "DETERGENT"),
    (keyword_rule("cleaner"), "CLEANER"),
)

LEGACY_DEFAULT_CATEGORY = "GENERAL"

# Oil/ghee/butter map to DAIRY in the legacy scheme and are checked before
# the milk rule; existing payloads depend on that.
LEGACY_CATEGORY_RULES: Sequence[Rule] = (
    (keyword_rule("rice", "wheat", "flour"), "GRAIN"),
    (keyword_rule("oil", "ghee", "butter"), "DAIRY"),
    (keyword_rule("sugar", "salt", "spice"), "SPICE"),
    (keyword_rule("milk", "yogurt", "cheese"), "DAIRY"),
    (keyword_rule("bread", "biscuit", "cake"), "BAKERY"),
    (keyword_rule("tea", "coffee", "juice"), "BEVERAGE"),
    (keyword_rule("apple", "banana", "orange"), "FRUIT"),
    (keyword_rule("tomato", "onion", "potato"), "VEGETABLE"),
    (keyword_rule("soap", "shampoo", "toothpaste"), "PERSONAL"),
    (keyword_rule("detergent", "cleaner", "brush"), "HOUSEHOLD"),
    (keyword_rule("chicken", "beef", "pork"), "MEAT"),
)


def _first_match(name: str, rules: Sequence[Rule]) -> str | None:
    for predicate, token in rules:
        if predicate(name):
            return token
    return None


def fallback_prefix(product_name: str | None) -> str:
    """Derive a prefix from the first four characters of the name.

    The name is not stripped first, so a leading space becomes ``X`` like
    any other character outside ``A-Z``. Short names are padded with ``X``
    so the prefix is always four letters long.
    """

    head = (product_name or "")[:FALLBACK_WIDTH].upper()
    return _NON_LETTER_RE.sub("X", head).ljust(FALLBACK_WIDTH, "X")


def classify(product_name: str | None) -> str:
    """Return the code prefix for ``product_name``; never raises."""

    name = (product_name or "").strip().lower()
    return _first_match(name, CODE_PREFIX_RULES) or fallback_prefix(product_name)


def classify_legacy(product_name: str | None) -> str:
    """Return the long category name used by legacy structured QR payloads."""

    name = (product_name or "").lower()
    return _first_match(name, LEGACY_CATEGORY_RULES) or LEGACY_DEFAULT_CATEGORY
