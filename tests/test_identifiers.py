import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from inventory_codes.core.identifiers import (
    LegacyStructuredCode,
    SimpleCode,
    is_valid_code,
    is_valid_legacy_qrcode,
    legacy_sequence,
    legacy_store_part,
    parse_identifier,
    parse_legacy_qrcode,
    synthesize,
    synthesize_legacy,
)


def test_synthesize_new_product():
    assert synthesize("Basmati Rice", "prod_1", "001") == "RICE001"


def test_synthesize_keeps_existing_code():
    assert synthesize("Basmati Rice", "prod_1", "001", existing_code="LEGACY42") == "LEGACY42"
    assert synthesize("Anything", None, None, existing_code="MILK007") == "MILK007"


@pytest.mark.parametrize("name", ["Basmati Rice", "Zzyxqw", "", "Ab", "7up", "Washing Detergent"])
def test_synthesized_codes_match_current_format(name):
    assert is_valid_code(synthesize(name, "p1"))


def test_simple_code_parse_and_format():
    parsed = SimpleCode.parse("BISCUIT012")
    assert parsed == SimpleCode(prefix="BISCUIT", sequence=12)
    assert parsed.format() == "BISCUIT012"
    assert SimpleCode.parse("RI001") is None
    assert SimpleCode.parse("rice001") is None
    assert SimpleCode.parse("RICE0001") is None


def test_legacy_sequence_rolling_hash():
    # 97 -> 97*31+98 = 3105 -> 3105*31+99 = 96354
    assert legacy_sequence("abc") == "096354"
    assert legacy_sequence("prod_1") == legacy_sequence("prod_1")


def test_legacy_sequence_hashes_utf16_code_units():
    # U+1F600 is the surrogate pair D83D DE00: 97 -> 58364 -> 1866116
    assert legacy_sequence("a\U0001F600") == "866116"


def test_legacy_sequence_wraps_to_six_digits_for_long_ids():
    value = legacy_sequence("a-very-long-firestore-document-id-0123456789")
    assert len(value) == 6
    assert value.isdigit()


def test_legacy_sequence_without_id_uses_rng():
    assert legacy_sequence(None, rng=random.Random(3)) == legacy_sequence(None, rng=random.Random(3))
    assert len(legacy_sequence("", rng=random.Random(3))) == 6


def test_synthesize_legacy_layout():
    assert synthesize_legacy("Basmati Rice", "abc", "001") == "ST001_GRAIN_096354"
    assert synthesize_legacy("Batteries", "abc", "7") == "ST007_GENERAL_096354"


def test_legacy_store_part():
    assert legacy_store_part("001") == "001"
    assert legacy_store_part("12") == "012"
    assert legacy_store_part(None) == "001"


def test_parse_legacy_qrcode():
    assert parse_legacy_qrcode("ST001_GRAIN_096354") == {
        "storeId": "001",
        "category": "GRAIN",
        "sequence": "096354",
    }
    assert parse_legacy_qrcode("RICE001") is None
    assert parse_legacy_qrcode("ST01_GRAIN_096354") is None


def test_validators():
    assert is_valid_code("RICE001")
    assert not is_valid_code("ST001_GRAIN_096354")
    assert is_valid_legacy_qrcode("ST001_GRAIN_096354")
    assert not is_valid_legacy_qrcode(None)


def test_parse_identifier_dispatches_on_scheme():
    simple = parse_identifier("MILK001")
    legacy = parse_identifier("ST002_DAIRY_000123")
    assert isinstance(simple, SimpleCode) and simple.scheme == "simple"
    assert isinstance(legacy, LegacyStructuredCode) and legacy.scheme == "legacy"
    assert legacy.format() == "ST002_DAIRY_000123"
    assert parse_identifier("OLD123") is None
