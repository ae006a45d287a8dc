import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from inventory_codes.core.barcodes import normalize_scan, scan_aliases
from inventory_codes.schemas.product import ProductSnapshot
from inventory_codes.services.code_lookup import code_status_report, find_by_scan


CATALOG = [
    ProductSnapshot(id="Prod_Rice", name="Basmati Rice", code="RICE001", barcode="RICE001", qrcode="RICE001"),
    ProductSnapshot(id="prod_milk", name="Whole Milk", code="MILK001", barcode="MILK001", qrcode="ST001_DAIRY_000777"),
    ProductSnapshot(id="prod_soap", name="Lux Soap", code="SOAP001", barcode=None, qrcode=None),
    ProductSnapshot(id="prod_misc", name="Paper Bags"),
]


def test_normalize_scan():
    assert normalize_scan("  rice001\n") == "RICE001"
    assert normalize_scan("st001  grain_004211") == "ST001 GRAIN_004211"
    assert normalize_scan("   ") is None
    assert normalize_scan(None) is None


def test_scan_aliases_keep_exact_value_first():
    assert scan_aliases(" st001_dairy_000777 ") == ["st001_dairy_000777", "ST001_DAIRY_000777"]
    assert scan_aliases("rice-001") == ["rice-001", "RICE-001", "RICE001"]
    assert scan_aliases("RICE001") == ["RICE001"]
    assert scan_aliases("") == []


def test_find_by_scan_matches_qrcode_first():
    product, matched_by = find_by_scan("ST001_DAIRY_000777", CATALOG)
    assert product.id == "prod_milk"
    assert matched_by == "qrcode"


def test_find_by_scan_joins_split_code():
    product, matched_by = find_by_scan("soap 001", CATALOG)
    assert product.id == "prod_soap"
    assert matched_by == "code"


def test_find_by_scan_by_code_case_insensitive():
    product, matched_by = find_by_scan("soap001", CATALOG)
    assert product.id == "prod_soap"
    assert matched_by == "code"


def test_find_by_scan_by_id_and_name():
    assert find_by_scan("PROD_MISC", CATALOG)[1] == "id"
    product, matched_by = find_by_scan("paper", CATALOG)
    assert product.id == "prod_misc"
    assert matched_by == "name"


def test_find_by_scan_without_match():
    assert find_by_scan("NOPE999", CATALOG) is None
    assert find_by_scan("  ", CATALOG) is None


def test_code_status_report():
    report = code_status_report(CATALOG)
    assert report.total == 4
    assert report.with_code == 3
    assert report.without_code == 1
    assert report.with_barcode == 2
    assert report.with_qrcode == 2
    assert report.with_both == 2
    assert report.fully_synced == 1
    assert report.legacy_qrcodes == 1
    assert report.sample_qrcodes == [
        {"name": "Basmati Rice", "qrcode": "RICE001"},
        {"name": "Whole Milk", "qrcode": "ST001_DAIRY_000777"},
    ]
