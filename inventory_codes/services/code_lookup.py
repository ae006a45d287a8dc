from __future__ import annotations

from typing import Any, Iterable, Sequence, Tuple

from ..core.barcodes import scan_aliases
from ..core.identifiers import is_valid_legacy_qrcode
from ..schemas.product import CodeStatusReport

SAMPLE_SIZE = 3


def find_by_scan(value: str | None, catalog: Iterable[Any]) -> Tuple[Any, str] | None:
    """Locate the product a scanner or keyboard entry refers to.

    Matching runs from the most to the least specific field: QR payload,
    barcode, product code, id, then a case-insensitive name substring. The
    first hit wins and is returned with the field that matched.
    """

    aliases = scan_aliases(value)
    if not aliases:
        return None
    products: Sequence[Any] = list(catalog)

    for field in ("qrcode", "barcode"):
        for alias in aliases:
            for product in products:
                if getattr(product, field, None) == alias:
                    return product, field

    for alias in aliases:
        for product in products:
            if product.code and product.code == alias:
                return product, "code"

    needle = aliases[0].lower()
    for product in products:
        if str(product.id).lower() == needle:
            return product, "id"
    for product in products:
        if needle in (product.name or "").lower():
            return product, "name"
    return None


def code_status_report(catalog: Iterable[Any]) -> CodeStatusReport:
    """Counts of products with and without each identifier field."""

    products = list(catalog)
    with_code = [p for p in products if p.code]
    with_barcode = [p for p in products if p.barcode]
    with_qrcode = [p for p in products if p.qrcode]
    return CodeStatusReport(
        total=len(products),
        with_code=len(with_code),
        without_code=len(products) - len(with_code),
        with_barcode=len(with_barcode),
        without_barcode=len(products) - len(with_barcode),
        with_qrcode=len(with_qrcode),
        without_qrcode=len(products) - len(with_qrcode),
        with_both=sum(1 for p in products if p.barcode and p.qrcode),
        fully_synced=sum(1 for p in with_code if p.barcode == p.code and p.qrcode == p.code),
        legacy_qrcodes=sum(1 for p in with_qrcode if is_valid_legacy_qrcode(p.qrcode)),
        sample_qrcodes=[{"name": p.name, "qrcode": p.qrcode} for p in with_qrcode[:SAMPLE_SIZE]],
    )
