from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.identifiers import is_valid_code, parse_identifier
from ..core.qr_render import render_qr_svg
from ..core.uniqueness import is_unique
from ..crud.products import create_product, get_product, list_catalog, list_products
from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..schemas.product import (
    BulkResult,
    CodeAssignment,
    CodeStatusReport,
    ParsedIdentifier,
    ProductCreate,
    ProductOut,
    ScanMatch,
)
from ..services.code_lookup import code_status_report, find_by_scan
from ..services.code_sync import (
    assign_product_code,
    auto_generate_missing_codes,
    create_product_with_code,
    generate_missing_qrcodes,
    sync_all_product_codes,
    sync_single_product,
)

router = APIRouter(prefix="/api/v1/products", tags=["products"], dependencies=[Depends(require_api_or_jwt)])


def _get_or_404(db: Session, product_id: str):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("", response_model=list[ProductOut])
def api_list(store_id: str | None = None, limit: int = 100, offset: int = 0, db: Session = Depends(get_db)):
    return list_products(db, store_id=store_id, limit=limit, offset=offset)


@router.post("", response_model=ProductOut, status_code=201)
def api_create(payload: ProductCreate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude_none=True, exclude={"auto_generate_code"})
    code = data.get("code")
    if code:
        if not is_valid_code(code):
            raise HTTPException(status_code=422, detail="code must be 3-10 capital letters followed by 3 digits")
        if not is_unique(code, list_catalog(db)):
            raise HTTPException(status_code=409, detail=f"code {code} is already in use")
        data["barcode"] = data["qrcode"] = code

    auto_generate = payload.auto_generate_code
    if auto_generate is None:
        auto_generate = settings.AUTO_GENERATE_CODES
    try:
        if auto_generate and not code:
            return create_product_with_code(db, data)
        return create_product(db, data)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="Product id already exists") from exc


@router.get("/codes/status", response_model=CodeStatusReport)
def api_code_status(db: Session = Depends(get_db)):
    return code_status_report(list_catalog(db))


@router.get("/codes/parse/{value}", response_model=ParsedIdentifier)
def api_parse_code(value: str):
    parsed = parse_identifier(value)
    if parsed is None:
        return ParsedIdentifier(value=value, valid=False)
    return ParsedIdentifier(value=value, scheme=parsed.scheme, valid=True, parts=parsed.parts())


@router.post("/codes/sync", response_model=BulkResult, response_model_exclude_none=True)
def api_sync_all(db: Session = Depends(get_db)):
    return sync_all_product_codes(db)


@router.post("/codes/generate-missing", response_model=BulkResult, response_model_exclude_none=True)
def api_generate_missing_codes(db: Session = Depends(get_db)):
    return auto_generate_missing_codes(db)


@router.post("/qrcodes/generate-missing", response_model=BulkResult, response_model_exclude_none=True)
def api_generate_missing_qrcodes(store_id: str | None = None, db: Session = Depends(get_db)):
    return generate_missing_qrcodes(db, store_id=store_id)


@router.get("/lookup/{value}", response_model=ScanMatch)
def api_lookup(value: str, db: Session = Depends(get_db)):
    match = find_by_scan(value, list_products(db))
    if match is None:
        raise HTTPException(status_code=404, detail="Product not found")
    product, matched_by = match
    return ScanMatch(matched_by=matched_by, product=ProductOut.model_validate(product))


@router.get("/{product_id}", response_model=ProductOut)
def api_get(product_id: str, db: Session = Depends(get_db)):
    return _get_or_404(db, product_id)


@router.post("/{product_id}/code", response_model=CodeAssignment)
def api_assign_code(product_id: str, db: Session = Depends(get_db)):
    _get_or_404(db, product_id)
    return assign_product_code(db, product_id)


@router.post("/{product_id}/sync", response_model=ProductOut)
def api_sync_one(product_id: str, db: Session = Depends(get_db)):
    _get_or_404(db, product_id)
    return sync_single_product(db, product_id)


@router.get("/{product_id}/qrcode.svg")
def api_qrcode_svg(product_id: str, db: Session = Depends(get_db)):
    product = _get_or_404(db, product_id)
    if not product.qrcode:
        raise HTTPException(status_code=404, detail="Product has no QR code yet")
    return Response(content=render_qr_svg(product.qrcode), media_type="image/svg+xml")
