"""Catalog store access for products."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.product import Product
from ..schemas.product import ProductSnapshot, ProductWrite

WRITABLE_FIELDS = frozenset({"code", "barcode", "qrcode"})


def list_products(db: Session, store_id: str | None = None, limit: int | None = None, offset: int = 0) -> list[Product]:
    """Products ordered by creation time, optionally limited to one store."""

    stmt = select(Product).order_by(Product.created_at, Product.id)
    if store_id:
        stmt = stmt.where(Product.store_id == store_id)
    if limit is not None:
        stmt = stmt.limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def list_catalog(db: Session) -> list[ProductSnapshot]:
    """Point-in-time snapshot of every product across all stores.

    Every identifier operation checks uniqueness against this full snapshot;
    never hand the resolver a store-filtered list.
    """

    return [ProductSnapshot.model_validate(row) for row in list_products(db)]


def get_product(db: Session, product_id: str) -> Product | None:
    return db.get(Product, product_id)


def create_product(db: Session, payload: dict) -> Product:
    data = payload.copy()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValueError("name is required for products")
    data["name"] = name
    data["id"] = data.get("id") or uuid4().hex
    data.setdefault(
        "created_at",
        datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z",
    )

    obj = Product(**data)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def apply_write(db: Session, write: ProductWrite) -> Product:
    """Persist a partial identifier update for one product.

    Raises ``LookupError`` for unknown ids and ``ValueError`` for fields
    outside ``code``/``barcode``/``qrcode``. Database errors propagate after
    the session is rolled back so the caller can move on to the next item.
    """

    unknown = set(write.fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"cannot write fields: {', '.join(sorted(unknown))}")
    item = db.get(Product, write.id)
    if item is None:
        raise LookupError(f"product {write.id} not found")
    for key, value in write.fields.items():
        setattr(item, key, value)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(item)
    return item
