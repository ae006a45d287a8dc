"""Keep ``code``, ``barcode`` and ``qrcode`` aligned across the catalog.

The product code is the ground truth. Barcode and QR payload are copies of
it, so a product is "in sync" when all three hold the same value.

Every operation here follows the same two steps:

1. Plan: a pure pass over one catalog snapshot that decides which products
   need which field values (``plan_sync``, ``plan_missing_codes``,
   ``plan_missing_qrcodes``).
2. Apply: one independent write per product. A failing write is rolled
   back, logged and counted; the batch carries on and nothing already
   written is undone.

Uniqueness is only as good as the snapshot. Two bulk runs started at the
same moment read the same snapshot and may hand out the same code.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.categories import classify
from ..core.config import settings
from ..core.uniqueness import next_free_code, resolve_unique, resolve_unique_legacy
from ..crud.products import apply_write, create_product, get_product, list_catalog
from ..models.product import Product
from ..schemas.product import BulkResult, CodeAssignment, ProductSnapshot, ProductWrite

logger = logging.getLogger(__name__)


class MissingGroundTruth(ValueError):
    """Raised when a product without a code is asked to synchronise."""

    def __init__(self, product_id: str | None, name: str | None = None) -> None:
        self.product_id = product_id
        self.name = name
        super().__init__(f"product {product_id} has no code; generate one before syncing")


class CodeConflict(RuntimeError):
    """Raised when no unique code could be found within the attempt budget."""

    def __init__(self, product_id: str | None, candidate: str, attempts: int) -> None:
        self.product_id = product_id
        self.candidate = candidate
        self.attempts = attempts
        super().__init__(f"no unique code for product {product_id} after {attempts} attempts (last tried {candidate})")


def _snapshot(product: Any) -> ProductSnapshot:
    if isinstance(product, ProductSnapshot):
        return product
    if isinstance(product, dict):
        return ProductSnapshot.model_validate(product)
    return ProductSnapshot.model_validate(product, from_attributes=True)


def _field(product: Any, name: str) -> Any:
    if isinstance(product, dict):
        return product.get(name)
    return getattr(product, name, None)


def sync_one(product: Any) -> dict[str, str]:
    """Barcode/QR values that bring ``product`` in line with its code."""

    code = _field(product, "code")
    if not code:
        raise MissingGroundTruth(_field(product, "id"), _field(product, "name"))
    return {"barcode": code, "qrcode": code}


@dataclass
class SyncPlan:
    updates: list[ProductWrite] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    in_sync: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.missing) + len(self.in_sync)


@dataclass
class GenerationPlan:
    writes: list[ProductWrite] = field(default_factory=list)
    exhausted: list[str] = field(default_factory=list)


def plan_sync(catalog: Iterable[Any]) -> SyncPlan:
    plan = SyncPlan()
    for product in map(_snapshot, catalog):
        if not product.code:
            logger.warning(
                "Product %s (%s) has no code, skipping sync",
                product.name,
                product.id,
                extra={"extra_data": {"product_id": product.id}},
            )
            plan.missing.append(product.id)
            continue
        if product.barcode != product.code or product.qrcode != product.code:
            plan.updates.append(ProductWrite(id=product.id, fields=sync_one(product)))
        else:
            plan.in_sync.append(product.id)
    return plan


def plan_missing_codes(catalog: Iterable[Any]) -> GenerationPlan:
    """Assign a code to every product lacking one.

    Codes already in the catalog and codes handed out earlier in this pass
    are both taken, so two new "Apple" products never share ``APPL001``.
    A prefix with all 999 sequences used is reported in ``exhausted``
    instead of being given a duplicate.
    """

    products = [_snapshot(product) for product in catalog]
    taken = {product.code for product in products if product.code}
    plan = GenerationPlan()
    for product in products:
        if product.code:
            continue
        resolution = next_free_code(classify(product.name), taken)
        if not resolution.is_unique:
            logger.warning(
                "No free code for %s (%s); prefix exhausted",
                product.name,
                product.id,
                extra={"extra_data": {"product_id": product.id, "last_candidate": resolution.value}},
            )
            plan.exhausted.append(product.id)
            continue
        taken.add(resolution.value)
        plan.writes.append(
            ProductWrite(
                id=product.id,
                fields={"code": resolution.value, "barcode": resolution.value, "qrcode": resolution.value},
            )
        )
    return plan


def plan_missing_qrcodes(
    catalog: Iterable[Any],
    default_store_id: str | None = None,
    rng: random.Random | None = None,
    max_attempts: int | None = None,
) -> GenerationPlan:
    """QR payloads for products with no ``qrcode`` yet.

    A product that already has a code gets that code back as its QR payload
    (and barcode), so it stays in sync. Only products without a code receive
    a legacy structured payload.
    """

    default_store_id = default_store_id or settings.DEFAULT_STORE_ID
    max_attempts = max_attempts or settings.CODE_MAX_ATTEMPTS
    rng = rng or random.Random()
    working = [_snapshot(product) for product in catalog]
    plan = GenerationPlan()
    for index, product in enumerate(working):
        if product.qrcode:
            continue
        if product.code:
            fields = sync_one(product)
            working[index] = product.model_copy(update=fields)
            plan.writes.append(ProductWrite(id=product.id, fields=fields))
            continue
        resolution = resolve_unique_legacy(
            product.name,
            product.id,
            working,
            store_id=product.store_id or default_store_id,
            rng=rng,
            max_attempts=max_attempts,
        )
        if not resolution.is_unique:
            plan.exhausted.append(product.id)
            continue
        working[index] = product.model_copy(update={"qrcode": resolution.value})
        plan.writes.append(ProductWrite(id=product.id, fields={"qrcode": resolution.value}))
    return plan


def _apply_writes(db: Session, writes: Sequence[ProductWrite]) -> tuple[int, int]:
    applied = failed = 0
    for write in writes:
        try:
            apply_write(db, write)
        except (SQLAlchemyError, LookupError):
            logger.exception(
                "Failed to write identifiers for product %s",
                write.id,
                extra={"extra_data": {"product_id": write.id, "fields": sorted(write.fields)}},
            )
            failed += 1
            continue
        applied += 1
    return applied, failed


def _read_catalog(db: Session) -> list[ProductSnapshot] | None:
    try:
        return list_catalog(db)
    except SQLAlchemyError:
        logger.exception("Failed to read the product catalog")
        return None


def sync_single_product(db: Session, product_id: str) -> Product:
    product = get_product(db, product_id)
    if product is None:
        raise LookupError(f"product {product_id} not found")
    fields = sync_one(product)
    updated = apply_write(db, ProductWrite(id=product.id, fields=fields))
    logger.info("Synced product %s to %s", product.id, product.code)
    return updated


def sync_all_product_codes(db: Session) -> BulkResult:
    catalog = _read_catalog(db)
    if catalog is None:
        return BulkResult(success=False, message="Failed to sync: could not read the product catalog")

    plan = plan_sync(catalog)
    updated, failed = _apply_writes(db, plan.updates)
    logger.info(
        "Product code sync complete",
        extra={"extra_data": {"total": len(catalog), "updated": updated, "skipped": plan.skipped, "failed": failed}},
    )
    if plan.updates and not updated:
        return BulkResult(
            success=False,
            total=len(catalog),
            updated=0,
            skipped=plan.skipped,
            failed=failed,
            message="Failed to sync: no product could be updated",
        )
    return BulkResult(
        success=True,
        total=len(catalog),
        updated=updated,
        skipped=plan.skipped,
        failed=failed,
        message=f"Successfully synced {updated} products",
    )


def auto_generate_missing_codes(db: Session) -> BulkResult:
    catalog = _read_catalog(db)
    if catalog is None:
        return BulkResult(success=False, message="Failed to generate codes: could not read the product catalog")

    plan = plan_missing_codes(catalog)
    generated, failed = _apply_writes(db, plan.writes)
    logger.info(
        "Missing code generation complete",
        extra={"extra_data": {"generated": generated, "exhausted": len(plan.exhausted), "failed": failed}},
    )
    if plan.writes and not generated:
        return BulkResult(
            success=False,
            total=len(catalog),
            generated=0,
            skipped=len(plan.exhausted),
            failed=failed,
            message="Failed to generate codes: no product could be updated",
        )
    return BulkResult(
        success=True,
        total=len(catalog),
        generated=generated,
        skipped=len(plan.exhausted),
        failed=failed,
        message=f"Generated codes for {generated} products",
    )


def generate_missing_qrcodes(db: Session, store_id: str | None = None, rng: random.Random | None = None) -> BulkResult:
    catalog = _read_catalog(db)
    if catalog is None:
        return BulkResult(success=False, message="Failed to generate QR codes: could not read the product catalog")

    plan = plan_missing_qrcodes(catalog, default_store_id=store_id, rng=rng)
    if not plan.writes and not plan.exhausted:
        return BulkResult(success=True, total=len(catalog), updated=0, message="All items already have QR codes")
    updated, failed = _apply_writes(db, plan.writes)
    return BulkResult(
        success=bool(updated) or not plan.writes,
        total=len(catalog),
        updated=updated,
        skipped=len(plan.exhausted),
        failed=failed,
        message=f"Successfully generated QR codes for {updated} items",
    )


def assign_product_code(db: Session, product_id: str, max_attempts: int | None = None) -> CodeAssignment:
    """Give one product a unique code and mirror it into barcode and QR.

    A product that already has a code keeps it; only the barcode and QR
    fields are brought in line.
    """

    product = get_product(db, product_id)
    if product is None:
        raise LookupError(f"product {product_id} not found")
    catalog = list_catalog(db)
    resolution = resolve_unique(
        product.name,
        product.id,
        catalog,
        existing_code=product.code,
        max_attempts=max_attempts or settings.CODE_MAX_ATTEMPTS,
    )
    if not resolution.is_unique:
        raise CodeConflict(product.id, resolution.value, resolution.attempts)

    code = resolution.value
    apply_write(db, ProductWrite(id=product.id, fields={"code": code, "barcode": code, "qrcode": code}))
    logger.info(
        "Assigned code %s to product %s",
        code,
        product.id,
        extra={"extra_data": {"attempts": resolution.attempts}},
    )
    return CodeAssignment(id=product.id, code=code, barcode=code, qrcode=code, attempts=resolution.attempts)


def create_product_with_code(db: Session, payload: dict, max_attempts: int | None = None) -> Product:
    """Create a product together with its code, barcode and QR payload.

    The code is resolved against the catalog before anything is written, so
    a ``CodeConflict`` leaves no code-less row behind.
    """

    data = dict(payload)
    resolution = resolve_unique(
        data.get("name"),
        data.get("id"),
        list_catalog(db),
        max_attempts=max_attempts or settings.CODE_MAX_ATTEMPTS,
    )
    if not resolution.is_unique:
        raise CodeConflict(data.get("id"), resolution.value, resolution.attempts)

    code = resolution.value
    data.update(code=code, barcode=code, qrcode=code)
    product = create_product(db, data)
    logger.info(
        "Created product %s with code %s",
        product.id,
        code,
        extra={"extra_data": {"attempts": resolution.attempts}},
    )
    return product
