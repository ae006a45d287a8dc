from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductSnapshot(BaseModel):
    """Read-only view of a catalog row handed to the code resolver."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str = ""
    code: Optional[str] = None
    barcode: Optional[str] = None
    qrcode: Optional[str] = None
    store_id: Optional[str] = Field(default=None, alias="storeId")


class ProductCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = Field(min_length=1)
    code: Optional[str] = None
    store_id: Optional[str] = Field(default=None, alias="storeId")
    price: Optional[float] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    auto_generate_code: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    code: Optional[str] = None
    barcode: Optional[str] = None
    qrcode: Optional[str] = None
    store_id: Optional[str] = Field(default=None, serialization_alias="storeId")
    price: Optional[float] = None
    stock: int = 0
    created_at: str
    codes_in_sync: bool = False


class ProductWrite(BaseModel):
    """Partial update sent to the catalog store for one product."""

    id: str
    fields: dict[str, str]


class BulkResult(BaseModel):
    """Summary of a bulk identifier run, shown to the user as a notification."""

    success: bool
    message: str
    total: int = 0
    updated: Optional[int] = None
    generated: Optional[int] = None
    skipped: Optional[int] = None
    failed: int = 0


class CodeAssignment(BaseModel):
    id: str
    code: str
    barcode: str
    qrcode: str
    attempts: int = 0


class ScanMatch(BaseModel):
    matched_by: Literal["qrcode", "barcode", "code", "id", "name"]
    product: ProductOut


class CodeStatusReport(BaseModel):
    total: int
    with_code: int
    without_code: int
    with_barcode: int
    without_barcode: int
    with_qrcode: int
    without_qrcode: int
    with_both: int
    fully_synced: int
    legacy_qrcodes: int
    sample_qrcodes: list[dict[str, str]] = Field(default_factory=list)


class ParsedIdentifier(BaseModel):
    value: str
    scheme: Optional[Literal["simple", "legacy"]] = None
    valid: bool
    parts: dict[str, str] = Field(default_factory=dict)
