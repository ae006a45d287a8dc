from __future__ import annotations

from sqlalchemy import Column, Float, Integer, Text

from ..db.session import Base


class Product(Base):
    """An inventory item as stored by the catalog.

    ``code`` is the canonical identifier; ``barcode`` and ``qrcode`` are
    expected to mirror it once generated. Columns are deliberately not unique:
    uniqueness is enforced by the code resolver against catalog snapshots and
    legacy rows may still share values.
    """

    __tablename__ = "products"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    code = Column(Text, nullable=True, index=True)
    barcode = Column(Text, nullable=True, index=True)
    qrcode = Column(Text, nullable=True, index=True)
    store_id = Column(Text, nullable=True, index=True)
    price = Column(Float, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    @property
    def codes_in_sync(self) -> bool:
        return bool(self.code) and self.barcode == self.code and self.qrcode == self.code
