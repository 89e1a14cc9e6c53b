from __future__ import annotations

import uuid

from ..extensions import db
from garment_ledger.time_utils import to_utc_z


def make_variant_key(size_id: uuid.UUID | None, color_id: uuid.UUID | None) -> str:
    """
    Deterministic key for a (size, color) pair where a missing dimension is '-'.

    UNIQUE(product_id, size_id, color_id) lets NULLs repeat on most engines;
    UNIQUE(product_id, variant_key) does not.
    """
    size_part = size_id.hex if size_id is not None else "-"
    color_part = color_id.hex if color_id is not None else "-"
    return f"{size_part}:{color_part}"


class InventoryCell(db.Model):
    """
    Stock count for one product variant (size and/or color may be absent).

    INVARIANT: quantity >= 0, enforced by a CHECK constraint and by
    inventory_service.adjust_quantity before any write.
    """
    __tablename__ = "product_inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "variant_key", name="uq_product_inventory_variant"),
        db.CheckConstraint("quantity >= 0", name="ck_product_inventory_quantity_nonneg"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    size_id = db.Column(db.Uuid, db.ForeignKey("sizes.id", ondelete="CASCADE"), nullable=True, index=True)
    color_id = db.Column(db.Uuid, db.ForeignKey("colors.id", ondelete="CASCADE"), nullable=True, index=True)
    variant_key = db.Column(db.String(80), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", back_populates="inventory_cells")
    size = db.relationship("Size")
    color = db.relationship("Color")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryCell product_id={self.product_id} variant={self.variant_key} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "size_id": str(self.size_id) if self.size_id else None,
            "size_name": self.size.name if self.size else None,
            "color_id": str(self.color_id) if self.color_id else None,
            "color_name": self.color.name if self.color else None,
            "quantity": self.quantity,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }
