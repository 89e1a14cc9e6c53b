from __future__ import annotations

import uuid

from ..extensions import db
from garment_ledger.time_utils import to_utc_z


# Explicit many-to-many relations replace per-product arrays of ids.
product_sizes = db.Table(
    "product_sizes",
    db.Column("product_id", db.Uuid, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("size_id", db.Uuid, db.ForeignKey("sizes.id", ondelete="CASCADE"), primary_key=True),
)

product_colors = db.Table(
    "product_colors",
    db.Column("product_id", db.Uuid, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("color_id", db.Uuid, db.ForeignKey("colors.id", ondelete="CASCADE"), primary_key=True),
)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Size(db.Model):
    """
    Garment size. sort_order drives display ordering only; identity is the id.
    """
    __tablename__ = "sizes"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(32), nullable=False, unique=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Size id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
        }


class Color(db.Model):
    __tablename__ = "colors"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(64), nullable=False, unique=True)
    hex_code = db.Column(db.String(7), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Color id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "hex_code": self.hex_code,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Garment product master data.

    PRICING: price_cents is the base price. A PriceOverride row for
    (product, size) supersedes it for that size only.

    STOCK: quantity_in_stock is a cached projection of SUM(product_inventory.quantity).
    The per-variant cells are the source of truth; the projection is refreshed
    on demand by inventory_service.refresh_stock_projection().

    SKU is optional; when present it is globally unique.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category_id = db.Column(db.Uuid, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    # Authoritative storage in cents (two decimal places)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=True)

    quantity_in_stock = db.Column(db.Integer, nullable=False, default=0)

    sku = db.Column(db.String(64), nullable=True, unique=True)

    # URLs returned by the asset storage collaborator; never validated here
    image_url = db.Column(db.Text, nullable=True)
    secondary_image_url = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category")
    sizes = db.relationship("Size", secondary=product_sizes, order_by="Size.sort_order", lazy="selectin")
    colors = db.relationship("Color", secondary=product_colors, order_by="Color.sort_order", lazy="selectin")
    price_overrides = db.relationship(
        "PriceOverride",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    inventory_cells = db.relationship(
        "InventoryCell",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "category_id": str(self.category_id) if self.category_id else None,
            "size_ids": [str(s.id) for s in self.sizes],
            "color_ids": [str(c.id) for c in self.colors],
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "quantity_in_stock": self.quantity_in_stock,
            "sku": self.sku,
            "image_url": self.image_url,
            "secondary_image_url": self.secondary_image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PriceOverride(db.Model):
    """Size-specific price superseding Product.price_cents."""
    __tablename__ = "product_size_prices"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size_id", name="uq_product_size_prices_product_size"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    size_id = db.Column(db.Uuid, db.ForeignKey("sizes.id", ondelete="CASCADE"), nullable=False, index=True)
    price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", back_populates="price_overrides")
    size = db.relationship("Size")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "size_id": str(self.size_id),
            "size_name": self.size.name if self.size else None,
            "price_cents": self.price_cents,
            "updated_at": to_utc_z(self.updated_at),
        }
