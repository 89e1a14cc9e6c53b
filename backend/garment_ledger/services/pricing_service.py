# Overview: Read-only effective price resolution for (product, size).

from __future__ import annotations

import uuid

from ..extensions import db
from ..models import Product, PriceOverride
from ..validation import NotFoundError


def resolve_price(product_id: uuid.UUID, size_id: uuid.UUID | None) -> int:
    """
    Effective unit price in cents.

    Precedence: PriceOverride(product, size) if one exists, else the
    product's base price. A sizeless request always gets the base price.
    No side effects; callers snapshot the result themselves.
    """
    base_price = (
        db.session.query(Product.price_cents)
        .filter(Product.id == product_id)
        .scalar()
    )
    if base_price is None:
        raise NotFoundError("Product not found")

    if size_id is None:
        return base_price

    override = (
        db.session.query(PriceOverride.price_cents)
        .filter(PriceOverride.product_id == product_id, PriceOverride.size_id == size_id)
        .scalar()
    )
    return override if override is not None else base_price


def price_table(product_id: uuid.UUID) -> list[dict]:
    """Effective price for every size the product is offered in (base price when sizeless)."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    if not product.sizes:
        return [{"size_id": None, "size_name": None, "price_cents": product.price_cents, "is_override": False}]

    rows = []
    for size in product.sizes:
        rows.append({
            "size_id": str(size.id),
            "size_name": size.name,
            "price_cents": resolve_price(product.id, size.id),
            "is_override": _has_override(product.id, size.id),
        })
    return rows


def _has_override(product_id: uuid.UUID, size_id: uuid.UUID) -> bool:
    return (
        db.session.query(PriceOverride.id)
        .filter_by(product_id=product_id, size_id=size_id)
        .first()
        is not None
    )
