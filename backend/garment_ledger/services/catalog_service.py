# backend/garment_ledger/services/catalog_service.py
"""
Catalog Service - categories, sizes, colors, products and size price overrides.

UNIQUENESS RULES:
- Category/Size/Color: name is unique per type (DuplicateName)
- Product.sku: unique when present (DuplicateSKU); blank means "no SKU"
- PriceOverride: one row per (product, size); writes are upserts

Products reference sizes and colors through explicit association tables.
effective_variants() is the single place that turns those declarations into
the set of (size_id, color_id) pairs stock can be tracked against.
"""
from __future__ import annotations

import uuid
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Size, Color, Product, PriceOverride, InvoiceLineItem
from ..validation import (
    ValidationError,
    NotFoundError,
    DuplicateName,
    DuplicateSKU,
    InvalidState,
    enforce_price_cents,
)

DEFAULT_SIZES = (
    ("XS", 1), ("S", 2), ("M", 3), ("L", 4), ("XL", 5), ("XXL", 6), ("XXXL", 7),
)

CATEGORY_MUTABLE_FIELDS = {"name", "description"}
SIZE_MUTABLE_FIELDS = {"name", "sort_order"}
COLOR_MUTABLE_FIELDS = {"name", "hex_code", "sort_order"}
PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category_id", "price_cents", "cost_cents",
    "sku", "image_url", "secondary_image_url",
}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


def _commit_or_conflict(conflict: Exception) -> None:
    """Commit; a unique-constraint race that slipped past the pre-checks becomes `conflict`."""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise conflict


def _require(model, row_id: uuid.UUID, label: str):
    row = db.session.get(model, row_id)
    if row is None:
        raise NotFoundError(f"{label} not found")
    return row


def _ensure_name_free(model, name: str, label: str, exclude_id: uuid.UUID | None = None) -> None:
    q = db.session.query(model).filter(model.name == name)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.first() is not None:
        raise DuplicateName(f"{label} '{name}' already exists")


# =============================================================================
# Categories, sizes, colors
# =============================================================================

def _create_named(model, label: str, patch: dict, allowed: set[str]):
    name = patch.get("name")
    if not name:
        raise ValidationError("name is required")
    _ensure_name_free(model, name, label)
    row = model()
    _apply_patch(row, patch, allowed)
    db.session.add(row)
    _commit_or_conflict(DuplicateName(f"{label} '{name}' already exists"))
    return row


def _update_named(model, label: str, row_id: uuid.UUID, patch: dict, allowed: set[str]):
    row = _require(model, row_id, label)
    if "name" in patch:
        if not patch["name"]:
            raise ValidationError("name cannot be blank")
        _ensure_name_free(model, patch["name"], label, exclude_id=row.id)
    _apply_patch(row, patch, allowed)
    _commit_or_conflict(DuplicateName(f"{label} '{patch.get('name')}' already exists"))
    return row


def _delete_row(model, label: str, row_id: uuid.UUID) -> None:
    row = _require(model, row_id, label)
    db.session.delete(row)
    db.session.commit()
    # Dependent rows changed through ON DELETE rules, not through the ORM
    db.session.expire_all()


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(*, patch: dict) -> Category:
    return _create_named(Category, "Category", patch, CATEGORY_MUTABLE_FIELDS)


def update_category(category_id: uuid.UUID, *, patch: dict) -> Category:
    return _update_named(Category, "Category", category_id, patch, CATEGORY_MUTABLE_FIELDS)


def delete_category(category_id: uuid.UUID) -> None:
    """Products in the category keep existing with category_id = NULL."""
    _delete_row(Category, "Category", category_id)


def list_sizes() -> list[Size]:
    return db.session.query(Size).order_by(Size.sort_order.asc(), Size.name.asc()).all()


def create_size(*, patch: dict) -> Size:
    return _create_named(Size, "Size", patch, SIZE_MUTABLE_FIELDS)


def update_size(size_id: uuid.UUID, *, patch: dict) -> Size:
    return _update_named(Size, "Size", size_id, patch, SIZE_MUTABLE_FIELDS)


def delete_size(size_id: uuid.UUID) -> None:
    """Cascades the size's price overrides and inventory cells."""
    _delete_row(Size, "Size", size_id)


def seed_default_sizes() -> list[Size]:
    """Insert any missing canonical size (XS..XXXL). Idempotent."""
    existing = {s.name for s in db.session.query(Size).all()}
    created = []
    for name, sort_order in DEFAULT_SIZES:
        if name in existing:
            continue
        size = Size(name=name, sort_order=sort_order)
        db.session.add(size)
        created.append(size)
    db.session.commit()
    return created


def list_colors() -> list[Color]:
    return db.session.query(Color).order_by(Color.sort_order.asc(), Color.name.asc()).all()


def create_color(*, patch: dict) -> Color:
    return _create_named(Color, "Color", patch, COLOR_MUTABLE_FIELDS)


def update_color(color_id: uuid.UUID, *, patch: dict) -> Color:
    return _update_named(Color, "Color", color_id, patch, COLOR_MUTABLE_FIELDS)


def delete_color(color_id: uuid.UUID) -> None:
    """Cascades the color's inventory cells."""
    _delete_row(Color, "Color", color_id)


# =============================================================================
# Products
# =============================================================================

def _resolve_ids(model, ids: Iterable[uuid.UUID], label: str) -> list:
    wanted = list(dict.fromkeys(ids))
    if not wanted:
        return []
    rows = db.session.query(model).filter(model.id.in_(wanted)).all()
    found = {r.id for r in rows}
    missing = [str(i) for i in wanted if i not in found]
    if missing:
        raise ValidationError(f"Unknown {label} id(s): {', '.join(missing)}")
    return rows


def _ensure_sku_free(sku: str | None, exclude_id: uuid.UUID | None = None) -> None:
    if not sku:
        return
    q = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise DuplicateSKU(f"SKU '{sku}' already exists")


def _ensure_category(category_id: uuid.UUID | None) -> None:
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise ValidationError(f"Unknown category id: {category_id}")


def get_product(product_id: uuid.UUID) -> Product:
    return _require(Product, product_id, "Product")


def list_products(
    *,
    category_id: uuid.UUID | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(db.or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(
    *,
    patch: dict,
    size_ids: Iterable[uuid.UUID] = (),
    color_ids: Iterable[uuid.UUID] = (),
) -> Product:
    """
    Create a product from a validated patch dict.

    Raises:
        ValidationError: unknown category/size/color id, missing name
        DuplicateSKU: SKU already used by another product
    """
    if not patch.get("name"):
        raise ValidationError("name is required")
    _ensure_category(patch.get("category_id"))
    _ensure_sku_free(patch.get("sku"))

    product = Product()
    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    product.sizes = _resolve_ids(Size, size_ids, "size")
    product.colors = _resolve_ids(Color, color_ids, "color")

    db.session.add(product)
    _commit_or_conflict(DuplicateSKU(f"SKU '{patch.get('sku')}' already exists"))
    current_app.logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(
    product_id: uuid.UUID,
    *,
    patch: dict,
    size_ids: Iterable[uuid.UUID] | None = None,
    color_ids: Iterable[uuid.UUID] | None = None,
) -> Product:
    """
    Update product fields and, when given, replace its size/color sets.

    Dropping a size from the set leaves its price override and stock cells in
    place; they simply stop being reachable through effective_variants().
    """
    product = get_product(product_id)

    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be blank")
    if "category_id" in patch:
        _ensure_category(patch["category_id"])
    if "sku" in patch:
        _ensure_sku_free(patch["sku"], exclude_id=product.id)

    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    if size_ids is not None:
        product.sizes = _resolve_ids(Size, size_ids, "size")
    if color_ids is not None:
        product.colors = _resolve_ids(Color, color_ids, "color")

    _commit_or_conflict(DuplicateSKU(f"SKU '{patch.get('sku')}' already exists"))
    return product


def delete_product(product_id: uuid.UUID) -> None:
    """
    Delete a product with its price overrides and stock cells.

    Invoice line items keep their snapshots; only their product reference is
    cleared.
    """
    product = get_product(product_id)
    db.session.query(InvoiceLineItem).filter(InvoiceLineItem.product_id == product.id).update(
        {"product_id": None}, synchronize_session=False
    )
    db.session.delete(product)
    db.session.commit()
    db.session.expire_all()
    current_app.logger.info("Deleted product %s", product_id)


def effective_variants(product_id: uuid.UUID) -> set[tuple[uuid.UUID | None, uuid.UUID | None]]:
    """
    Variants a product can carry stock for.

    - sizes and colors declared: their cross product
    - only one dimension declared: that list paired with None
    - neither declared: the single implicit variant (None, None)
    """
    product = get_product(product_id)
    size_ids = [s.id for s in product.sizes] or [None]
    color_ids = [c.id for c in product.colors] or [None]
    return {(size_id, color_id) for size_id in size_ids for color_id in color_ids}


# =============================================================================
# Size price overrides
# =============================================================================

def list_price_overrides(product_id: uuid.UUID) -> list[PriceOverride]:
    get_product(product_id)
    return (
        db.session.query(PriceOverride)
        .join(Size, Size.id == PriceOverride.size_id)
        .filter(PriceOverride.product_id == product_id)
        .order_by(Size.sort_order.asc(), Size.name.asc())
        .all()
    )


def set_price_override(product_id: uuid.UUID, size_id: uuid.UUID, price_cents: int) -> PriceOverride:
    """
    Create or replace the override for (product, size).

    Raises:
        InvalidState: the size no longer exists
        ValidationError: the product is not offered in that size, or bad price
    """
    product = get_product(product_id)
    price_cents = enforce_price_cents(price_cents)

    size = db.session.get(Size, size_id)
    if size is None:
        raise InvalidState(f"Size {size_id} no longer exists")
    if size not in product.sizes:
        raise ValidationError(f"Product is not offered in size '{size.name}'")

    override = (
        db.session.query(PriceOverride)
        .filter_by(product_id=product.id, size_id=size.id)
        .first()
    )
    if override is None:
        override = PriceOverride(product_id=product.id, size_id=size.id, price_cents=price_cents)
        db.session.add(override)
    else:
        override.price_cents = price_cents

    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent upsert won the insert; apply ours as an update
        db.session.rollback()
        override = db.session.query(PriceOverride).filter_by(product_id=product_id, size_id=size_id).one()
        override.price_cents = price_cents
        db.session.commit()
    return override


def delete_price_override(product_id: uuid.UUID, size_id: uuid.UUID) -> bool:
    deleted = (
        db.session.query(PriceOverride)
        .filter_by(product_id=product_id, size_id=size_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return bool(deleted)
