# Overview: Service-layer operations for per-variant stock; encapsulates business logic and database work.

# backend/garment_ledger/services/inventory_service.py

from __future__ import annotations

import uuid

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, InventoryCell, make_variant_key
from ..validation import ValidationError, parse_int
from .catalog_service import effective_variants
from .concurrency import lock_for_update, begin_write_transaction, run_with_retry
"""
Inventory Invariants (authoritative)

Stock model:
- Stock is held per variant in InventoryCell rows keyed by (product, size?, color?).
- A missing cell means quantity 0; it is created lazily by the first adjustment.
- quantity >= 0 always. An adjustment that would go negative raises
  InsufficientStock and writes nothing.

Concurrency:
- Every adjustment locks its cell (SELECT ... FOR UPDATE) before reading the
  quantity, so adjustments to the same variant serialize and adjustments to
  different variants do not contend. On SQLite the whole write transaction
  is serialized by BEGIN IMMEDIATE instead.

Product.quantity_in_stock:
- A cached projection of SUM(cell.quantity), refreshed on demand by
  refresh_stock_projection(). It is never read for stock decisions.
"""


class InsufficientStock(ValueError):
    """Raised when a variant does not hold enough units for a decrement."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _cell_query(product_id: uuid.UUID, size_id: uuid.UUID | None, color_id: uuid.UUID | None):
    return db.session.query(InventoryCell).filter(
        InventoryCell.product_id == product_id,
        InventoryCell.variant_key == make_variant_key(size_id, color_id),
    )


def _ensure_variant(product_id: uuid.UUID, size_id: uuid.UUID | None, color_id: uuid.UUID | None) -> None:
    if db.session.get(Product, product_id) is None:
        raise ValidationError(f"Unknown product id: {product_id}")
    if (size_id, color_id) not in effective_variants(product_id):
        raise ValidationError(
            f"Product {product_id} has no variant size={size_id} color={color_id}"
        )


def get_quantity(product_id: uuid.UUID, size_id: uuid.UUID | None, color_id: uuid.UUID | None) -> int:
    """Units on hand for one variant. A missing cell is 0, not an error."""
    qty = (
        db.session.query(InventoryCell.quantity)
        .filter(
            InventoryCell.product_id == product_id,
            InventoryCell.variant_key == make_variant_key(size_id, color_id),
        )
        .scalar()
    )
    return int(qty or 0)


def _lock_or_create_cell(
    product_id: uuid.UUID, size_id: uuid.UUID | None, color_id: uuid.UUID | None
) -> InventoryCell:
    cell = lock_for_update(_cell_query(product_id, size_id, color_id)).first()
    if cell is not None:
        return cell

    cell = InventoryCell(
        product_id=product_id,
        size_id=size_id,
        color_id=color_id,
        variant_key=make_variant_key(size_id, color_id),
        quantity=0,
    )
    try:
        with db.session.begin_nested():
            db.session.add(cell)
    except IntegrityError:
        # Another writer created the cell first; take its row lock instead
        cell = lock_for_update(_cell_query(product_id, size_id, color_id)).one()
    return cell


def _apply_delta_locked(
    product_id: uuid.UUID,
    size_id: uuid.UUID | None,
    color_id: uuid.UUID | None,
    delta: int,
) -> InventoryCell:
    """Core adjustment without transaction control. Caller owns begin/commit."""
    cell = _lock_or_create_cell(product_id, size_id, color_id)
    new_quantity = cell.quantity + delta
    if new_quantity < 0:
        requested = -delta
        raise InsufficientStock(
            "Insufficient stock for requested variant",
            details={
                "product_id": str(product_id),
                "size_id": str(size_id) if size_id else None,
                "color_id": str(color_id) if color_id else None,
                "requested": requested,
                "available": cell.quantity,
                "shortfall": requested - cell.quantity,
            },
        )
    cell.quantity = new_quantity
    db.session.flush()
    return cell


def adjust_quantity(
    product_id: uuid.UUID,
    size_id: uuid.UUID | None,
    color_id: uuid.UUID | None,
    delta: int,
    *,
    commit: bool = True,
) -> InventoryCell:
    """
    Apply delta to a variant's stock, creating the cell at 0 if absent.

    commit=True: runs as its own retried unit of work.
    commit=False: joins the caller's transaction (the caller has already
    taken the write lock and will commit or roll back everything together).

    Raises:
        ValidationError: unknown product or variant not offered
        InsufficientStock: result would be negative (nothing written)
    """
    delta = parse_int(delta, "delta")

    def _op():
        if commit:
            begin_write_transaction()
        _ensure_variant(product_id, size_id, color_id)
        cell = _apply_delta_locked(product_id, size_id, color_id, delta)
        if commit:
            db.session.commit()
            current_app.logger.info(
                "Stock adjusted product=%s variant=%s delta=%d quantity=%d",
                product_id, cell.variant_key, delta, cell.quantity,
            )
        return cell

    if not commit:
        return _op()
    return run_with_retry(_op)


def set_quantity(
    product_id: uuid.UUID,
    size_id: uuid.UUID | None,
    color_id: uuid.UUID | None,
    quantity: int,
) -> InventoryCell:
    """Stock-take: overwrite a variant's count (as a locked delta from the current value)."""
    quantity = parse_int(quantity, "quantity")
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")

    def _op():
        begin_write_transaction()
        _ensure_variant(product_id, size_id, color_id)
        cell = _lock_or_create_cell(product_id, size_id, color_id)
        cell = _apply_delta_locked(product_id, size_id, color_id, quantity - cell.quantity)
        db.session.commit()
        return cell

    return run_with_retry(_op)


def total_stock(product_id: uuid.UUID) -> int:
    """Sum of all variant cells. Display only."""
    total = (
        db.session.query(func.coalesce(func.sum(InventoryCell.quantity), 0))
        .filter(InventoryCell.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def list_cells(product_id: uuid.UUID) -> list[InventoryCell]:
    cells = db.session.query(InventoryCell).filter(InventoryCell.product_id == product_id).all()

    def _sort_key(cell: InventoryCell):
        return (
            cell.size.sort_order if cell.size else -1,
            cell.color.sort_order if cell.color else -1,
            cell.color.name if cell.color else "",
        )

    return sorted(cells, key=_sort_key)


def get_inventory_summary(product_id: uuid.UUID) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ValidationError(f"Unknown product id: {product_id}")
    cells = list_cells(product_id)
    return {
        "product_id": str(product_id),
        "cells": [c.to_dict() for c in cells],
        "total_stock": total_stock(product_id),
        "cached_quantity_in_stock": product.quantity_in_stock,
    }


def refresh_stock_projection(product_id: uuid.UUID | None = None) -> dict[str, int]:
    """
    Rewrite Product.quantity_in_stock from the variant cells.

    Products without any cell are set to 0. Returns {product_id: total}.
    """
    totals = dict(
        db.session.query(InventoryCell.product_id, func.sum(InventoryCell.quantity))
        .group_by(InventoryCell.product_id)
        .all()
    )

    q = db.session.query(Product)
    if product_id is not None:
        q = q.filter(Product.id == product_id)

    refreshed = {}
    for product in q.all():
        total = int(totals.get(product.id) or 0)
        product.quantity_in_stock = total
        refreshed[str(product.id)] = total

    db.session.commit()
    return refreshed
