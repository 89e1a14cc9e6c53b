# Overview: Flask API routes for per-variant stock; parses input and returns JSON responses.

import uuid

from flask import Blueprint, request

from ..services import inventory_service
from ..validation import ValidationError, parse_uuid, parse_optional_uuid
from ..decorators import require_principal

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _variant_from_payload(payload: dict) -> tuple[uuid.UUID, uuid.UUID | None, uuid.UUID | None]:
    if not payload.get("product_id"):
        raise ValidationError("product_id is required")
    return (
        parse_uuid(payload["product_id"], "product_id"),
        parse_optional_uuid(payload.get("size_id"), "size_id"),
        parse_optional_uuid(payload.get("color_id"), "color_id"),
    )


@inventory_bp.get("/<uuid:product_id>")
def get_inventory(product_id: uuid.UUID):
    """Stock cells for every variant that has one, with the live total."""
    return inventory_service.get_inventory_summary(product_id)


@inventory_bp.post("/adjust")
@require_principal
def adjust_inventory():
    """
    Apply a signed delta to one variant.

    Body: {product_id, size_id?, color_id?, delta}
    409 with shortfall details when the result would be negative.
    """
    payload = request.get_json(silent=True) or {}
    product_id, size_id, color_id = _variant_from_payload(payload)
    if payload.get("delta") is None:
        raise ValidationError("delta is required")

    cell = inventory_service.adjust_quantity(product_id, size_id, color_id, payload["delta"])
    return cell.to_dict(), 200


@inventory_bp.post("/set")
@require_principal
def set_inventory():
    """Stock-take. Body: {product_id, size_id?, color_id?, quantity}"""
    payload = request.get_json(silent=True) or {}
    product_id, size_id, color_id = _variant_from_payload(payload)
    if payload.get("quantity") is None:
        raise ValidationError("quantity is required")

    cell = inventory_service.set_quantity(product_id, size_id, color_id, payload["quantity"])
    return cell.to_dict(), 200


@inventory_bp.post("/refresh-totals")
@require_principal
def refresh_totals():
    payload = request.get_json(silent=True) or {}
    product_id = parse_optional_uuid(payload.get("product_id"), "product_id")
    totals = inventory_service.refresh_stock_projection(product_id)
    return {"totals": totals, "count": len(totals)}, 200
