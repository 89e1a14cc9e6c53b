# Overview: Flask API routes for products, their variants and size prices; parses input and returns JSON responses.

# backend/garment_ledger/routes/products.py
"""
Product management routes.

A product declares the sizes and colors it is offered in (size_ids,
color_ids); stock and size price overrides are tracked against those
declarations.
"""
import uuid

from flask import Blueprint, request

from ..models import Product
from ..services import catalog_service
from ..services.pricing_service import resolve_price, price_table
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_optional_uuid,
    parse_uuid_list,
    ValidationError,
)
from ..decorators import require_principal

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category_id", "price_cents", "cost_cents",
        "sku", "image_url", "secondary_image_url",
        "size_ids", "color_ids",
    },
    required_on_create={"name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - category_id: UUID (optional)
    - search: str (optional) - matches name or SKU
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    category_id = parse_optional_uuid(request.args.get("category_id"), "category_id")
    return catalog_service.list_products(
        category_id=category_id,
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
@require_principal
def create_product_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    product = catalog_service.create_product(
        patch=patch,
        size_ids=parse_uuid_list(payload.get("size_ids"), "size_ids"),
        color_ids=parse_uuid_list(payload.get("color_ids"), "color_ids"),
    )
    return product.to_dict(), 201


@products_bp.get("/<uuid:product_id>")
def get_product_route(product_id: uuid.UUID):
    return catalog_service.get_product(product_id).to_dict()


@products_bp.put("/<uuid:product_id>")
@require_principal
def update_product_route(product_id: uuid.UUID):
    """Partial update. size_ids / color_ids, when present, replace the current sets."""
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    size_ids = parse_uuid_list(payload["size_ids"], "size_ids") if "size_ids" in payload else None
    color_ids = parse_uuid_list(payload["color_ids"], "color_ids") if "color_ids" in payload else None

    product = catalog_service.update_product(
        product_id, patch=patch, size_ids=size_ids, color_ids=color_ids,
    )
    return product.to_dict(), 200


@products_bp.delete("/<uuid:product_id>")
@require_principal
def delete_product_route(product_id: uuid.UUID):
    """Delete a product. Past invoice lines keep their name snapshots."""
    catalog_service.delete_product(product_id)
    return {"ok": True}, 200


@products_bp.get("/<uuid:product_id>/variants")
def list_variants(product_id: uuid.UUID):
    variants = catalog_service.effective_variants(product_id)
    items = sorted(
        (
            {
                "size_id": str(size_id) if size_id else None,
                "color_id": str(color_id) if color_id else None,
            }
            for size_id, color_id in variants
        ),
        key=lambda v: (v["size_id"] or "", v["color_id"] or ""),
    )
    return {"items": items, "count": len(items)}


# -----------------------------------------------------------------------------
# Size price overrides
# -----------------------------------------------------------------------------

@products_bp.get("/<uuid:product_id>/prices")
def list_prices(product_id: uuid.UUID):
    """Effective price per offered size, plus the raw overrides."""
    overrides = catalog_service.list_price_overrides(product_id)
    return {
        "effective": price_table(product_id),
        "overrides": [o.to_dict() for o in overrides],
    }


@products_bp.put("/<uuid:product_id>/prices/<uuid:size_id>")
@require_principal
def set_price(product_id: uuid.UUID, size_id: uuid.UUID):
    payload = request.get_json(silent=True) or {}
    if "price_cents" not in payload:
        raise ValidationError("price_cents is required")
    override = catalog_service.set_price_override(product_id, size_id, payload["price_cents"])
    return override.to_dict(), 200


@products_bp.delete("/<uuid:product_id>/prices/<uuid:size_id>")
@require_principal
def delete_price(product_id: uuid.UUID, size_id: uuid.UUID):
    if not catalog_service.delete_price_override(product_id, size_id):
        return {"error": "Price override not found"}, 404
    return {"ok": True}, 200


@products_bp.get("/<uuid:product_id>/price")
def effective_price(product_id: uuid.UUID):
    size_id = parse_optional_uuid(request.args.get("size_id"), "size_id")
    return {
        "product_id": str(product_id),
        "size_id": str(size_id) if size_id else None,
        "price_cents": resolve_price(product_id, size_id),
    }
