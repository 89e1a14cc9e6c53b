# Overview: Flask API routes for categories, sizes and colors; parses input and returns JSON responses.

# backend/garment_ledger/routes/catalog.py
"""
Reference data routes.

Reads are open; writes require an identified principal (@require_principal).
Domain errors (duplicate name, not found) are mapped to status codes by the
app-level error handlers.
"""
import uuid

from flask import Blueprint, request

from ..models import Category, Size, Color
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_color
from ..decorators import require_principal

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

SIZE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sort_order"},
    required_on_create={"name"},
)

COLOR_POLICY = ModelValidationPolicy(
    writable_fields={"name", "hex_code", "sort_order"},
    required_on_create={"name"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------

@catalog_bp.get("/categories")
def list_categories():
    categories = catalog_service.list_categories()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@catalog_bp.post("/categories")
@require_principal
def create_category():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    category = catalog_service.create_category(patch=patch)
    return category.to_dict(), 201


@catalog_bp.put("/categories/<uuid:category_id>")
@require_principal
def update_category(category_id: uuid.UUID):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    category = catalog_service.update_category(category_id, patch=patch)
    return category.to_dict(), 200


@catalog_bp.delete("/categories/<uuid:category_id>")
@require_principal
def delete_category(category_id: uuid.UUID):
    """Products in the category are kept and become uncategorised."""
    catalog_service.delete_category(category_id)
    return {"ok": True}, 200


# -----------------------------------------------------------------------------
# Sizes
# -----------------------------------------------------------------------------

@catalog_bp.get("/sizes")
def list_sizes():
    sizes = catalog_service.list_sizes()
    return {"items": [s.to_dict() for s in sizes], "count": len(sizes)}


@catalog_bp.post("/sizes")
@require_principal
def create_size():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Size, payload=payload, policy=SIZE_POLICY, partial=False)
    size = catalog_service.create_size(patch=patch)
    return size.to_dict(), 201


@catalog_bp.put("/sizes/<uuid:size_id>")
@require_principal
def update_size(size_id: uuid.UUID):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Size, payload=payload, policy=SIZE_POLICY, partial=True)
    size = catalog_service.update_size(size_id, patch=patch)
    return size.to_dict(), 200


@catalog_bp.delete("/sizes/<uuid:size_id>")
@require_principal
def delete_size(size_id: uuid.UUID):
    """
    Delete a size.

    Its price overrides and stock cells go with it. Invoice lines that sold
    the size keep their size_name snapshot.
    """
    catalog_service.delete_size(size_id)
    return {"ok": True}, 200


# -----------------------------------------------------------------------------
# Colors
# -----------------------------------------------------------------------------

@catalog_bp.get("/colors")
def list_colors():
    colors = catalog_service.list_colors()
    return {"items": [c.to_dict() for c in colors], "count": len(colors)}


@catalog_bp.post("/colors")
@require_principal
def create_color():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Color, payload=payload, policy=COLOR_POLICY, partial=False)
    enforce_rules_color(patch)
    color = catalog_service.create_color(patch=patch)
    return color.to_dict(), 201


@catalog_bp.put("/colors/<uuid:color_id>")
@require_principal
def update_color(color_id: uuid.UUID):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Color, payload=payload, policy=COLOR_POLICY, partial=True)
    enforce_rules_color(patch)
    color = catalog_service.update_color(color_id, patch=patch)
    return color.to_dict(), 200


@catalog_bp.delete("/colors/<uuid:color_id>")
@require_principal
def delete_color(color_id: uuid.UUID):
    catalog_service.delete_color(color_id)
    return {"ok": True}, 200
