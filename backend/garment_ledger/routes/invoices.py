# Overview: Flask API routes for invoices; parses input and returns JSON responses.

# backend/garment_ledger/routes/invoices.py
"""Invoice API routes"""

import uuid

from flask import Blueprint, request, g, current_app

from ..services import invoice_service
from ..services.sequence_service import peek_next_number
from ..time_utils import parse_iso_date
from ..validation import ValidationError
from ..decorators import require_principal


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _pricing_args(data: dict) -> dict:
    return {
        "tax_rate_bps": data.get("tax_rate_bps"),
        "discount_type": data.get("discount_type"),
        "discount_value": data.get("discount_value"),
    }


@invoices_bp.get("")
def list_invoices_route():
    """
    Query params:
    - payment_status: done | pending (optional)
    - search: str (optional) - matches invoice number, customer name or phone
    - page / per_page: pagination (optional)
    """
    return invoice_service.list_invoices(
        payment_status=request.args.get("payment_status"),
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@invoices_bp.post("")
@require_principal
def create_invoice_route():
    """
    Issue an invoice and consume stock for every line.

    Body:
    {
      "lines": [{"product_id", "size_id"?, "color_id"?, "quantity"}],
      "customer_name"?, "customer_phone"?,
      "tax_rate_bps"?,                      # defaults to store settings
      "discount_type"?, "discount_value"?,  # percentage (bps) | fixed (cents)
      "payment_status"?, "expected_payment_date"?,
      "invoice_number"?, "pdf_url"?
    }

    Errors: 400 bad input, 409 insufficient stock (with details) or duplicate
    number or pending without date, 503 persistent lock contention.
    """
    data = request.get_json(silent=True) or {}
    if "lines" not in data:
        raise ValidationError("lines is required")

    invoice = invoice_service.create_invoice(
        lines=data["lines"],
        customer_name=data.get("customer_name"),
        customer_phone=data.get("customer_phone"),
        payment_status=data.get("payment_status"),
        expected_payment_date=data.get("expected_payment_date"),
        invoice_number=data.get("invoice_number"),
        pdf_url=data.get("pdf_url"),
        created_by=g.principal_id,
        **_pricing_args(data),
    )
    return {"invoice": invoice.to_dict(include_items=True)}, 201


@invoices_bp.post("/preview")
def preview_invoice_route():
    """Price a cart without touching stock or numbering."""
    data = request.get_json(silent=True) or {}
    if "lines" not in data:
        raise ValidationError("lines is required")
    return invoice_service.preview_invoice(lines=data["lines"], **_pricing_args(data))


@invoices_bp.get("/overdue")
def overdue_invoices_route():
    try:
        as_of = parse_iso_date(request.args.get("as_of"))
    except ValueError:
        raise ValidationError("as_of must be an ISO-8601 date")
    invoices = invoice_service.list_overdue(as_of)
    return {"items": [i.to_dict() for i in invoices], "count": len(invoices)}


@invoices_bp.get("/next-number")
def next_number_route():
    """Informational only; the number is not reserved."""
    return {"next_invoice_number": peek_next_number()}


@invoices_bp.get("/<uuid:invoice_id>")
def get_invoice_route(invoice_id: uuid.UUID):
    invoice = invoice_service.get_invoice(invoice_id)
    return {"invoice": invoice.to_dict(include_items=True)}


@invoices_bp.patch("/<uuid:invoice_id>/payment")
@require_principal
def update_payment_route(invoice_id: uuid.UUID):
    """Body: {payment_status, expected_payment_date?}"""
    data = request.get_json(silent=True) or {}
    if not data.get("payment_status"):
        raise ValidationError("payment_status is required")
    invoice = invoice_service.update_payment_status(
        invoice_id, data["payment_status"], data.get("expected_payment_date"),
    )
    return {"invoice": invoice.to_dict()}


@invoices_bp.put("/<uuid:invoice_id>/document")
@require_principal
def attach_document_route(invoice_id: uuid.UUID):
    """Body: {pdf_url} - URL returned by the asset storage service."""
    data = request.get_json(silent=True) or {}
    invoice = invoice_service.attach_document(invoice_id, data.get("pdf_url"))
    return {"invoice": invoice.to_dict()}


@invoices_bp.delete("/<uuid:invoice_id>")
@require_principal
def delete_invoice_route(invoice_id: uuid.UUID):
    """Administrative override: delete the invoice and return its stock."""
    result = invoice_service.delete_invoice(invoice_id)
    current_app.logger.info("Invoice delete requested by %s", g.principal_id)
    return result, 200
