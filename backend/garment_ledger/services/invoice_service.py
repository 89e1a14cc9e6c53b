"""
Invoice Service - issue invoices against per-variant stock

create_invoice() is one unit of work: price resolution, name snapshots,
stock decrements for every line, number allocation and the invoice/line
inserts either all commit together or none of them do.

Money is integer cents, rates are basis points (1800 == 18%). Derived
amounts round to the nearest cent, half-up.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, asdict
from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Invoice,
    InvoiceLineItem,
    Product,
    Size,
    Color,
    PAYMENT_DONE,
    PAYMENT_PENDING,
    PAYMENT_STATUSES,
    DISCOUNT_PERCENTAGE,
    DISCOUNT_FIXED,
    DISCOUNT_TYPES,
    make_variant_key,
)
from ..validation import (
    ValidationError,
    NotFoundError,
    DuplicateInvoiceNumber,
    InvalidState,
    parse_int,
    parse_uuid,
    parse_optional_uuid,
    enforce_percent_bps,
    enforce_price_cents,
)
from garment_ledger.time_utils import parse_iso_date, today
from .concurrency import lock_for_update, begin_write_transaction, run_with_retry
from .inventory_service import adjust_quantity, get_quantity, _apply_delta_locked
from .pricing_service import resolve_price
from .sequence_service import next_invoice_number, number_in_use, observe_explicit_number
from .settings_service import default_tax_rate_bps, currency_symbol


@dataclass(frozen=True)
class LineRequest:
    product_id: uuid.UUID
    size_id: uuid.UUID | None
    color_id: uuid.UUID | None
    quantity: int

    @classmethod
    def from_dict(cls, data: dict) -> "LineRequest":
        if not isinstance(data, dict):
            raise ValidationError("Each line must be an object")
        if data.get("product_id") in (None, ""):
            raise ValidationError("product_id is required on every line")
        if data.get("quantity") is None:
            raise ValidationError("quantity is required on every line")
        return cls(
            product_id=parse_uuid(data["product_id"], "product_id"),
            size_id=parse_optional_uuid(data.get("size_id"), "size_id"),
            color_id=parse_optional_uuid(data.get("color_id"), "color_id"),
            quantity=parse_int(data["quantity"], "quantity"),
        )

    @property
    def lock_key(self) -> tuple[str, str]:
        return str(self.product_id), make_variant_key(self.size_id, self.color_id)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal_cents: int
    tax_rate_bps: int
    tax_cents: int
    discount_type: str | None
    discount_rate_bps: int | None
    discount_cents: int
    grand_total_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def apply_rate(amount_cents: int, rate_bps: int) -> int:
    """amount * rate, to the nearest cent (half-up)."""
    return (amount_cents * rate_bps + 5_000) // 10_000


def compute_totals(
    subtotal_cents: int,
    tax_rate_bps: int,
    discount_type: str | None = None,
    discount_value: int | None = None,
) -> InvoiceTotals:
    """
    subtotal + tax - discount, floored at zero.

    discount_value is basis points for 'percentage' and cents for 'fixed'.
    Tax is charged on the undiscounted subtotal.
    """
    tax_cents = apply_rate(subtotal_cents, tax_rate_bps)

    discount_rate_bps = None
    discount_cents = 0
    if discount_type == DISCOUNT_PERCENTAGE:
        discount_rate_bps = discount_value or 0
        discount_cents = apply_rate(subtotal_cents, discount_rate_bps)
    elif discount_type == DISCOUNT_FIXED:
        discount_cents = discount_value or 0

    return InvoiceTotals(
        subtotal_cents=subtotal_cents,
        tax_rate_bps=tax_rate_bps,
        tax_cents=tax_cents,
        discount_type=discount_type,
        discount_rate_bps=discount_rate_bps,
        discount_cents=discount_cents,
        grand_total_cents=max(0, subtotal_cents + tax_cents - discount_cents),
    )


def _normalize_lines(lines) -> list[LineRequest]:
    if not isinstance(lines, (list, tuple)):
        raise ValidationError("lines must be a list")
    requests = []
    for raw in lines:
        req = raw if isinstance(raw, LineRequest) else LineRequest.from_dict(raw)
        if req.quantity < 0:
            raise ValidationError("quantity cannot be negative")
        if req.quantity == 0:
            continue
        requests.append(req)
    if not requests:
        raise ValidationError("At least one line with quantity > 0 is required")
    return requests


def _normalize_discount(discount_type: str | None, discount_value) -> tuple[str | None, int | None]:
    if discount_value in (None, "") and not discount_type:
        return None, None
    discount_type = discount_type or DISCOUNT_PERCENTAGE
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of {', '.join(DISCOUNT_TYPES)}")
    if discount_value in (None, ""):
        return discount_type, 0
    if discount_type == DISCOUNT_PERCENTAGE:
        return discount_type, enforce_percent_bps(discount_value, "discount_value")
    return discount_type, enforce_price_cents(discount_value, "discount_value")


def _normalize_payment(status: str | None, expected_payment_date) -> tuple[str, date | None]:
    status = status or PAYMENT_DONE
    if status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}")
    try:
        due = parse_iso_date(expected_payment_date)
    except ValueError:
        raise ValidationError("expected_payment_date must be an ISO-8601 date")
    if status == PAYMENT_PENDING:
        if due is None:
            raise InvalidState("A pending invoice requires an expected_payment_date")
        return status, due
    # The due date only means something while payment is outstanding
    return status, None


def _snapshot_line(position: int, req: LineRequest) -> InvoiceLineItem:
    product = db.session.get(Product, req.product_id)
    if product is None:
        raise ValidationError(f"Unknown product id: {req.product_id}")

    size = None
    if req.size_id is not None:
        size = db.session.get(Size, req.size_id)
        if size is None:
            raise ValidationError(f"Unknown size id: {req.size_id}")
    color = None
    if req.color_id is not None:
        color = db.session.get(Color, req.color_id)
        if color is None:
            raise ValidationError(f"Unknown color id: {req.color_id}")

    unit_price = resolve_price(product.id, req.size_id)
    return InvoiceLineItem(
        position=position,
        product_id=product.id,
        size_id=req.size_id,
        color_id=req.color_id,
        product_name=product.name,
        size_name=size.name if size else None,
        color_name=color.name if color else None,
        quantity=req.quantity,
        unit_price_cents=unit_price,
        total_price_cents=unit_price * req.quantity,
    )


def create_invoice(
    *,
    lines,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    tax_rate_bps: int | None = None,
    discount_type: str | None = None,
    discount_value: int | None = None,
    payment_status: str = PAYMENT_DONE,
    expected_payment_date=None,
    invoice_number: str | None = None,
    created_by: uuid.UUID | None = None,
    pdf_url: str | None = None,
) -> Invoice:
    """
    Issue an invoice and consume its stock, all-or-nothing.

    Raises:
        ValidationError: malformed lines, unknown product/size/color, bad rates
        InvalidState: pending without expected_payment_date
        InsufficientStock: any line exceeds its variant's stock
        DuplicateInvoiceNumber: explicit invoice_number already used
        ConcurrencyConflict: storage kept failing serialization after retries
    """
    requests = _normalize_lines(lines)
    status, due = _normalize_payment(payment_status, expected_payment_date)
    if tax_rate_bps is not None:
        tax_rate_bps = enforce_percent_bps(tax_rate_bps, "tax_rate_bps")
    discount_type, discount_value = _normalize_discount(discount_type, discount_value)
    # An explicit number is stored exactly as given
    explicit_number = invoice_number if invoice_number not in (None, "") else None

    def _op():
        begin_write_transaction()

        if explicit_number is not None and number_in_use(explicit_number):
            raise DuplicateInvoiceNumber(f"Invoice number '{explicit_number}' already exists")

        items = [_snapshot_line(position, req) for position, req in enumerate(requests)]
        # Cells are locked in one global order so carts sharing variants cannot deadlock
        for req in sorted(requests, key=lambda r: r.lock_key):
            adjust_quantity(req.product_id, req.size_id, req.color_id, -req.quantity, commit=False)

        rate = tax_rate_bps if tax_rate_bps is not None else default_tax_rate_bps()
        totals = compute_totals(
            sum(item.total_price_cents for item in items),
            rate,
            discount_type,
            discount_value,
        )

        if explicit_number is not None:
            number = explicit_number
            observe_explicit_number(number)
        else:
            number = next_invoice_number()

        invoice = Invoice(
            invoice_number=number,
            customer_name=(customer_name or "").strip() or None,
            customer_phone=(customer_phone or "").strip() or None,
            subtotal_cents=totals.subtotal_cents,
            tax_rate_bps=totals.tax_rate_bps,
            tax_cents=totals.tax_cents,
            discount_type=totals.discount_type,
            discount_rate_bps=totals.discount_rate_bps,
            discount_cents=totals.discount_cents,
            grand_total_cents=totals.grand_total_cents,
            payment_status=status,
            expected_payment_date=due,
            pdf_url=pdf_url,
            created_by=created_by,
            items=items,
        )
        db.session.add(invoice)
        try:
            db.session.flush()
        except IntegrityError:
            if explicit_number is not None:
                raise DuplicateInvoiceNumber(f"Invoice number '{explicit_number}' already exists")
            raise

        db.session.commit()
        current_app.logger.info(
            "Issued invoice %s: %d line(s), grand_total_cents=%d",
            invoice.invoice_number, len(items), invoice.grand_total_cents,
        )
        return invoice

    return run_with_retry(_op)


def preview_invoice(
    *,
    lines,
    tax_rate_bps: int | None = None,
    discount_type: str | None = None,
    discount_value: int | None = None,
) -> dict:
    """Price a prospective sale without touching stock or numbering."""
    requests = _normalize_lines(lines)
    if tax_rate_bps is not None:
        tax_rate_bps = enforce_percent_bps(tax_rate_bps, "tax_rate_bps")
    discount_type, discount_value = _normalize_discount(discount_type, discount_value)

    items = []
    for position, req in enumerate(requests):
        item = _snapshot_line(position, req)
        row = item.to_dict()
        row.pop("id")
        row.pop("invoice_id")
        row["available"] = get_quantity(req.product_id, req.size_id, req.color_id)
        items.append(row)

    rate = tax_rate_bps if tax_rate_bps is not None else default_tax_rate_bps()
    totals = compute_totals(sum(i["total_price_cents"] for i in items), rate, discount_type, discount_value)
    return {"items": items, "totals": totals.to_dict(), "currency_symbol": currency_symbol()}


def get_invoice(invoice_id: uuid.UUID) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(
    *,
    payment_status: str | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    base_query = db.session.query(Invoice)
    if payment_status:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}")
        base_query = base_query.filter(Invoice.payment_status == payment_status)
    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(db.or_(
            Invoice.invoice_number.ilike(pattern),
            Invoice.customer_name.ilike(pattern),
            Invoice.customer_phone.ilike(pattern),
        ))
    base_query = base_query.order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())

    if page is None:
        invoices = base_query.all()
        return {"items": [i.to_dict() for i in invoices], "count": len(invoices)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)
    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    invoices = base_query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "items": [i.to_dict() for i in invoices],
        "count": len(invoices),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def list_overdue(as_of: date | None = None) -> list[Invoice]:
    """Pending invoices whose expected payment date is before as_of (default today)."""
    as_of = as_of or today()
    return (
        db.session.query(Invoice)
        .filter(
            Invoice.payment_status == PAYMENT_PENDING,
            Invoice.expected_payment_date < as_of,
        )
        .order_by(Invoice.expected_payment_date.asc(), Invoice.invoice_number.asc())
        .all()
    )


def update_payment_status(invoice_id: uuid.UUID, status: str, expected_payment_date=None) -> Invoice:
    """
    Move an invoice between done and pending.

    Raises:
        InvalidState: pending without an expected date
    """
    status, due = _normalize_payment(status, expected_payment_date)

    def _op():
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if invoice is None:
            raise NotFoundError("Invoice not found")
        invoice.payment_status = status
        invoice.expected_payment_date = due
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def attach_document(invoice_id: uuid.UUID, pdf_url: str | None) -> Invoice:
    """Record the URL of the rendered invoice document."""
    def _op():
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if invoice is None:
            raise NotFoundError("Invoice not found")
        invoice.pdf_url = (pdf_url or "").strip() or None
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def _variant_still_exists(item: InvoiceLineItem) -> bool:
    # A dimension that was sold but whose reference is now NULL was deleted,
    # and its stock cell went with it.
    if item.product_id is None:
        return False
    if item.size_name is not None and item.size_id is None:
        return False
    if item.color_name is not None and item.color_id is None:
        return False
    return True


def delete_invoice(invoice_id: uuid.UUID) -> dict:
    """
    Administrative override: delete an invoice and give its stock back.

    Lines whose product or variant has since been deleted are not restored.
    Returns a summary of what was restored.
    """
    def _op():
        begin_write_transaction()
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if invoice is None:
            raise NotFoundError("Invoice not found")

        restored, skipped = 0, 0
        for item in invoice.items:
            if not _variant_still_exists(item):
                skipped += 1
                continue
            _apply_delta_locked(item.product_id, item.size_id, item.color_id, item.quantity)
            restored += 1

        number = invoice.invoice_number
        db.session.delete(invoice)
        db.session.commit()
        current_app.logger.warning(
            "Invoice %s deleted by administrative override (%d line(s) restocked, %d skipped)",
            number, restored, skipped,
        )
        return {"invoice_number": number, "restored_lines": restored, "skipped_lines": skipped}

    return run_with_retry(_op)
