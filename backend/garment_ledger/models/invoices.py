from __future__ import annotations

import uuid

from sqlalchemy import event, inspect

from ..extensions import db
from ..validation import InvalidState
from garment_ledger.time_utils import to_utc_z, to_iso_date


PAYMENT_DONE = "done"
PAYMENT_PENDING = "pending"
PAYMENT_STATUSES = (PAYMENT_DONE, PAYMENT_PENDING)

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)


class Invoice(db.Model):
    """
    Sales invoice.

    Everything that determines what was sold and for how much is written once,
    at creation. Afterwards only payment_status, expected_payment_date and
    pdf_url may change (see _guard_invoice_financials).
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.CheckConstraint("payment_status IN ('done', 'pending')", name="ck_invoices_payment_status"),
        db.CheckConstraint(
            "discount_type IS NULL OR discount_type IN ('percentage', 'fixed')",
            name="ck_invoices_discount_type",
        ),
        db.Index("ix_invoices_status_created", "payment_status", "created_at"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Human-readable number (e.g., "INV-000007")
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    # Totals (all amounts in cents, rates in basis points)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_type = db.Column(db.String(16), nullable=True)
    discount_rate_bps = db.Column(db.Integer, nullable=True)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_DONE, index=True)
    expected_payment_date = db.Column(db.Date, nullable=True)

    # Rendered document URL from the asset storage collaborator
    pdf_url = db.Column(db.Text, nullable=True)

    # Opaque principal id supplied by the identity collaborator
    created_by = db.Column(db.Uuid, nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    items = db.relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InvoiceLineItem.position",
    )

    __mapper_args__ = {"version_id_col": version_id}

    MUTABLE_FIELDS = frozenset({"payment_status", "expected_payment_date", "pdf_url", "version_id", "updated_at"})

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} total={self.grand_total_cents}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "discount_type": self.discount_type,
            "discount_rate_bps": self.discount_rate_bps,
            "discount_cents": self.discount_cents,
            "grand_total_cents": self.grand_total_cents,
            "payment_status": self.payment_status,
            "expected_payment_date": to_iso_date(self.expected_payment_date),
            "pdf_url": self.pdf_url,
            "created_by": str(self.created_by) if self.created_by else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceLineItem(db.Model):
    """
    One sold variant. Names and prices are snapshots taken at sale time and
    are never recomputed from the catalog. The catalog references are
    nullable so history survives product/size/color deletion.
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = db.Column(db.Uuid, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Uuid, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    size_id = db.Column(db.Uuid, db.ForeignKey("sizes.id", ondelete="SET NULL"), nullable=True)
    color_id = db.Column(db.Uuid, db.ForeignKey("colors.id", ondelete="SET NULL"), nullable=True)

    product_name = db.Column(db.String(255), nullable=False)
    size_name = db.Column(db.String(32), nullable=True)
    color_name = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", back_populates="items")

    REFERENCE_FIELDS = frozenset({"product_id", "size_id", "color_id"})

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "invoice_id": str(self.invoice_id),
            "position": self.position,
            "product_id": str(self.product_id) if self.product_id else None,
            "size_id": str(self.size_id) if self.size_id else None,
            "color_id": str(self.color_id) if self.color_id else None,
            "product_name": self.product_name,
            "size_name": self.size_name,
            "color_name": self.color_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class InvoiceSequence(db.Model):
    """
    Last issued invoice number per prefix.

    Incremented inside the same transaction as the invoice insert, so a
    rolled-back invoice leaves a gap but a number is never issued twice.
    """
    __tablename__ = "invoice_sequences"

    prefix = db.Column(db.String(16), primary_key=True)
    last_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "prefix": self.prefix,
            "last_number": self.last_number,
            "updated_at": to_utc_z(self.updated_at),
        }


def _changed_fields(target) -> set[str]:
    state = inspect(target)
    return {attr.key for attr in state.attrs if attr.history.has_changes()}


@event.listens_for(Invoice, "before_update")
def _guard_invoice_financials(mapper, connection, target):
    frozen = _changed_fields(target) - Invoice.MUTABLE_FIELDS - {"items"}
    if frozen:
        raise InvalidState(
            f"Invoice {target.invoice_number} is issued; cannot modify {', '.join(sorted(frozen))}"
        )


@event.listens_for(InvoiceLineItem, "before_update")
def _guard_line_item(mapper, connection, target):
    state = inspect(target)
    for key in _changed_fields(target):
        if key in InvoiceLineItem.REFERENCE_FIELDS and state.attrs[key].value is None:
            continue
        raise InvalidState("Invoice line items are historical records and cannot be modified")
