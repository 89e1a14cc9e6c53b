from __future__ import annotations

import uuid

from ..extensions import db
from garment_ledger.time_utils import to_utc_z


class StoreSettings(db.Model):
    """
    Store profile and sales defaults (singleton).

    The ledger only reads tax_rate_bps and currency_symbol from here; the
    branding and social fields are carried for the document renderer.
    """
    __tablename__ = "store_settings"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    store_name = db.Column(db.String(255), nullable=False, default="My Store")
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    # 18% == 1800
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    currency_symbol = db.Column(db.String(8), nullable=False, default="₹")

    logo_url = db.Column(db.Text, nullable=True)
    whatsapp_channel = db.Column(db.Text, nullable=True)
    whatsapp_channel_name = db.Column(db.String(255), nullable=True)
    whatsapp_tagline = db.Column(db.String(255), nullable=True, default="Join our WhatsApp")
    whatsapp_qr_url = db.Column(db.Text, nullable=True)
    instagram_page = db.Column(db.Text, nullable=True)
    instagram_page_id = db.Column(db.String(255), nullable=True)
    instagram_tagline = db.Column(db.String(255), nullable=True, default="Follow us on Instagram")
    instagram_qr_url = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    EDITABLE_FIELDS = frozenset({
        "store_name", "address", "phone", "email", "tax_rate_bps", "currency_symbol", "logo_url",
        "whatsapp_channel", "whatsapp_channel_name", "whatsapp_tagline", "whatsapp_qr_url",
        "instagram_page", "instagram_page_id", "instagram_tagline", "instagram_qr_url",
    })

    def to_dict(self) -> dict:
        data = {key: getattr(self, key) for key in sorted(self.EDITABLE_FIELDS)}
        data.update({
            "id": str(self.id),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        })
        return data
