from __future__ import annotations

from ..extensions import db
from ..models import StoreSettings
from ..validation import enforce_percent_bps


DEFAULT_STORE_NAME = "My Garment Store"
DEFAULT_TAX_RATE_BPS = 1800


def get_settings() -> StoreSettings:
    """Return the singleton settings row, creating it with defaults on first use."""
    settings = db.session.query(StoreSettings).order_by(StoreSettings.created_at.asc()).first()
    if settings is None:
        settings = StoreSettings(store_name=DEFAULT_STORE_NAME, tax_rate_bps=DEFAULT_TAX_RATE_BPS)
        db.session.add(settings)
        db.session.commit()
    return settings


def update_settings(patch: dict) -> StoreSettings:
    settings = get_settings()
    if "tax_rate_bps" in patch and patch["tax_rate_bps"] is not None:
        patch["tax_rate_bps"] = enforce_percent_bps(patch["tax_rate_bps"], "tax_rate_bps")
    for key, value in patch.items():
        if key in StoreSettings.EDITABLE_FIELDS:
            setattr(settings, key, value)
    db.session.commit()
    return settings


def default_tax_rate_bps() -> int:
    """Read-only default used when a sale omits its own tax rate."""
    row = db.session.query(StoreSettings.tax_rate_bps).order_by(StoreSettings.created_at.asc()).first()
    return row[0] if row is not None else 0


def currency_symbol() -> str:
    row = db.session.query(StoreSettings.currency_symbol).order_by(StoreSettings.created_at.asc()).first()
    return row[0] if row is not None else "₹"
