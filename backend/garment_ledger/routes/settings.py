# Overview: Flask API routes for store settings; parses input and returns JSON responses.

from flask import Blueprint, request

from ..models import StoreSettings
from ..services import settings_service
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_principal

SETTINGS_POLICY = ModelValidationPolicy(writable_fields=set(StoreSettings.EDITABLE_FIELDS))

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings():
    return settings_service.get_settings().to_dict()


@settings_bp.put("")
@require_principal
def update_settings():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=StoreSettings, payload=payload, policy=SETTINGS_POLICY, partial=True)
    return settings_service.update_settings(patch).to_dict()
