# Overview: Request decorators for API routes.

import uuid
from functools import wraps

from flask import request, jsonify, g

PRINCIPAL_HEADER = "X-Principal-Id"


def require_principal(f):
    """
    Require an identified caller.

    Authentication is done upstream; the gateway forwards the caller's opaque
    id in the X-Principal-Id header. Sets g.principal_id (uuid.UUID).

    Returns 401 if the header is missing or not a UUID.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(PRINCIPAL_HEADER)
        if not raw:
            return jsonify({"error": "Authentication required"}), 401
        try:
            g.principal_id = uuid.UUID(raw.strip())
        except ValueError:
            return jsonify({"error": "Invalid principal id"}), 401
        return f(*args, **kwargs)

    return decorated_function
