"""Shared Flask JSON response helpers for gateway routes."""

from flask import jsonify

INVALID_BODY_MESSAGE = "Request body must be a JSON object"

# Anything not listed (RCON connect/auth/command failures, missing server
# config) is reported in the body with HTTP 200.
ERROR_STATUS_CODES = {
    "validation": 400,
    "policy": 403,
    "forbidden": 403,
    "rate_limited": 429,
}


def payload_response(payload):
    """Return a gateway result payload as-is."""
    return jsonify(payload)


def gateway_error_response(exc):
    """Map a GatewayError to its JSON body and HTTP status."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, 200)
    response = jsonify({"ok": False, "error": exc.message, "error_kind": exc.kind})
    response.status_code = status_code
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        response.headers["Retry-After"] = str(retry_after)
    return response


def bad_request_response(message):
    """Return a 400 for malformed request bodies."""
    return jsonify({"ok": False, "error": message, "error_kind": "validation"}), 400


def unauthorized_response():
    """Return the standard 401 for requests without a resolvable caller."""
    return jsonify({"ok": False, "error": "Unauthorized"}), 401


def internal_error_response():
    """Return generic internal-error response payload."""
    return jsonify({"ok": False, "error": "internal_error", "message": "Internal server error."}), 500
