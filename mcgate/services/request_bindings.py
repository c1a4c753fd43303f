"""Build request-scoped caller/response delegate callables for routes."""

from flask import request

from mcgate.core.address_policy import DEFAULT_RCON_PORT
from mcgate.core.response_helpers import (
    bad_request_response,
    gateway_error_response,
    internal_error_response,
    payload_response,
    unauthorized_response,
)
from mcgate.services.gateway_common import Caller
from mcgate.services.rcon_session import ServerTarget


def caller_from_user(user):
    """Turn a store user record into a Caller with its saved ServerTarget."""
    server = None
    if user.get("server"):
        saved = user["server"]
        server = ServerTarget(
            host=saved["host"],
            port=int(saved.get("port") or DEFAULT_RCON_PORT),
            password=saved.get("password") or "",
        )
    return Caller(user_id=user["id"], role=user["role"], server=server)


def bearer_token():
    """Return the token from ``Authorization: Bearer <token>``, if present."""
    header = (request.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def build_request_bindings(*, store, log_mcgate_exception):
    """Return request-scoped callables with explicit runtime dependencies."""

    def current_user():
        """Resolve the caller for this request, or None when unauthenticated."""
        token = bearer_token()
        if not token:
            return None
        user = store.find_user_by_token(token)
        if user is None:
            return None
        return caller_from_user(user)

    def request_json():
        """Return the JSON object body, or None when it is missing/not an object."""
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else None

    def _internal_error_response(context, exc):
        log_mcgate_exception(context, exc)
        return internal_error_response()

    return {
        "current_user": current_user,
        "request_json": request_json,
        "_payload_response": payload_response,
        "_gateway_error_response": gateway_error_response,
        "_bad_request_response": bad_request_response,
        "_unauthorized_response": unauthorized_response,
        "_internal_error_response": _internal_error_response,
    }
