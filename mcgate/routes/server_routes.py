"""Saved RCON target and audit-log route registration."""
from flask import request

from mcgate.core.address_policy import DEFAULT_RCON_PORT
from mcgate.core.errors import GatewayError
from mcgate.core.response_helpers import INVALID_BODY_MESSAGE
from mcgate.services import player_queries
from mcgate.services.gateway_common import require_admin


def register_server_routes(app, state):
    """Register ``/api/server`` (save/read/clear/test target) and the audit log."""

    def _caller_or_none():
        return state["current_user"]()

    # Route: /api/server
    @app.route("/api/server", methods=["GET", "POST", "PUT", "DELETE"])
    def server_target():
        caller = _caller_or_none()
        if caller is None:
            return state["_unauthorized_response"]()

        if request.method == "GET":
            # Never echo the password back.
            server = caller.server
            return state["_payload_response"]({
                "ok": True,
                "configured": server is not None,
                "host": server.host if server else None,
                "port": server.port if server else DEFAULT_RCON_PORT,
            })

        if request.method == "DELETE":
            try:
                state["store"].clear_server(caller.user_id)
            except Exception as exc:
                return state["_internal_error_response"]("route/server-clear", exc)
            state["log_mcgate_action"]("server-clear")
            return state["_payload_response"]({"ok": True})

        action = "server-test" if request.method == "PUT" else "server-save"
        body = state["request_json"]()
        if body is None:
            state["log_mcgate_action"](action, rejection_message=INVALID_BODY_MESSAGE)
            return state["_bad_request_response"](INVALID_BODY_MESSAGE)
        try:
            if request.method == "PUT":
                payload = player_queries.test_connection(
                    state, caller, body.get("host"), body.get("port"), body.get("password"),
                )
                return state["_payload_response"](payload)
            target = player_queries.build_target(body.get("host"), body.get("port"), body.get("password"))
        except GatewayError as exc:
            state["log_mcgate_action"](action, rejection_message=exc.message)
            return state["_gateway_error_response"](exc)
        except Exception as exc:
            return state["_internal_error_response"](f"route/{action}", exc)

        try:
            state["store"].save_server(caller.user_id, target.host, target.port, target.password)
        except Exception as exc:
            return state["_internal_error_response"]("route/server-save", exc)
        state["log_mcgate_action"]("server-save", command=target.address)
        return state["_payload_response"]({"ok": True})

    # Route: /api/admin/audit
    @app.route("/api/admin/audit", methods=["GET"])
    def admin_audit():
        caller = _caller_or_none()
        if caller is None:
            return state["_unauthorized_response"]()
        try:
            require_admin(caller)
        except GatewayError as exc:
            return state["_gateway_error_response"](exc)
        try:
            limit = max(1, min(500, int(request.args.get("limit", "100"))))
        except ValueError:
            limit = 100
        return state["_payload_response"]({"ok": True, "entries": state["store"].list_audit(limit=limit)})
