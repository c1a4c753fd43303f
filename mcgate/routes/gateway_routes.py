"""RCON gateway route registration under ``/api/minecraft``."""
from flask import request

from mcgate.core.errors import GatewayError, ValidationError
from mcgate.core.response_helpers import INVALID_BODY_MESSAGE
from mcgate.services import command_gateway, inventory_queries, player_queries


def register_gateway_routes(app, state):
    """Register one JSON route per gateway operation."""

    def _handle(action, operation, needs_body=False):
        caller = state["current_user"]()
        if caller is None:
            return state["_unauthorized_response"]()
        args = (caller,)
        if needs_body:
            body = state["request_json"]()
            if body is None:
                state["log_mcgate_action"](action, rejection_message=INVALID_BODY_MESSAGE)
                return state["_bad_request_response"](INVALID_BODY_MESSAGE)
            args = (caller, body)
        try:
            payload = operation(*args)
        except GatewayError as exc:
            state["log_mcgate_action"](action, rejection_message=exc.message)
            return state["_gateway_error_response"](exc)
        except Exception as exc:
            return state["_internal_error_response"](f"route/{action}", exc)
        return state["_payload_response"](payload)

    def _post(action, operation):
        return _handle(action, operation, needs_body=True)

    def _player_arg():
        return request.args.get("player", "")

    # Route: /api/minecraft/ban
    @app.route("/api/minecraft/ban", methods=["POST"])
    def minecraft_ban():
        return _post("ban", lambda caller, body: command_gateway.ban(
            state, caller, body.get("player"), body.get("reason", ""), ban_ip=bool(body.get("banIp")),
        ))

    # Route: /api/minecraft/pardon
    @app.route("/api/minecraft/pardon", methods=["POST"])
    def minecraft_pardon():
        return _post("pardon", lambda caller, body: command_gateway.pardon(
            state, caller, body.get("player"), pardon_ip=bool(body.get("pardonIp")),
        ))

    # Route: /api/minecraft/kick
    @app.route("/api/minecraft/kick", methods=["POST"])
    def minecraft_kick():
        return _post("kick", lambda caller, body: command_gateway.kick(
            state, caller, body.get("player"), body.get("reason", ""),
        ))

    # Route: /api/minecraft/banlist
    @app.route("/api/minecraft/banlist", methods=["GET"])
    def minecraft_banlist():
        return _handle("banlist", lambda caller: player_queries.ban_list(state, caller))

    # Route: /api/minecraft/whitelist
    @app.route("/api/minecraft/whitelist", methods=["GET", "POST"])
    def minecraft_whitelist():
        if request.method == "GET":
            return _handle("whitelist", lambda caller: player_queries.whitelist_list(state, caller))

        def _change(caller, body):
            action = str(body.get("action") or "").strip().lower()
            if action not in ("add", "remove"):
                raise ValidationError("Action must be add or remove")
            return command_gateway.whitelist_change(state, caller, body.get("player"), add=action == "add")

        return _post("whitelist", _change)

    # Route: /api/minecraft/op
    @app.route("/api/minecraft/op", methods=["POST"])
    def minecraft_op():
        def _change(caller, body):
            action = str(body.get("action") or "").strip().lower()
            if action not in ("op", "deop"):
                raise ValidationError("Action must be op or deop")
            return command_gateway.set_operator(state, caller, body.get("player"), grant=action == "op")

        return _post("op", _change)

    # Route: /api/minecraft/tp
    @app.route("/api/minecraft/tp", methods=["POST"])
    def minecraft_tp():
        return _post("tp", lambda caller, body: command_gateway.teleport_to_player(
            state, caller, body.get("from"), body.get("to"),
        ))

    # Route: /api/minecraft/tploc
    @app.route("/api/minecraft/tploc", methods=["POST"])
    def minecraft_tploc():
        return _post("tploc", lambda caller, body: command_gateway.teleport_to_location(
            state, caller, body.get("player"), body.get("x"), body.get("y"), body.get("z"),
        ))

    # Route: /api/minecraft/give
    @app.route("/api/minecraft/give", methods=["POST"])
    def minecraft_give():
        return _post("give", lambda caller, body: command_gateway.give_item(
            state, caller, body.get("player"), body.get("item"), body.get("qty", 1),
        ))

    # Route: /api/minecraft/kit
    @app.route("/api/minecraft/kit", methods=["POST"])
    def minecraft_kit():
        return _post("kit", lambda caller, body: command_gateway.give_kit(
            state, caller, body.get("player"), body.get("kit"),
        ))

    # Route: /api/minecraft/inventory
    @app.route("/api/minecraft/inventory", methods=["GET", "DELETE"])
    def minecraft_inventory():
        if request.method == "GET":
            player = _player_arg()
            return _handle("inventory", lambda caller: inventory_queries.inventory(state, caller, player))
        return _post("clear_item", lambda caller, body: command_gateway.clear_item(
            state, caller, body.get("player"), body.get("item"), body.get("count"),
        ))

    # Route: /api/minecraft/cmd
    @app.route("/api/minecraft/cmd", methods=["POST"])
    def minecraft_quick_action():
        return _post("cmd", lambda caller, body: command_gateway.quick_action(
            state, caller, body.get("command"), body.get("player"),
        ))

    # Route: /api/minecraft/effects
    @app.route("/api/minecraft/effects", methods=["GET"])
    def minecraft_effects():
        player = _player_arg()
        return _handle("effects", lambda caller: player_queries.active_effects(state, caller, player))

    # Route: /api/minecraft/broadcast
    @app.route("/api/minecraft/broadcast", methods=["POST"])
    def minecraft_broadcast():
        return _post("broadcast", lambda caller, body: command_gateway.broadcast(state, caller, body.get("message")))

    # Route: /api/minecraft/msg
    @app.route("/api/minecraft/msg", methods=["POST"])
    def minecraft_msg():
        return _post("msg", lambda caller, body: command_gateway.private_message(
            state, caller, body.get("player"), body.get("message"),
        ))

    # Route: /api/minecraft/difficulty
    @app.route("/api/minecraft/difficulty", methods=["GET", "POST"])
    def minecraft_difficulty():
        if request.method == "GET":
            return _handle("difficulty", lambda caller: command_gateway.get_difficulty(state, caller))
        return _post("difficulty", lambda caller, body: command_gateway.set_difficulty(
            state, caller, body.get("difficulty"),
        ))

    # Route: /api/minecraft/gamerule
    @app.route("/api/minecraft/gamerule", methods=["GET", "POST"])
    def minecraft_gamerule():
        if request.method == "GET":
            return _handle("gamerule", lambda caller: command_gateway.get_gamerules(state, caller))
        return _post("gamerule", lambda caller, body: command_gateway.set_gamerule(
            state, caller, body.get("rule"), body.get("value"),
        ))

    # Route: /api/minecraft/server-ctrl
    @app.route("/api/minecraft/server-ctrl", methods=["POST"])
    def minecraft_server_ctrl():
        return _post("server-ctrl", lambda caller, body: command_gateway.server_control(
            state, caller, body.get("command"),
        ))

    # Route: /api/minecraft/rcon
    @app.route("/api/minecraft/rcon", methods=["POST"])
    def minecraft_rcon():
        return _post("rcon", lambda caller, body: command_gateway.raw_command(state, caller, body.get("command")))

    # Route: /api/minecraft/server-info
    @app.route("/api/minecraft/server-info", methods=["GET"])
    def minecraft_server_info():
        return _handle("server-info", lambda caller: player_queries.server_info(state, caller))

    # Route: /api/minecraft/players
    @app.route("/api/minecraft/players", methods=["GET"])
    def minecraft_players():
        return _handle("players", lambda caller: player_queries.online_players(state, caller))

    # Route: /api/minecraft/player
    @app.route("/api/minecraft/player", methods=["GET"])
    def minecraft_player():
        player = _player_arg()
        return _handle("player", lambda caller: player_queries.player_details(state, caller, player))

    # Route: /api/minecraft/chat-log
    @app.route("/api/minecraft/chat-log", methods=["GET"])
    def minecraft_chat_log():
        try:
            since = int(request.args.get("since", "0"))
        except ValueError:
            since = 0
        return _handle("chat-log", lambda caller: {
            "ok": True,
            "entries": state["store"].list_chat(caller.user_id, since=since),
        })
