"""Read-only gateway queries: server info, players, lists, effects."""

from mcgate.core.address_policy import DEFAULT_RCON_PORT, check_host, normalize_host, parse_port
from mcgate.core.catalog import EFFECT_IDS
from mcgate.core.errors import ValidationError
from mcgate.services.gateway_common import (
    charge_rate_limit,
    failure_payload,
    log_action,
    prepare_target,
    require_player_name,
    run_parallel,
)
from mcgate.services.rcon_session import ServerTarget, run_command
from mcgate.services.response_parsers import (
    parse_active_effects,
    parse_ban_list,
    parse_dimension,
    parse_gamemode,
    parse_may_fly,
    parse_nbt_float,
    parse_nbt_int,
    parse_player_list,
    parse_position,
    parse_spawn_position,
    parse_time_of_day,
    parse_tps,
    parse_uuid,
    parse_version,
    parse_weather,
    parse_whitelist,
)

SERVER_INFO_COMMANDS = ("list", "version", "tps", "time query daytime", "weather query")

PLAYER_DATA_PATHS = (
    "Health",
    "FoodLevel",
    "XpLevel",
    "XpP",
    "playerGameType",
    "Pos",
    "Dimension",
    "latency",
    "SpawnX",
    "SpawnY",
    "SpawnZ",
    "UUID",
)


def _stdout(result):
    return result.stdout if result.ok else ""


def server_info(ctx, caller):
    """Query list/version/tps/time/weather on parallel sessions.

    Each field degrades to None on its own; the whole call fails only when
    both ``list`` and ``version`` fail.
    """
    target = prepare_target(ctx, caller, cost=len(SERVER_INFO_COMMANDS))
    list_res, version_res, tps_res, time_res, weather_res = run_parallel(ctx, target, SERVER_INFO_COMMANDS)
    if not list_res.ok and not version_res.ok:
        payload = failure_payload(list_res)
        log_action(ctx, "server-info", rejection_message=payload["error"])
        return payload
    players = parse_player_list(_stdout(list_res))
    return {
        "ok": True,
        "online": players["online"],
        "max": players["max"],
        "version": parse_version(version_res.stdout) if version_res.ok else None,
        "tps": parse_tps(tps_res.stdout) if tps_res.ok else None,
        "time_of_day": parse_time_of_day(time_res.stdout) if time_res.ok else None,
        "weather": parse_weather(weather_res.stdout) if weather_res.ok else None,
    }


def online_players(ctx, caller):
    """Return online names plus persisted join times (ms since epoch)."""
    target = prepare_target(ctx, caller)
    result = run_command(ctx, target, "list")
    if not result.ok:
        return {"ok": False, "count": 0, "players": [], "session_starts": {}, "error": result.error, "error_kind": result.error_kind}
    info = parse_player_list(result.stdout)
    session_starts = {}
    store = getattr(ctx, "store", None)
    if store is not None:
        try:
            session_starts = store.sync_player_sessions(caller.user_id, info["players"])
        except Exception as exc:
            log_exception = getattr(ctx, "log_mcgate_exception", None)
            if callable(log_exception):
                log_exception("player_sessions", exc)
    return {
        "ok": True,
        "count": info["online"],
        "max": info["max"],
        "players": info["players"],
        "session_starts": session_starts,
    }


def player_details(ctx, caller, player):
    """Read twelve NBT paths for one player, each on its own session."""
    name = require_player_name(player)
    commands = [f"data get entity {name} {path}" for path in PLAYER_DATA_PATHS]
    target = prepare_target(ctx, caller, cost=len(commands))
    results = run_parallel(ctx, target, commands)
    if all(not result.ok for result in results):
        return failure_payload(results[0])
    raw = dict(zip(PLAYER_DATA_PATHS, (_stdout(result) for result in results)))

    vitals = {
        "health": parse_nbt_float(raw["Health"]),
        "food": parse_nbt_int(raw["FoodLevel"]),
        "xp_level": parse_nbt_int(raw["XpLevel"]),
        "xp_progress": parse_nbt_float(raw["XpP"]),
        "gamemode": parse_gamemode(raw["playerGameType"]),
        "pos": parse_position(raw["Pos"]),
        "dimension": parse_dimension(raw["Dimension"]),
    }
    if all(value is None for value in vitals.values()):
        return {"ok": False, "error": f"{name} is offline or data unavailable", "error_kind": "command"}
    return {
        "ok": True,
        "player": name,
        "uuid": parse_uuid(raw["UUID"]),
        # Only Paper/Spigot expose latency.
        "ping": parse_nbt_int(raw["latency"]),
        "spawn_pos": parse_spawn_position(raw["SpawnX"], raw["SpawnY"], raw["SpawnZ"]),
        **vitals,
    }


def active_effects(ctx, caller, player):
    """Report which quick-action effects and flight are currently on."""
    name = require_player_name(player)
    commands = [f"data get entity {name} active_effects", f"data get entity {name} abilities"]
    target = prepare_target(ctx, caller, cost=len(commands))
    effects_res, abilities_res = run_parallel(ctx, target, commands)
    if not effects_res.ok and not abilities_res.ok:
        return failure_payload(effects_res)
    active = parse_active_effects(_stdout(effects_res), EFFECT_IDS)
    if parse_may_fly(_stdout(abilities_res)):
        active.append("fly")
    return {"ok": True, "player": name, "active": active}


def ban_list(ctx, caller):
    target = prepare_target(ctx, caller)
    result = run_command(ctx, target, "banlist players")
    if not result.ok:
        return failure_payload(result)
    return {"ok": True, "players": parse_ban_list(result.stdout)}


def whitelist_list(ctx, caller):
    target = prepare_target(ctx, caller)
    result = run_command(ctx, target, "whitelist list")
    if not result.ok:
        return failure_payload(result)
    return {"ok": True, "players": parse_whitelist(result.stdout)}


def build_target(host, port, password):
    """Validate raw connection fields into a policy-checked ServerTarget."""
    clean_host = normalize_host(host) if isinstance(host, str) else ""
    if not clean_host:
        raise ValidationError("Server address is required")
    check_host(clean_host)
    if not isinstance(password, str) or not password:
        raise ValidationError("RCON password is required")
    return ServerTarget(host=clean_host, port=parse_port(port, DEFAULT_RCON_PORT), password=password)


def test_connection(ctx, caller, host, port, password):
    """Dial an unsaved target and run ``list``; nothing is persisted."""
    target = build_target(host, port, password)
    charge_rate_limit(ctx, caller, "rcon")
    result = run_command(ctx, target, "list")
    if not result.ok:
        log_action(ctx, "server-test", command=target.address, rejection_message=result.error)
        return {
            "ok": False,
            "error": f"Couldn't connect: {result.error or 'Connection refused'}",
            "error_kind": result.error_kind,
        }
    log_action(ctx, "server-test", command=target.address)
    return {"ok": True, "message": f"Connected! {result.stdout or 'OK'}"}
