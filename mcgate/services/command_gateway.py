"""Gateway operations that change server state.

Every operation validates its inputs, vets the caller's target and rate
limit, then runs fixed command templates. Validation/permission/policy
problems raise GatewayError subclasses before any connection is opened;
RCON outcomes come back as ``{ok, message|data, error?, error_kind?}``.
"""

import re

from mcgate.core.catalog import (
    DIFFICULTIES,
    GAMERULES,
    KITS,
    QUICK_ACTIONS,
    SERVER_CONTROL_COMMANDS,
    normalize_item_id,
    parse_quick_action,
)
from mcgate.core.errors import ValidationError
from mcgate.services.gateway_common import (
    CHAT_LIMIT,
    MAX_STACK,
    RAW_COMMAND_LIMIT,
    REASON_LIMIT,
    aggregate_results,
    clamp_quantity,
    failure_payload,
    format_number,
    log_action,
    log_failure,
    mark_rejections,
    prepare_target,
    record_audit,
    record_chat,
    require_admin,
    require_coordinate,
    require_player_name,
    run_parallel,
    sanitize_text,
)
from mcgate.services.rcon_session import run_command, run_commands_or_fail
from mcgate.services.response_parsers import parse_difficulty, parse_gamerule_value

_FLY_ENABLED_RE = re.compile(r"enabled", re.IGNORECASE)
_FLY_DISABLED_RE = re.compile(r"disabled", re.IGNORECASE)
_GAMERULE_NAME_RE = re.compile(r"^[a-zA-Z]+$")


def _run_checked(ctx, target, command):
    return mark_rejections([run_command(ctx, target, command)])[0]


def _single(ctx, caller, action, target, command, message, audit_target=None, audit_detail=None):
    """Run one mutating command and audit it when it succeeds."""
    result = _run_checked(ctx, target, command)
    if not result.ok:
        payload = failure_payload(result)
        log_failure(ctx, action, payload)
        return payload
    record_audit(ctx, caller, action, target=audit_target, detail=audit_detail)
    log_action(ctx, action, command=command)
    return {"ok": True, "message": message, "output": result.stdout}


# ----------------------------
# Moderation
# ----------------------------
def ban(ctx, caller, player, reason="", ban_ip=False):
    """Ban a player, optionally by IP as well, in parallel sessions."""
    name = require_player_name(player)
    clean_reason = sanitize_text(reason, REASON_LIMIT)
    commands = [f"ban {name} {clean_reason}" if clean_reason else f"ban {name}"]
    labels = ["ban"]
    if ban_ip:
        commands.append(f"ban-ip {name}")
        labels.append("ban-ip")
    target = prepare_target(ctx, caller, cost=len(commands))
    results = mark_rejections(run_parallel(ctx, target, commands))

    banned = results[0].ok
    message = f"Banned {name}" if banned else f"IP-banned {name}"
    if banned and ban_ip and results[1].ok:
        message += " (+ IP)"
    if clean_reason:
        message += f": {clean_reason}"
    payload = aggregate_results(results, labels, message, "Ban failed")
    if payload["ok"]:
        record_audit(ctx, caller, "ban", target=name, detail=clean_reason or None)
    log_failure(ctx, "ban", payload)
    return payload


def pardon(ctx, caller, player, pardon_ip=False):
    name = require_player_name(player)
    commands = [f"pardon {name}"]
    labels = ["pardon"]
    if pardon_ip:
        commands.append(f"pardon-ip {name}")
        labels.append("pardon-ip")
    target = prepare_target(ctx, caller, cost=len(commands))
    results = mark_rejections(run_parallel(ctx, target, commands))

    message = f"Pardoned {name}"
    if pardon_ip and results[0].ok and results[1].ok:
        message += " (+ IP)"
    payload = aggregate_results(results, labels, message, "Pardon failed")
    if payload["ok"]:
        record_audit(ctx, caller, "pardon", target=name)
    log_failure(ctx, "pardon", payload)
    return payload


def kick(ctx, caller, player, reason=""):
    name = require_player_name(player)
    clean_reason = sanitize_text(reason, REASON_LIMIT)
    command = f"kick {name} {clean_reason}" if clean_reason else f"kick {name}"
    target = prepare_target(ctx, caller)
    message = f"Kicked {name}: {clean_reason}" if clean_reason else f"Kicked {name}"
    return _single(ctx, caller, "kick", target, command, message, audit_target=name, audit_detail=clean_reason or None)


def whitelist_change(ctx, caller, player, add=True):
    name = require_player_name(player)
    target = prepare_target(ctx, caller, admin_only=True)
    if add:
        return _single(
            ctx, caller, "whitelist_add", target, f"whitelist add {name}",
            f"Added {name} to whitelist", audit_target=name,
        )
    return _single(
        ctx, caller, "whitelist_remove", target, f"whitelist remove {name}",
        f"Removed {name} from whitelist", audit_target=name,
    )


def set_operator(ctx, caller, player, grant=True):
    name = require_player_name(player)
    target = prepare_target(ctx, caller, admin_only=True)
    if grant:
        return _single(ctx, caller, "op", target, f"op {name}", f"Made {name} an operator", audit_target=name)
    return _single(ctx, caller, "deop", target, f"deop {name}", f"Removed operator from {name}", audit_target=name)


# ----------------------------
# Teleport
# ----------------------------
def teleport_to_player(ctx, caller, player, destination):
    name = require_player_name(player)
    dest = require_player_name(destination, field="destination")
    if name.lower() == dest.lower():
        raise ValidationError("Cannot teleport a player to themselves")
    target = prepare_target(ctx, caller)
    return _single(
        ctx, caller, "tp", target, f"tp {name} {dest}",
        f"Teleported {name} → {dest}", audit_target=name, audit_detail=dest,
    )


def teleport_to_location(ctx, caller, player, x, y, z):
    name = require_player_name(player)
    coords = " ".join(format_number(require_coordinate(value, axis)) for axis, value in (("x", x), ("y", y), ("z", z)))
    target = prepare_target(ctx, caller)
    return _single(
        ctx, caller, "tp", target, f"tp {name} {coords}",
        f"Teleported {name} → {coords.replace(' ', ', ')}", audit_target=name, audit_detail=coords,
    )


# ----------------------------
# Items and kits
# ----------------------------
def give_item(ctx, caller, player, item, quantity=1):
    name = require_player_name(player)
    item_id = normalize_item_id(item)
    if item_id is None:
        raise ValidationError("Invalid item")
    count = clamp_quantity(quantity)
    target = prepare_target(ctx, caller)
    return _single(
        ctx, caller, "give", target, f"give {name} minecraft:{item_id} {count}",
        f"Gave {count}× {item_id} to {name}", audit_target=name, audit_detail=f"{item_id} x{count}",
    )


def give_kit(ctx, caller, player, kit_id):
    """Issue every item of a kit, one session per ``give``, in parallel."""
    name = require_player_name(player)
    kit = KITS.get(str(kit_id or "").strip().lower())
    if kit is None:
        raise ValidationError("Unknown kit")
    if kit.admin_only:
        require_admin(caller)
    commands = kit.give_commands(name)
    labels = [item_spec.split("[", 1)[0] for item_spec, _count in kit.items]
    target = prepare_target(ctx, caller, cost=len(commands))
    results = mark_rejections(run_parallel(ctx, target, commands))
    payload = aggregate_results(results, labels, f"{kit.label} kit issued to {name}", "Kit failed")
    if payload["ok"]:
        record_audit(ctx, caller, "give", target=name, detail=f"kit:{kit.kit_id}")
    log_failure(ctx, "kit", payload)
    return payload


def clear_item(ctx, caller, player, item, count=None):
    name = require_player_name(player)
    raw_item = str(item or "").strip()
    if not raw_item or len(raw_item) > 128:
        raise ValidationError("Invalid item ID")
    # Inventory ids may carry components, e.g. "diamond_sword[...]".
    item_id = normalize_item_id(re.sub(r"[\[{].*$", "", raw_item))
    if item_id is None:
        raise ValidationError("Unknown item ID")
    command = f"clear {name} minecraft:{item_id}"
    if count is not None:
        if isinstance(count, bool) or not isinstance(count, (int, str)):
            raise ValidationError(f"Count must be an integer between 1 and {MAX_STACK}")
        try:
            amount = int(count)
        except ValueError:
            raise ValidationError(f"Count must be an integer between 1 and {MAX_STACK}") from None
        if amount < 1 or amount > MAX_STACK:
            raise ValidationError(f"Count must be an integer between 1 and {MAX_STACK}")
        command = f"{command} {amount}"
    target = prepare_target(ctx, caller)
    return _single(
        ctx, caller, "clear_item", target, command,
        f"Cleared {item_id} from {name}", audit_target=name, audit_detail=item_id,
    )


# ----------------------------
# Quick actions
# ----------------------------
def quick_action(ctx, caller, action, player=None):
    """Run one closed-set quick action's commands, in order, on one session."""
    chosen = parse_quick_action(action)
    if chosen is None:
        raise ValidationError(f"Unknown command: {action}")
    definition = QUICK_ACTIONS[chosen]
    name = None
    if definition.needs_player:
        if not player:
            raise ValidationError("This command requires a player")
        name = require_player_name(player)
    elif player:
        name = require_player_name(player)
    commands = definition.render(name or "")
    target = prepare_target(ctx, caller, cost=len(commands))
    results = mark_rejections(run_commands_or_fail(ctx, target, commands))

    errors = [result.error or command for command, result in zip(commands, results) if not result.ok]
    if errors:
        payload = {"ok": False, "error": "; ".join(errors), "error_kind": next(r.error_kind for r in results if not r.ok)}
        log_failure(ctx, f"quick/{chosen.value}", payload)
        return payload

    activated = definition.activated
    if definition.toggles:
        combined = " ".join(result.stdout for result in results if result.stdout)
        activated = None
        if _FLY_ENABLED_RE.search(combined):
            activated = True
        if _FLY_DISABLED_RE.search(combined):
            activated = False
    suffix = f" → {name}" if name else ""
    if activated is True:
        message = f"Activated: {definition.label}{suffix}"
    elif activated is False:
        message = f"Deactivated: {definition.label}{suffix}"
    else:
        message = f"{definition.label}{suffix}"
    if chosen.value in ("creative", "survival", "adventure"):
        record_audit(ctx, caller, "gamemode", target=name, detail=chosen.value)
    log_action(ctx, f"quick/{chosen.value}", command=name)
    return {"ok": True, "message": message, "activated": activated}


# ----------------------------
# Chat
# ----------------------------
def broadcast(ctx, caller, message):
    text = sanitize_text(message, CHAT_LIMIT)
    if not text:
        raise ValidationError("Message cannot be empty")
    target = prepare_target(ctx, caller, bucket="broadcast")
    result = _run_checked(ctx, target, f"say {text}")
    if not result.ok:
        payload = failure_payload(result)
        log_failure(ctx, "broadcast", payload)
        return payload
    record_chat(ctx, caller, "broadcast", text)
    record_audit(ctx, caller, "broadcast", detail=text)
    return {"ok": True, "message": "Broadcast sent"}


def private_message(ctx, caller, player, message):
    name = require_player_name(player)
    text = sanitize_text(message, CHAT_LIMIT)
    if not text:
        raise ValidationError("Message cannot be empty")
    target = prepare_target(ctx, caller)
    result = _run_checked(ctx, target, f"msg {name} {text}")
    if not result.ok:
        payload = failure_payload(result)
        log_failure(ctx, "msg", payload)
        return payload
    record_chat(ctx, caller, "msg", text, player=name)
    return {"ok": True, "message": f"Message sent to {name}"}


# ----------------------------
# Difficulty and gamerules
# ----------------------------
def get_difficulty(ctx, caller):
    target = prepare_target(ctx, caller)
    result = run_command(ctx, target, "difficulty")
    if not result.ok:
        return failure_payload(result)
    return {"ok": True, "difficulty": parse_difficulty(result.stdout)}


def set_difficulty(ctx, caller, difficulty):
    value = str(difficulty or "").strip().lower()
    if value not in DIFFICULTIES:
        raise ValidationError(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")
    target = prepare_target(ctx, caller, admin_only=True)
    return _single(
        ctx, caller, "difficulty", target, f"difficulty {value}",
        f"Difficulty set to {value}", audit_detail=value,
    )


def _require_gamerule(rule):
    name = str(rule or "").strip()
    if not _GAMERULE_NAME_RE.match(name) or name not in GAMERULES:
        raise ValidationError("Unknown gamerule")
    return name


def get_gamerules(ctx, caller, rules=None):
    """Read allow-listed gamerules, one session each; unreadable rules map to None."""
    names = [_require_gamerule(rule) for rule in rules] if rules else list(GAMERULES)
    target = prepare_target(ctx, caller, cost=len(names))
    results = run_parallel(ctx, target, [f"gamerule {name}" for name in names])
    if results and all(not result.ok for result in results):
        return failure_payload(results[0])
    values = {
        name: parse_gamerule_value(result.stdout) if result.ok else None
        for name, result in zip(names, results)
    }
    return {"ok": True, "rules": values}


def set_gamerule(ctx, caller, rule, value):
    name = _require_gamerule(rule)
    if isinstance(value, bool):
        value = "true" if value else "false"
    text = str(value or "").strip().lower()
    if text not in ("true", "false"):
        raise ValidationError("Value must be true or false")
    target = prepare_target(ctx, caller, admin_only=True)
    return _single(
        ctx, caller, "gamerule", target, f"gamerule {name} {text}",
        f"{name} set to {text}", audit_target=name, audit_detail=text,
    )


# ----------------------------
# Admin
# ----------------------------
def server_control(ctx, caller, command):
    chosen = str(command or "").strip().lower()
    if chosen not in SERVER_CONTROL_COMMANDS:
        raise ValidationError("Unsupported server command")
    target = prepare_target(ctx, caller, admin_only=True)
    result = _run_checked(ctx, target, chosen)
    audit_action = "save_all" if chosen == "save-all" else "stop_server"
    if not result.ok:
        payload = failure_payload(result)
        log_failure(ctx, audit_action, payload)
        return payload
    record_audit(ctx, caller, audit_action)
    log_action(ctx, audit_action)
    return {"ok": True, "message": result.stdout or f"Executed: {chosen}"}


def raw_command(ctx, caller, command):
    """Admin console: run caller text verbatim, up to 256 chars."""
    require_admin(caller)
    if not isinstance(command, str) or not command.strip():
        raise ValidationError("Command cannot be empty")
    text = command.strip()
    if len(text) > RAW_COMMAND_LIMIT:
        raise ValidationError(f"Command too long (max {RAW_COMMAND_LIMIT} chars)")
    if any(ord(char) < 0x20 or ord(char) == 0x7F for char in text):
        raise ValidationError("Command contains control characters")
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError("Command is not valid UTF-8 text") from None
    target = prepare_target(ctx, caller, admin_only=True)
    result = run_command(ctx, target, text)
    if not result.ok:
        payload = failure_payload(result)
        log_failure(ctx, "cmd", payload)
        return payload
    record_audit(ctx, caller, "cmd", detail=text)
    log_action(ctx, "cmd", command=text.split(" ", 1)[0])
    return {"ok": True, "output": result.stdout or "(no output)"}
