"""Shared gateway plumbing: caller checks, input validation, fan-out, aggregation."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import math
import re
from typing import Optional

from mcgate.core.address_policy import check_target
from mcgate.core.errors import (
    CommandError,
    PermissionDeniedError,
    RateLimitedError,
    TargetNotConfiguredError,
    ValidationError,
)
from mcgate.core.state_db import ROLE_ADMIN, ROLE_USER
from mcgate.services.rcon_session import CommandResult, ServerTarget, run_command
from mcgate.services.response_parsers import looks_like_rejection, strip_formatting

PLAYER_NAME_RE = re.compile(r"^\.?[a-zA-Z0-9_]{1,16}$")
REASON_LIMIT = 255
CHAT_LIMIT = 256
RAW_COMMAND_LIMIT = 256
MAX_STACK = 64
# Vanilla world border is 29,999,984 blocks from the origin.
MAX_COORDINATE = 30_000_000

DEFAULT_PARALLEL_WORKERS = 4
RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."

_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E]")


@dataclass(frozen=True)
class Caller:
    """Authenticated dashboard user and their saved RCON target, if any."""
    user_id: str
    role: str = ROLE_USER
    server: Optional[ServerTarget] = None

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN


# ----------------------------
# Input validation (runs before any network I/O)
# ----------------------------
def require_player_name(raw, field="player"):
    """Return ``raw`` when it is a valid Java or Geyser (leading dot) name."""
    name = raw.strip() if isinstance(raw, str) else ""
    if not name:
        raise ValidationError(f"Missing {field}")
    if not PLAYER_NAME_RE.match(name):
        raise ValidationError("Invalid player name")
    return name


def sanitize_text(text, limit):
    """Drop format codes, keep printable ASCII, trim and truncate to ``limit``."""
    cleaned = _NON_PRINTABLE_RE.sub("", strip_formatting(str(text or ""))).strip()
    return cleaned[:limit].strip()


def require_coordinate(raw, axis):
    if raw is None or isinstance(raw, bool):
        raise ValidationError("Missing coordinates")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numbers") from None
    if not math.isfinite(value) or abs(value) > MAX_COORDINATE:
        raise ValidationError(f"Coordinate {axis} is out of range")
    return value


def format_number(value):
    """Render a float without a trailing ``.0`` or exponent notation."""
    if float(value).is_integer():
        return str(int(value))
    return f"{float(value):.6f}".rstrip("0").rstrip(".")


def clamp_quantity(raw):
    """Coerce a give quantity to 1-64; junk or zero means 1."""
    try:
        quantity = int(raw)
    except (TypeError, ValueError):
        quantity = 1
    return max(1, min(MAX_STACK, quantity or 1))


# ----------------------------
# Caller, policy and rate-limit checks
# ----------------------------
def require_admin(caller):
    if not caller.is_admin:
        raise PermissionDeniedError("Admin access required")


def prepare_target(ctx, caller, bucket="rcon", cost=1, admin_only=False):
    """Resolve and vet the caller's target, then charge the rate-limit bucket."""
    if admin_only:
        require_admin(caller)
    target = caller.server
    if target is None:
        raise TargetNotConfiguredError("No server configured")
    check_target(target)
    charge_rate_limit(ctx, caller, bucket, cost)
    return target


def charge_rate_limit(ctx, caller, bucket="rcon", cost=1):
    limiter = getattr(ctx, "rate_limiter", None)
    if limiter is not None and not limiter.allow(bucket, caller.user_id, cost):
        raise RateLimitedError(RATE_LIMIT_MESSAGE, retry_after=limiter.retry_after(bucket, caller.user_id))


# ----------------------------
# Running commands
# ----------------------------
def mark_rejections(results):
    """Turn "Unknown command"/"No player was found" replies into failures."""
    checked = []
    for result in results:
        if result.ok and looks_like_rejection(result.stdout):
            checked.append(
                CommandResult(ok=False, stdout=result.stdout, error=result.stdout, error_kind=CommandError.kind)
            )
        else:
            checked.append(result)
    return checked


def run_parallel(ctx, target, commands, command_timeout=None):
    """Run each command on its own session, concurrently, preserving order."""
    commands = list(commands)
    if not commands:
        return []

    def _run(command):
        return run_command(ctx, target, command, command_timeout=command_timeout)

    executor = getattr(ctx, "rcon_executor", None)
    if executor is not None:
        return list(executor.map(_run, commands))
    workers = min(len(commands), getattr(ctx, "RCON_PARALLEL_WORKERS", DEFAULT_PARALLEL_WORKERS))
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="mcgate-rcon") as pool:
        return list(pool.map(_run, commands))


def aggregate_results(results, labels, message, default_error):
    """Fold per-command results into one payload.

    All succeeded: ``ok`` with ``message``. Some failed: still ``ok``, with the
    failed labels and their errors appended, and the labels listed under
    ``failed``. All failed: not ``ok``, reporting the first error.
    """
    failures = [(label, result) for label, result in zip(labels, results) if not result.ok]
    failed = [label for label, _result in failures]
    if results and len(failed) == len(results):
        first = results[0]
        return {"ok": False, "error": first.error or default_error, "error_kind": first.error_kind}
    payload = {"ok": True, "message": message}
    if failed:
        notes = "; ".join(f"{label} failed: {result.error or default_error}" for label, result in failures)
        payload["message"] = f"{message} ({notes})"
        payload["failed"] = failed
    return payload


def failure_payload(result, default_error="RCON error"):
    return {"ok": False, "error": result.error or default_error, "error_kind": result.error_kind}


# ----------------------------
# Best-effort side records
# ----------------------------
def log_action(ctx, action, command=None, rejection_message=None):
    logger = getattr(ctx, "log_mcgate_action", None)
    if callable(logger):
        logger(action, command=command, rejection_message=rejection_message)


def log_failure(ctx, action, payload):
    """Log a failed gateway payload through the action log."""
    if not payload.get("ok"):
        log_action(ctx, action, rejection_message=payload.get("error"))


def _report_store_error(ctx, context, exc):
    log_exception = getattr(ctx, "log_mcgate_exception", None)
    if callable(log_exception):
        log_exception(context, exc)


def record_audit(ctx, caller, action, target=None, detail=None):
    store = getattr(ctx, "store", None)
    if store is None:
        return
    try:
        store.append_audit(caller.user_id, action, target=target, detail=detail)
    except Exception as exc:
        # Audit is best-effort; the command already ran.
        _report_store_error(ctx, f"audit/{action}", exc)


def record_chat(ctx, caller, kind, message, player=None):
    store = getattr(ctx, "store", None)
    if store is None:
        return
    try:
        store.append_chat(caller.user_id, kind, message, player=player)
    except Exception as exc:
        _report_store_error(ctx, f"chat_log/{kind}", exc)
