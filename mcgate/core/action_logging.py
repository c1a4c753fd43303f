"""Action/error logging helpers with request-aware client identification."""

from datetime import datetime
import os
import traceback
from flask import request, has_request_context

LOG_ROTATE_MAX_BYTES = 5 * 1024 * 1024
LOG_ROTATE_BACKUP_COUNT = 5


def sanitize_log_fragment(text):
    """Normalize user/system text into a single safe log line fragment."""
    return " ".join(str(text or "").replace("\r", " ").replace("\n", " ").split()).strip()


def get_client_ip():
    """Resolve the client IP for log lines; ``mcgate`` outside a request."""
    if not has_request_context():
        return "mcgate"
    # Rightmost X-Forwarded-For hop is the one our own proxy appended.
    xff = (request.headers.get("X-Forwarded-For") or "").strip()
    if xff:
        last = xff.split(",")[-1].strip()
        if last:
            return last
    x_real_ip = (request.headers.get("X-Real-IP") or "").strip()
    if x_real_ip:
        return x_real_ip
    direct = (request.remote_addr or "").strip()
    return direct or "mcgate"


def _rotate_log_file(path, max_bytes=LOG_ROTATE_MAX_BYTES, backup_count=LOG_ROTATE_BACKUP_COUNT):
    """Shift ``path`` to ``path.1`` (and older backups up) once it is too big."""
    if max_bytes <= 0 or backup_count <= 0:
        return
    try:
        if not path.exists() or path.stat().st_size < max_bytes:
            return
        for idx in range(backup_count - 1, 0, -1):
            src = path.with_name(f"{path.name}.{idx}")
            if src.exists():
                os.replace(src, path.with_name(f"{path.name}.{idx + 1}"))
        os.replace(path, path.with_name(f"{path.name}.1"))
    except OSError:
        # Rotation failures must not break gateway requests.
        pass


def make_log_action(display_tz, log_dir, action_log_file):
    """Return ``log_action(action, command=None, rejection_message=None)``."""

    def log_action(action, command=None, rejection_message=None):
        """Append one action event line; failures are intentionally swallowed."""
        stamp = datetime.now(tz=display_tz).strftime("%b %d %H:%M:%S")
        client_ip = sanitize_log_fragment(get_client_ip()) or "unknown"
        parts = [f"{stamp} <{client_ip}> [mcgate/{sanitize_log_fragment(action) or 'unknown'}]"]
        safe_command = sanitize_log_fragment(command)
        if safe_command:
            parts.append(safe_command)
        safe_rejection = sanitize_log_fragment(rejection_message)
        if safe_rejection:
            parts.append(f"rejected: {safe_rejection}")
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            _rotate_log_file(action_log_file)
            with action_log_file.open("a", encoding="utf-8") as f:
                f.write(" ".join(parts) + "\n")
        except OSError:
            # Logging must not break gateway requests.
            pass

    return log_action


def make_log_exception(log_action):
    """Build an exception logger that writes through ``log_action``."""

    def log_exception(context, exc):
        exc_name = type(exc).__name__ if exc is not None else "Exception"
        message = f"{context}: {exc_name}"
        exc_text = sanitize_log_fragment(str(exc) if exc is not None else "")
        if exc_text:
            message += f": {exc_text}"
        if exc is not None:
            tb = sanitize_log_fragment(" | ".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            if tb:
                message += f" | traceback: {tb[:700]}"
        log_action("error", rejection_message=message)

    return log_exception
