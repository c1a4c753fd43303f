"""App factory and runtime wiring entrypoint."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timezone
from pathlib import Path
from zoneinfo import ZoneInfo

from flask import Flask
from werkzeug.exceptions import HTTPException

from mcgate.core.config import apply_default_flask_config, resolve_secret_key
from mcgate.core.logging_setup import build_loggers
from mcgate.core.state_db import StateStore
from mcgate.core.web_config import WebConfig
from mcgate.routes.gateway_routes import register_gateway_routes
from mcgate.routes.server_routes import register_server_routes
from mcgate.services.rate_limits import build_rate_limiter
from mcgate.services.request_bindings import build_request_bindings
from mcgate.state import AppState

DEFAULT_CONFIG_NAME = "mcgate.env"
# RCON timeouts stay at or under ten seconds.
MAX_RCON_TIMEOUT_SECONDS = 10.0


def _load_display_tz(name):
    try:
        return ZoneInfo(name)
    except (KeyError, ValueError):
        return timezone.utc


def create_app(config_path=None, base_dir=None, environ=None):
    """Build the Flask app with an explicit store, limiter, executor and loggers."""
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    cfg = WebConfig(config_path or base / DEFAULT_CONFIG_NAME, base, environ=environ)

    data_dir = cfg.get_path("DATA_DIR", base / "data")
    log_dir = cfg.get_path("LOG_DIR", base / "logs")
    display_tz = _load_display_tz(cfg.get_str("DISPLAY_TZ", "UTC"))
    action_log_file = log_dir / "mcgate-actions.log"
    system_log_file = log_dir / "mcgate.log"
    log_mcgate_action, log_mcgate_log, log_mcgate_exception = build_loggers(
        display_tz, log_dir, action_log_file, system_log_file,
    )

    store = StateStore(data_dir / "mcgate.db")
    store.initialize(log_exception=log_mcgate_exception)

    parallel_workers = cfg.get_int("RCON_PARALLEL_WORKERS", 4, minimum=1)
    namespace = {
        "DISPLAY_TZ": display_tz,
        "DATA_DIR": data_dir,
        "LOG_DIR": log_dir,
        "STATE_DB_PATH": store.db_path,
        "MCGATE_ACTION_LOG_FILE": action_log_file,
        "MCGATE_LOG_FILE": system_log_file,
        "RCON_CONNECT_TIMEOUT_SECONDS": cfg.get_float(
            "RCON_CONNECT_TIMEOUT_SECONDS", 8.0, minimum=0.5, maximum=MAX_RCON_TIMEOUT_SECONDS,
        ),
        "RCON_COMMAND_TIMEOUT_SECONDS": cfg.get_float(
            "RCON_COMMAND_TIMEOUT_SECONDS", 8.0, minimum=0.5, maximum=MAX_RCON_TIMEOUT_SECONDS,
        ),
        "RCON_INVENTORY_TIMEOUT_SECONDS": cfg.get_float(
            "RCON_INVENTORY_TIMEOUT_SECONDS", 10.0, minimum=0.5, maximum=MAX_RCON_TIMEOUT_SECONDS,
        ),
        "RCON_PARALLEL_WORKERS": parallel_workers,
        "RCON_CHECK_RESOLVED_ADDRESS": cfg.get_bool("RCON_CHECK_RESOLVED_ADDRESS", True),
        "store": store,
        "rate_limiter": build_rate_limiter(cfg.get_int),
        "rcon_executor": ThreadPoolExecutor(max_workers=parallel_workers, thread_name_prefix="mcgate-rcon"),
        "log_mcgate_action": log_mcgate_action,
        "log_mcgate_log": log_mcgate_log,
        "log_mcgate_exception": log_mcgate_exception,
    }
    namespace.update(build_request_bindings(store=store, log_mcgate_exception=log_mcgate_exception))
    state = AppState.from_namespace(namespace)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = resolve_secret_key(cfg.get_str, "MCGATE_SECRET_KEY", "FLASK_SECRET_KEY")
    apply_default_flask_config(app)
    register_gateway_routes(app, state)
    register_server_routes(app, state)

    @app.errorhandler(Exception)
    def _unhandled(exc):
        if isinstance(exc, HTTPException):
            return exc
        return state["_internal_error_response"]("unhandled", exc)

    app.extensions["mcgate"] = {"state": state, "config": cfg}
    return app
