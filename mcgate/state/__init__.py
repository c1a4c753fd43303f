"""Typed application runtime state container."""
from collections.abc import Iterator, MutableMapping
from typing import Any


_STATE_CORE_KEYS = (
    "DISPLAY_TZ",
    "DATA_DIR",
    "LOG_DIR",
    "STATE_DB_PATH",
    "MCGATE_ACTION_LOG_FILE",
    "MCGATE_LOG_FILE",
    "RCON_CONNECT_TIMEOUT_SECONDS",
    "RCON_COMMAND_TIMEOUT_SECONDS",
    "RCON_INVENTORY_TIMEOUT_SECONDS",
    "RCON_PARALLEL_WORKERS",
    "RCON_CHECK_RESOLVED_ADDRESS",
    "store",
    "rate_limiter",
    "rcon_executor",
    "log_mcgate_action",
    "log_mcgate_log",
    "log_mcgate_exception",
)

_STATE_BINDING_KEYS = (
    "current_user",
    "request_json",
    "_payload_response",
    "_gateway_error_response",
    "_bad_request_response",
    "_unauthorized_response",
    "_internal_error_response",
)

REQUIRED_STATE_KEYS = _STATE_CORE_KEYS + _STATE_BINDING_KEYS
REQUIRED_STATE_KEY_SET = frozenset(REQUIRED_STATE_KEYS)


class AppState(MutableMapping[str, Any]):
    """Fixed-key runtime state; doubles as the ``ctx`` passed to gateway services."""

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, Any]):
        missing = [key for key in REQUIRED_STATE_KEYS if key not in data]
        if missing:
            raise KeyError(f"Missing state members: {', '.join(missing)}")
        self._data = {key: data[key] for key in REQUIRED_STATE_KEYS}

    @classmethod
    def from_namespace(cls, namespace: dict[str, Any]) -> "AppState":
        """Build AppState from a runtime namespace dictionary."""
        data = {}
        for key in REQUIRED_STATE_KEYS:
            if key in namespace:
                data[key] = namespace[key]
        return cls(data)

    def __getitem__(self, key: str) -> Any:
        try:
            return self._data[key]
        except KeyError as exc:
            raise KeyError(key) from exc

    def __setitem__(self, key: str, value: Any) -> None:
        if key not in REQUIRED_STATE_KEY_SET:
            raise KeyError(key)
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        raise TypeError("AppState does not support deleting members")

    def __iter__(self) -> Iterator[str]:
        return iter(REQUIRED_STATE_KEYS)

    def __len__(self) -> int:
        return len(REQUIRED_STATE_KEYS)

    def __getattr__(self, name: str) -> Any:
        """Support attribute-style state reads used across services."""
        if name in REQUIRED_STATE_KEY_SET:
            return self._data[name]
        raise AttributeError(name)

    def __setattr__(self, name: str, value: Any) -> None:
        """Support attribute-style state writes for known keys only."""
        if name == "_data":
            object.__setattr__(self, name, value)
            return
        if name in REQUIRED_STATE_KEY_SET:
            self._data[name] = value
            return
        raise AttributeError(name)
