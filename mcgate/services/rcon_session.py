"""Scoped RCON sessions: connect, authenticate, run commands, always close."""

from dataclasses import dataclass, field
from typing import Optional

from mcgate.core.address_policy import DEFAULT_RCON_PORT, check_target, is_blocked
from mcgate.core.errors import CommandError, GatewayError, ProtocolError
from mcgate.services.rcon_transport import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    RconTransport,
)


@dataclass(frozen=True)
class ServerTarget:
    """Where to connect; the password never appears in reprs or logs."""
    host: str
    port: int = DEFAULT_RCON_PORT
    password: str = field(default="", repr=False)

    @property
    def address(self):
        return f"{self.host}:{self.port}"


@dataclass
class CommandResult:
    """Outcome of one command; ``error_kind`` mirrors GatewayError.kind."""
    ok: bool
    stdout: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def success(cls, stdout):
        return cls(ok=True, stdout=stdout or "")

    @classmethod
    def from_error(cls, exc):
        return cls(ok=False, error=exc.message, error_kind=exc.kind)

    def to_dict(self):
        payload = {"ok": self.ok, "stdout": self.stdout}
        if not self.ok:
            payload["error"] = self.error
            payload["error_kind"] = self.error_kind
        return payload


def open_transport(ctx, target, command_timeout=None):
    """Dial ``target`` with the context's timeouts and resolved-address guard."""
    guard = is_blocked if getattr(ctx, "RCON_CHECK_RESOLVED_ADDRESS", True) else None
    return RconTransport.connect(
        target.host,
        target.port,
        timeout=getattr(ctx, "RCON_CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SECONDS),
        command_timeout=command_timeout
        or getattr(ctx, "RCON_COMMAND_TIMEOUT_SECONDS", DEFAULT_COMMAND_TIMEOUT_SECONDS),
        address_guard=guard,
    )


class RconSession:
    """One logical operation's connection; never shared or pooled."""

    def __init__(self, transport):
        self.transport = transport
        self.authenticated = False

    def authenticate(self, password):
        self.transport.authenticate(password)
        self.authenticated = True

    def send(self, command):
        """Run ``command``; command-level failures come back as failed results."""
        if not self.authenticated:
            return CommandResult(ok=False, error="Session is not authenticated", error_kind=ProtocolError.kind)
        try:
            return CommandResult.success(self.transport.send(command))
        except (CommandError, ProtocolError) as exc:
            return CommandResult.from_error(exc)


def with_session(ctx, target, fn, command_timeout=None):
    """Run ``fn(send)`` on a fresh authenticated session and close it afterwards.

    Connect, auth and policy failures raise; per-command failures do not.
    """
    check_target(target)
    with open_transport(ctx, target, command_timeout=command_timeout) as transport:
        session = RconSession(transport)
        session.authenticate(target.password)
        return fn(session.send)


def run_commands(ctx, target, commands, command_timeout=None):
    """Run ``commands`` in order on one connection and return their results."""
    commands = list(commands)
    return with_session(ctx, target, lambda send: [send(command) for command in commands], command_timeout)


def run_commands_or_fail(ctx, target, commands, command_timeout=None):
    """Like run_commands, but a connect/auth failure fails every command."""
    commands = list(commands)
    try:
        return run_commands(ctx, target, commands, command_timeout=command_timeout)
    except GatewayError as exc:
        return [CommandResult.from_error(exc) for _command in commands]


def run_command(ctx, target, command, command_timeout=None):
    """Run one command on its own session; never raises GatewayError."""
    return run_commands_or_fail(ctx, target, [command], command_timeout=command_timeout)[0]
