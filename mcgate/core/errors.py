"""Gateway error taxonomy shared by transport, session, and gateway layers."""


class GatewayError(Exception):
    """Base class for every failure the gateway reports to a caller."""

    kind = "internal"

    def __init__(self, message=""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class AddressPolicyError(GatewayError):
    """Target host falls in a blocked range; no connection was attempted."""

    kind = "policy"


class ValidationError(GatewayError):
    """Caller-supplied input failed its allow-list or format check."""

    kind = "validation"


class TargetNotConfiguredError(GatewayError):
    """Caller has no RCON server saved."""

    kind = "config"


class RateLimitedError(GatewayError):
    """Caller exhausted the rate-limit bucket for this operation."""

    kind = "rate_limited"

    def __init__(self, message="", retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after


class PermissionDeniedError(GatewayError):
    """Caller role is not allowed to run this operation."""

    kind = "forbidden"


class ConnectError(GatewayError):
    """DNS failure, TCP refusal, or timeout before any byte was exchanged."""

    kind = "connect"


class AuthError(GatewayError):
    """Server rejected the RCON password."""

    kind = "auth"


class ProtocolError(GatewayError):
    """Server sent a malformed or unexpected frame."""

    kind = "protocol"


class CommandError(GatewayError):
    """Timeout or connection drop while a command was in flight."""

    kind = "command"
