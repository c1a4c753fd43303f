"""Destination address policy for RCON targets.

Rejects hosts that would let the dashboard reach its own infrastructure:
loopback, RFC-1918, link-local, CGNAT (100.64.0.0/10, used by VPN mesh
networks), the Docker host alias, any-address, IPv4-mapped IPv6, IPv6 ULA
and IPv6 link-local.

Matching is literal. A public hostname can still resolve to a blocked range
(DNS rebinding); the transport re-checks resolved addresses when
``RCON_CHECK_RESOLVED_ADDRESS`` is enabled.
"""

import re

from mcgate.core.errors import AddressPolicyError

DEFAULT_RCON_PORT = 25575
BLOCKED_HOST_MESSAGE = "That server address is not allowed"

_BLOCKED_NAMES = frozenset({"localhost", "localhost.", "host.docker.internal"})
_IPV4_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")


def normalize_host(host):
    """Trim, lowercase, and strip IPv6 brackets from a host string."""
    normalized = str(host or "").strip().lower()
    if normalized.startswith("[") and normalized.endswith("]"):
        normalized = normalized[1:-1]
    return normalized


def _ipv4_blocked(first, second):
    if first in (0, 10, 127):
        return True
    if first == 172 and 16 <= second <= 31:
        return True
    if first == 192 and second == 168:
        return True
    if first == 169 and second == 254:
        return True
    if first == 100 and 64 <= second <= 127:
        return True
    return False


def is_blocked(host):
    """Return True when ``host`` literally names an internal address."""
    raw = str(host or "").strip().lower()
    if raw in _BLOCKED_NAMES:
        return True
    stripped = normalize_host(raw)
    if stripped in _BLOCKED_NAMES:
        return True

    if stripped in ("::", "::1"):
        return True
    if stripped.startswith("::ffff:"):
        return True
    # Prefix rules apply to IPv6 literals only, so "fdn.example.com" passes.
    if ":" in stripped and stripped.startswith(("fe80", "fc", "fd")):
        return True

    match = _IPV4_RE.match(stripped)
    if match:
        first, second = int(match.group(1)), int(match.group(2))
        return _ipv4_blocked(first, second)
    return False


def parse_port(raw, default=DEFAULT_RCON_PORT):
    """Return ``raw`` as a TCP port, or ``default`` when missing/invalid."""
    if isinstance(raw, bool):
        return default
    try:
        port = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if port < 1 or port > 65535:
        return default
    return port


def check_host(host):
    """Raise AddressPolicyError for blocked hosts without naming the rule."""
    if not normalize_host(host) or is_blocked(host):
        raise AddressPolicyError(BLOCKED_HOST_MESSAGE)


def check_target(target):
    """Validate a ServerTarget's host before any connection attempt."""
    check_host(target.host)
    return target
