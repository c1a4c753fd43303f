"""Source RCON wire protocol over one TCP connection.

Frame layout (all integers little-endian int32)::

    length | request_id | type | body bytes | 0x00 | 0x00

``length`` counts every byte after the length field, so an empty body gives
length 10. Replies are assumed to fit in a single frame; Minecraft splits
bodies over 4096 bytes into several frames and only the first is read.
"""

from dataclasses import dataclass
import itertools
import socket
import struct

from mcgate.core.address_policy import BLOCKED_HOST_MESSAGE
from mcgate.core.errors import AddressPolicyError, AuthError, CommandError, ConnectError, ProtocolError
from mcgate.services.response_parsers import strip_formatting

SERVERDATA_AUTH = 3
SERVERDATA_AUTH_RESPONSE = 2
SERVERDATA_EXECCOMMAND = 2
SERVERDATA_RESPONSE_VALUE = 0

AUTH_FAILED_ID = -1
MIN_FRAME_LENGTH = 10
MAX_FRAME_LENGTH = 1024 * 1024
# Vanilla drops inbound frames with a body over 1446 bytes.
MAX_COMMAND_BYTES = 1446

DEFAULT_CONNECT_TIMEOUT_SECONDS = 8.0
DEFAULT_COMMAND_TIMEOUT_SECONDS = 8.0

_HEADER = struct.Struct("<i")
_ID_AND_TYPE = struct.Struct("<ii")


@dataclass(frozen=True)
class RconFrame:
    request_id: int
    frame_type: int
    body: str

    @property
    def length(self):
        return len(self.body.encode("utf-8")) + MIN_FRAME_LENGTH


def encode_frame(request_id, frame_type, body):
    """Serialize one frame including its length prefix."""
    payload = body.encode("utf-8")
    return (
        _HEADER.pack(len(payload) + MIN_FRAME_LENGTH)
        + _ID_AND_TYPE.pack(request_id, frame_type)
        + payload
        + b"\x00\x00"
    )


def decode_payload(payload):
    """Decode the bytes that follow a frame's length field."""
    if len(payload) < MIN_FRAME_LENGTH or len(payload) > MAX_FRAME_LENGTH:
        raise ProtocolError(f"Invalid RCON frame length {len(payload)}")
    if not payload.endswith(b"\x00"):
        raise ProtocolError("RCON frame is missing its terminator")
    request_id, frame_type = _ID_AND_TYPE.unpack_from(payload)
    body = payload[8:]
    body = body[:-2] if body.endswith(b"\x00\x00") else body[:-1]
    return RconFrame(request_id, frame_type, body.decode("utf-8", errors="replace"))


def decode_frame(data):
    """Decode one complete frame (length prefix included)."""
    if len(data) < _HEADER.size:
        raise ProtocolError("Truncated RCON frame")
    (length,) = _HEADER.unpack_from(data)
    if length != len(data) - _HEADER.size:
        raise ProtocolError("RCON frame length does not match its payload")
    return decode_payload(data[_HEADER.size:])


class RconTransport:
    """One authenticated-or-not RCON connection; commands must be sequential."""

    def __init__(self, sock, command_timeout=DEFAULT_COMMAND_TIMEOUT_SECONDS):
        self._sock = sock
        self._sock.settimeout(command_timeout)
        self._request_ids = itertools.count(1)
        self._abandoned_ids = set()
        self.closed = False

    @classmethod
    def connect(
        cls,
        host,
        port,
        timeout=DEFAULT_CONNECT_TIMEOUT_SECONDS,
        command_timeout=DEFAULT_COMMAND_TIMEOUT_SECONDS,
        address_guard=None,
    ):
        """Open a TCP connection, trying each resolved address in turn.

        ``address_guard`` is a predicate over resolved IP strings; addresses it
        flags are skipped and, when every address is flagged, the connection
        is refused with AddressPolicyError.
        """
        try:
            addresses = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except (OSError, UnicodeError) as exc:
            raise ConnectError(f"Could not resolve {host}") from exc

        last_error = None
        dialled = False
        for family, socktype, proto, _canonname, sockaddr in addresses:
            if address_guard is not None and address_guard(sockaddr[0]):
                continue
            dialled = True
            sock = socket.socket(family, socktype, proto)
            sock.settimeout(timeout)
            try:
                sock.connect(sockaddr)
            except OSError as exc:
                sock.close()
                last_error = exc
                continue
            return cls(sock, command_timeout=command_timeout)

        if not dialled:
            raise AddressPolicyError(BLOCKED_HOST_MESSAGE)
        if isinstance(last_error, socket.timeout):
            raise ConnectError(f"Timed out connecting to {host}:{port}") from last_error
        if isinstance(last_error, ConnectionRefusedError):
            raise ConnectError(f"Connection refused by {host}:{port}") from last_error
        raise ConnectError(f"Could not connect to {host}:{port}") from last_error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Close the socket; safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        try:
            self._sock.close()
        except OSError:
            pass

    def _next_request_id(self):
        return next(self._request_ids)

    def _write(self, data, failure):
        if self.closed:
            raise failure("RCON connection is closed")
        try:
            self._sock.sendall(data)
        except OSError as exc:
            self.close()
            raise failure(f"Connection lost while sending: {exc}") from exc

    def _recv_exact(self, size, failure, frame_start=False):
        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = self._sock.recv(size - len(buf))
            except socket.timeout as exc:
                if frame_start and not buf:
                    # Nothing of the reply arrived yet; the stream is still aligned.
                    raise failure("Timed out waiting for the server to reply") from exc
                self.close()
                raise failure("Timed out in the middle of a reply") from exc
            except OSError as exc:
                self.close()
                raise failure(f"Connection lost: {exc}") from exc
            if not chunk:
                self.close()
                raise failure("Connection closed by the server")
            buf.extend(chunk)
        return bytes(buf)

    def _read_frame(self, failure):
        if self.closed:
            raise failure("RCON connection is closed")
        (length,) = _HEADER.unpack(self._recv_exact(_HEADER.size, failure, frame_start=True))
        if length < MIN_FRAME_LENGTH or length > MAX_FRAME_LENGTH:
            # The rest of the stream cannot be realigned.
            self.close()
            raise ProtocolError(f"Invalid RCON frame length {length}")
        return decode_payload(self._recv_exact(length, failure))

    def authenticate(self, password):
        """Send the AUTH frame and wait for the AUTH_RESPONSE."""
        request_id = self._next_request_id()
        self._write(encode_frame(request_id, SERVERDATA_AUTH, password or ""), ConnectError)
        frame = self._read_frame(ConnectError)
        if frame.frame_type == SERVERDATA_RESPONSE_VALUE and not frame.body:
            # Source-engine servers send an empty RESPONSE_VALUE first.
            frame = self._read_frame(ConnectError)
        if frame.request_id == AUTH_FAILED_ID:
            raise AuthError("RCON password was rejected")
        if frame.frame_type != SERVERDATA_AUTH_RESPONSE or frame.request_id != request_id:
            raise ProtocolError("Unexpected reply to RCON authentication")

    def send(self, command):
        """Run one command and return its cleaned reply body."""
        body = str(command or "")
        if len(body.encode("utf-8")) > MAX_COMMAND_BYTES:
            raise CommandError(f"Command exceeds {MAX_COMMAND_BYTES} bytes")
        request_id = self._next_request_id()
        self._write(encode_frame(request_id, SERVERDATA_EXECCOMMAND, body), CommandError)
        while True:
            try:
                frame = self._read_frame(CommandError)
            except CommandError:
                self._abandoned_ids.add(request_id)
                raise
            if frame.request_id in self._abandoned_ids:
                # Late reply to an earlier command that timed out.
                self._abandoned_ids.discard(frame.request_id)
                continue
            break
        if frame.request_id != request_id:
            raise ProtocolError(f"Reply for unknown request id {frame.request_id}")
        if frame.frame_type != SERVERDATA_RESPONSE_VALUE:
            raise ProtocolError(f"Unexpected RCON frame type {frame.frame_type}")
        return strip_formatting(frame.body).strip()
