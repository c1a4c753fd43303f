import socket
import struct
import threading
import unittest

from mcgate.core.errors import AddressPolicyError, AuthError, CommandError, ConnectError, ProtocolError
from mcgate.services.rcon_transport import (
    MAX_COMMAND_BYTES,
    SERVERDATA_AUTH,
    SERVERDATA_AUTH_RESPONSE,
    SERVERDATA_EXECCOMMAND,
    SERVERDATA_RESPONSE_VALUE,
    RconFrame,
    RconTransport,
    decode_frame,
    decode_payload,
    encode_frame,
)


class FakeRconPeer:
    """Scripted RCON server on the far end of a socketpair."""

    def __init__(self, handler):
        self.client_sock, self.server_sock = socket.socketpair()
        self.received = []
        self._handler = handler
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _recv_exact(self, size):
        buf = b""
        while len(buf) < size:
            chunk = self.server_sock.recv(size - len(buf))
            if not chunk:
                return None
            buf += chunk
        return buf

    def _serve(self):
        while True:
            try:
                header = self._recv_exact(4)
                if header is None:
                    return
                (length,) = struct.unpack("<i", header)
                payload = self._recv_exact(length)
                if payload is None:
                    return
                frame = decode_payload(payload)
                self.received.append(frame)
                for reply in self._handler(self, frame):
                    self.server_sock.sendall(reply)
            except OSError:
                return

    def close(self):
        try:
            self.server_sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.server_sock.close()
        self.client_sock.close()
        self._thread.join(timeout=2)


def _auth_ok(peer, frame):
    if frame.frame_type == SERVERDATA_AUTH:
        return [
            encode_frame(frame.request_id, SERVERDATA_RESPONSE_VALUE, ""),
            encode_frame(frame.request_id, SERVERDATA_AUTH_RESPONSE, ""),
        ]
    return [encode_frame(frame.request_id, SERVERDATA_RESPONSE_VALUE, "§aThere are 0 of a max of 20 players online: ")]


class FrameCodecTests(unittest.TestCase):
    def test_encode_and_decode_frame(self):
        data = encode_frame(7, SERVERDATA_EXECCOMMAND, "list")
        self.assertEqual(len(data), 18)
        self.assertEqual(struct.unpack_from("<i", data)[0], 14)
        self.assertTrue(data.endswith(b"list\x00\x00"))
        frame = decode_frame(data)
        self.assertEqual(frame, RconFrame(7, SERVERDATA_EXECCOMMAND, "list"))
        self.assertEqual(frame.length, 14)

    def test_empty_body_has_minimum_length(self):
        data = encode_frame(1, SERVERDATA_AUTH, "")
        self.assertEqual(struct.unpack_from("<i", data)[0], 10)
        self.assertEqual(decode_frame(data).body, "")

    def test_printable_commands_survive_encoding(self):
        printable = "".join(chr(code) for code in range(0x20, 0x7F))
        bodies = ["", "a", "x" * 255, "y" * 256, printable, (printable * 3)[:256]]
        request_ids = [0, 1, -1, -(2 ** 31), 2 ** 31 - 1, 123456789]
        for body in bodies:
            for request_id in request_ids:
                for frame_type in (SERVERDATA_AUTH, SERVERDATA_EXECCOMMAND, SERVERDATA_RESPONSE_VALUE):
                    with self.subTest(length=len(body), request_id=request_id, frame_type=frame_type):
                        data = encode_frame(request_id, frame_type, body)
                        self.assertEqual(struct.unpack_from("<i", data)[0], len(body) + 10)
                        self.assertEqual(len(data), len(body) + 14)
                        self.assertEqual(decode_frame(data), RconFrame(request_id, frame_type, body))

    def test_rejects_malformed_frames(self):
        with self.assertRaises(ProtocolError):
            decode_payload(b"\x00" * 4)
        with self.assertRaises(ProtocolError):
            decode_frame(struct.pack("<i", 20) + b"\x00" * 10)
        with self.assertRaises(ProtocolError):
            decode_frame(b"\x01")


class RconTransportTests(unittest.TestCase):
    def _transport(self, handler, command_timeout=2.0):
        peer = FakeRconPeer(handler)
        self.addCleanup(peer.close)
        transport = RconTransport(peer.client_sock, command_timeout=command_timeout)
        self.addCleanup(transport.close)
        return peer, transport

    def test_authenticate_then_send(self):
        peer, transport = self._transport(_auth_ok)
        transport.authenticate("secret")
        self.assertEqual(transport.send("list"), "There are 0 of a max of 20 players online:")
        self.assertEqual(peer.received[0].frame_type, SERVERDATA_AUTH)
        self.assertEqual(peer.received[0].body, "secret")
        self.assertEqual(peer.received[1].frame_type, SERVERDATA_EXECCOMMAND)
        self.assertEqual(peer.received[1].body, "list")

    def test_wrong_password(self):
        def handler(peer, frame):
            return [encode_frame(-1, SERVERDATA_AUTH_RESPONSE, "")]

        _peer, transport = self._transport(handler)
        with self.assertRaises(AuthError) as raised:
            transport.authenticate("nope")
        self.assertEqual(raised.exception.kind, "auth")

    def test_command_too_long_is_not_sent(self):
        _peer, transport = self._transport(_auth_ok)
        with self.assertRaises(CommandError):
            transport.send("x" * (MAX_COMMAND_BYTES + 1))
        self.assertFalse(transport.closed)

    def test_reply_for_unknown_id(self):
        def handler(peer, frame):
            return [encode_frame(frame.request_id + 5, SERVERDATA_RESPONSE_VALUE, "??")]

        _peer, transport = self._transport(handler)
        with self.assertRaises(ProtocolError):
            transport.send("list")

    def test_invalid_frame_length_closes_connection(self):
        def handler(peer, frame):
            return [struct.pack("<i", 4) + b"\x00" * 4]

        _peer, transport = self._transport(handler)
        with self.assertRaises(ProtocolError):
            transport.send("list")
        self.assertTrue(transport.closed)

    def test_late_reply_after_timeout_is_discarded(self):
        slow_ids = []

        def handler(peer, frame):
            if frame.body == "slow":
                slow_ids.append(frame.request_id)
                return []
            return [
                encode_frame(slow_ids[0], SERVERDATA_RESPONSE_VALUE, "late"),
                encode_frame(frame.request_id, SERVERDATA_RESPONSE_VALUE, "on time"),
            ]

        _peer, transport = self._transport(handler, command_timeout=0.3)
        with self.assertRaises(CommandError):
            transport.send("slow")
        self.assertFalse(transport.closed)
        self.assertEqual(transport.send("fast"), "on time")

    def test_timeout_mid_frame_closes_connection(self):
        def handler(peer, frame):
            return [encode_frame(frame.request_id, SERVERDATA_RESPONSE_VALUE, "partial")[:9]]

        _peer, transport = self._transport(handler, command_timeout=0.3)
        with self.assertRaises(CommandError):
            transport.send("list")
        self.assertTrue(transport.closed)
        with self.assertRaises(CommandError):
            transport.send("list")

    def test_close_is_idempotent(self):
        _peer, transport = self._transport(_auth_ok)
        transport.close()
        transport.close()
        self.assertTrue(transport.closed)


class RconConnectTests(unittest.TestCase):
    def test_every_address_blocked_by_guard(self):
        with self.assertRaises(AddressPolicyError):
            RconTransport.connect("127.0.0.1", 25575, timeout=1, address_guard=lambda address: True)

    def test_connection_refused(self):
        free_port_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        free_port_sock.bind(("127.0.0.1", 0))
        port = free_port_sock.getsockname()[1]
        free_port_sock.close()
        with self.assertRaises(ConnectError) as raised:
            RconTransport.connect("127.0.0.1", port, timeout=1)
        self.assertEqual(raised.exception.kind, "connect")

    def test_connect_and_authenticate_against_listener(self):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        self.addCleanup(listener.close)
        port = listener.getsockname()[1]

        def serve():
            conn, _addr = listener.accept()
            with conn:
                (length,) = struct.unpack("<i", conn.recv(4))
                frame = decode_payload(conn.recv(length, socket.MSG_WAITALL))
                conn.sendall(encode_frame(frame.request_id, SERVERDATA_AUTH_RESPONSE, ""))

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        with RconTransport.connect("127.0.0.1", port, timeout=2, command_timeout=2) as transport:
            transport.authenticate("pw")
        self.assertTrue(transport.closed)
        thread.join(timeout=2)


if __name__ == "__main__":
    unittest.main()
