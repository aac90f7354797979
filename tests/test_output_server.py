"""
Tests for the NMEA heading TCP server over loopback.
"""

import select
import socket

from compass_fusion.output_server import HeadingTcpServer


def _connect(server: HeadingTcpServer) -> socket.socket:
    port = server.get_socket().getsockname()[1]
    client = socket.create_connection(("127.0.0.1", port), timeout=5.0)
    r, _, _ = select.select([server.get_socket()], [], [], 5.0)
    assert r
    server.accept_new()
    return client


def _recv_exact(client: socket.socket, size: int) -> bytes:
    data = b""
    while len(data) < size:
        chunk = client.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


class TestHeadingTcpServer:
    """Broadcast to connected clients."""

    def test_start_and_stop(self) -> None:
        server = HeadingTcpServer(host="127.0.0.1", port=0)
        assert server.start() is True
        assert server.get_socket() is not None
        server.stop()
        assert server.get_socket() is None

    def test_broadcast_without_clients(self) -> None:
        server = HeadingTcpServer(host="127.0.0.1", port=0)
        server.start()
        try:
            assert server.broadcast("$HCHDM,1.0,M*00\r\n") == 0
        finally:
            server.stop()

    def test_broadcast_to_client(self) -> None:
        server = HeadingTcpServer(host="127.0.0.1", port=0)
        server.start()
        try:
            client = _connect(server)
            with client:
                assert server.client_count == 1
                sent = server.broadcast("$A*41\r\n", None, "$B*42")
                assert sent == 1
                expected = b"$A*41\r\n$B*42\r\n"
                assert _recv_exact(client, len(expected)) == expected
        finally:
            server.stop()
        assert server.client_count == 0

    def test_all_none_sends_nothing(self) -> None:
        server = HeadingTcpServer(host="127.0.0.1", port=0)
        server.start()
        try:
            client = _connect(server)
            with client:
                assert server.broadcast(None, None, None) == 1
        finally:
            server.stop()

    def test_accept_without_start(self) -> None:
        server = HeadingTcpServer()
        server.accept_new()
        assert server.client_count == 0

    def test_bind_failure(self) -> None:
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]
            assert HeadingTcpServer(host="127.0.0.1", port=port).start() is False
        finally:
            blocker.close()
