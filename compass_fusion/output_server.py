"""
TCP server that streams heading sentences to clients (e.g. a chart plotter).
"""

import logging
import socket
import threading
from typing import List, Optional

logger = logging.getLogger(__name__)


class HeadingTcpServer:
    """
    Non-blocking TCP server that broadcasts NMEA heading lines.

    accept_new() is driven from the main loop via get_socket()/select();
    broadcast() may be called from any thread.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 2948) -> None:
        self._host = host
        self._port = port
        self._sock: Optional[socket.socket] = None
        self._clients: List[socket.socket] = []
        self._lock = threading.Lock()

    def start(self) -> bool:
        """Bind and listen; return True on success."""
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.bind((self._host, self._port))
            self._sock.listen(4)
            self._sock.setblocking(False)
            logger.info("Heading server listening on %s:%s", self._host, self._port)
            return True
        except OSError as e:
            logger.error("Heading server bind failed: %s", e)
            return False

    def stop(self) -> None:
        """Close server and all client connections."""
        with self._lock:
            for c in self._clients:
                try:
                    c.close()
                except OSError:
                    pass
            self._clients.clear()
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None

    def accept_new(self) -> None:
        """Accept one pending connection (non-blocking)."""
        if not self._sock:
            return
        try:
            client, addr = self._sock.accept()
        except BlockingIOError:
            return
        except OSError as e:
            logger.debug("accept error: %s", e)
            return
        with self._lock:
            self._clients.append(client)
            total = len(self._clients)
        logger.info("Heading client %s connected (total %d)", addr, total)

    def broadcast(self, *lines: Optional[str]) -> int:
        """
        Send sentences to every client; None entries are skipped.

        Returns the number of clients still connected.
        """
        payload = "".join(
            line if line.endswith("\n") else line.rstrip() + "\r\n"
            for line in lines
            if line
        )
        if not payload:
            return self.client_count
        data = payload.encode("ascii", errors="replace")
        with self._lock:
            alive = []
            for c in self._clients:
                try:
                    c.sendall(data)
                    alive.append(c)
                except OSError:
                    try:
                        c.close()
                    except OSError:
                        pass
            dropped = len(self._clients) - len(alive)
            self._clients = alive
        if dropped:
            logger.info("Dropped %d heading client(s)", dropped)
        return len(alive)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def get_socket(self) -> Optional[socket.socket]:
        """Return the server socket for select()."""
        return self._sock
