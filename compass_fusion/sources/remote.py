"""
Remote sample source: TCP server accepting JSON lines from a phone or any
other client, pushing each sample and location update into the pipeline as
it arrives (see sources.messages for the format).
"""

import logging
import socket
import threading
from typing import Callable, Optional

from compass_fusion.samples import GeoCoordinate, RawSample
from compass_fusion.sources.messages import parse_line

logger = logging.getLogger(__name__)

SampleHandler = Callable[[RawSample], object]
LocationHandler = Callable[[GeoCoordinate], object]


class RemoteSource:
    """
    Listener thread that forwards decoded messages to handlers.

    Start the server with start(); on_sample and on_location are invoked on
    the listener thread for every decoded line.
    """

    def __init__(
        self,
        on_sample: SampleHandler,
        on_location: Optional[LocationHandler] = None,
        host: str = "0.0.0.0",
        port: int = 2949,
    ) -> None:
        self._on_sample = on_sample
        self._on_location = on_location
        self._host = host
        self._port = port
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown = False
        self.samples_received = 0
        self.locations_received = 0

    def start(self) -> bool:
        """Bind and start the listener thread. Return True on success."""
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.bind((self._host, self._port))
            self._sock.listen(1)
            self._sock.settimeout(1.0)
            self._thread = threading.Thread(target=self._accept_loop, daemon=True)
            self._thread.start()
            logger.info("Remote source listening on %s:%s", self._host, self._port)
            return True
        except OSError as e:
            logger.error("Remote source bind failed: %s", e)
            return False

    def stop(self) -> None:
        """Stop the listener and close the socket."""
        self._shutdown = True
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _accept_loop(self) -> None:
        while not self._shutdown and self._sock:
            try:
                client, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if not self._shutdown:
                    logger.debug("Remote accept error")
                break
            logger.info("Remote client connected from %s", addr)
            try:
                client.settimeout(5.0)
                with client.makefile(mode="r", encoding="utf-8", errors="replace") as f:
                    for line in f:
                        if self._shutdown:
                            break
                        try:
                            self._parse_line(line)
                        except Exception:
                            logger.exception("Remote line dropped")
            except (ConnectionResetError, BrokenPipeError, socket.timeout) as e:
                logger.debug("Remote client error: %s", e)
            finally:
                try:
                    client.close()
                except OSError:
                    pass
                logger.info("Remote client disconnected")

    def _parse_line(self, line: str) -> None:
        sample, location = parse_line(line)
        if location is not None and self._on_location is not None:
            self.locations_received += 1
            self._on_location(location)
        if sample is not None:
            self.samples_received += 1
            self._on_sample(sample)


def create_remote_source(
    on_sample: SampleHandler,
    on_location: Optional[LocationHandler],
    host: str,
    port: int,
) -> Optional[RemoteSource]:
    """Create and start the remote source. Returns None on bind failure."""
    source = RemoteSource(on_sample, on_location, host=host, port=port)
    if source.start():
        return source
    return None
