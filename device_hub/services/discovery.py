from __future__ import annotations

import logging
import socket
import threading

from device_hub.exceptions import DiscoveryError

logger = logging.getLogger("device_hub.discovery")

DEFAULT_DISCOVERY_PORT = 8888
DISCOVERY_MESSAGE = "IOT_ATTENDANCE_DISCOVERY"
RESPONSE_MESSAGE = "IOT_ATTENDANCE_SERVER"


class DiscoveryResponder:
    """Answers LAN discovery probes so devices can find the backend address."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = DEFAULT_DISCOVERY_PORT,
        request_message: str = DISCOVERY_MESSAGE,
        response_message: str = RESPONSE_MESSAGE,
        poll_seconds: float = 0.5,
    ) -> None:
        self.host = host
        self.port = port
        self.request_message = request_message
        self.response_message = response_message
        self.poll_seconds = poll_seconds
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def bound_address(self) -> tuple[str, int] | None:
        if self._sock is None:
            return None
        return self._sock.getsockname()[:2]

    def handle_datagram(self, data: bytes, addr: tuple[str, int]) -> bytes | None:
        message = data.decode("utf-8", errors="replace").strip()
        if message != self.request_message:
            logger.debug("Ignoring discovery datagram from %s:%s: %r", addr[0], addr[1], message[:64])
            return None
        logger.info("Discovery request from %s:%s", addr[0], addr[1])
        return self.response_message.encode("utf-8")

    def start(self) -> None:
        if self.is_running:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as exc:
            sock.close()
            raise DiscoveryError(f"Cannot bind discovery socket on {self.host}:{self.port}: {exc}") from exc
        sock.settimeout(self.poll_seconds)
        self._sock = sock
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._serve, name="udp-discovery", daemon=True)
        self._thread.start()
        host, port = self.bound_address
        logger.info("UDP discovery responder listening on %s:%s", host, port)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        logger.info("UDP discovery responder stopped.")

    def _serve(self) -> None:
        sock = self._sock
        while not self._stop_event.is_set() and sock is not None:
            try:
                data, addr = sock.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError:
                if not self._stop_event.is_set():
                    logger.exception("Discovery socket receive failed")
                break

            reply = self.handle_datagram(data, addr)
            if reply is None:
                continue
            try:
                sock.sendto(reply, addr)
            except OSError:
                logger.exception("Failed to answer discovery request from %s:%s", addr[0], addr[1])
