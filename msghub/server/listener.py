"""TCP/UDP 수신 루프."""

from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import Dict, Optional, Tuple

from ..protocol import decode_frame
from .endpoint import StreamEndpoint
from .queues import DEFAULT_OUTBOUND_SIZE, OutboundQueue, RequestQueue

LOGGER = logging.getLogger(__name__)

ACCEPT_TIMEOUT = 0.5
DATAGRAM_BYTES = 2048
DATAGRAM_REPLY_TIMEOUT = 2.0


class TcpListener:
    """스트림 연결을 받아 연결마다 StreamEndpoint 스레드를 띄운다."""

    def __init__(
        self,
        host: str,
        port: int,
        requests: RequestQueue,
        *,
        backlog: int = 128,
        outbound_size: int = DEFAULT_OUTBOUND_SIZE,
    ) -> None:
        self.host = host
        self.port = port
        self.requests = requests
        self.backlog = backlog
        self.outbound_size = outbound_size
        self.endpoints: Dict[StreamEndpoint, threading.Thread] = {}
        self._endpoints_lock = threading.Lock()
        self._sock: Optional[socket.socket] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        if self._sock is None:
            raise RuntimeError("listener is not bound")
        return self._sock.getsockname()[:2]

    def bind(self) -> Tuple[str, int]:
        """소켓을 바인드한다. 실패하면 OSError."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError:
            sock.close()
            raise
        sock.settimeout(ACCEPT_TIMEOUT)
        self._sock = sock
        LOGGER.info("starting TCP server on %s:%s", *self.address)
        return self.address

    def start(self) -> threading.Thread:
        if self._sock is None:
            self.bind()
        self._thread = threading.Thread(target=self._accept_loop, name="tcp-accept", daemon=True)
        self._thread.start()
        return self._thread

    def _accept_loop(self) -> None:
        assert self._sock is not None
        while not self._stop_event.is_set():
            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stop_event.is_set():
                    break
                LOGGER.warning("accept failed: %s", exc)
                continue
            conn.settimeout(None)
            conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            endpoint = StreamEndpoint(conn, addr, self.requests, outbound_size=self.outbound_size)
            thread = threading.Thread(
                target=self._serve_endpoint, args=(endpoint,), name=f"reader-{addr}", daemon=True
            )
            with self._endpoints_lock:
                self.endpoints[endpoint] = thread
            thread.start()

    def _serve_endpoint(self, endpoint: StreamEndpoint) -> None:
        try:
            endpoint.serve()
        finally:
            with self._endpoints_lock:
                self.endpoints.pop(endpoint, None)

    def stop(self) -> None:
        """더 이상 받지 않고 열린 연결을 모두 닫는다."""
        self._stop_event.set()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        with self._endpoints_lock:
            endpoints = list(self.endpoints.items())
        for endpoint, _ in endpoints:
            endpoint.close()
        # 끊긴 연결의 exit 요청이 처리기 종료 전에 큐에 들어가도록 기다린다
        for _, thread in endpoints:
            thread.join(timeout=1.0)


class UdpListener:
    """데이터그램 하나를 프레임 하나로 처리한다. 데이터그램 사이에 연결 상태는 없다."""

    def __init__(
        self,
        host: str,
        port: int,
        requests: RequestQueue,
        *,
        reply_timeout: float = DATAGRAM_REPLY_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.requests = requests
        self.reply_timeout = reply_timeout
        self._sock: Optional[socket.socket] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        if self._sock is None:
            raise RuntimeError("listener is not bound")
        return self._sock.getsockname()[:2]

    def bind(self) -> Tuple[str, int]:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(ACCEPT_TIMEOUT)
        self._sock = sock
        LOGGER.info("starting UDP server on %s:%s", *self.address)
        return self.address

    def start(self) -> threading.Thread:
        if self._sock is None:
            self.bind()
        self._thread = threading.Thread(target=self._recv_loop, name="udp-recv", daemon=True)
        self._thread.start()
        return self._thread

    def _recv_loop(self) -> None:
        assert self._sock is not None
        while not self._stop_event.is_set():
            try:
                data, addr = self._sock.recvfrom(DATAGRAM_BYTES)
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stop_event.is_set():
                    break
                LOGGER.warning("UDP read failed: %s", exc)
                continue
            threading.Thread(
                target=self._handle_datagram, args=(data, addr), name=f"udp-{addr}", daemon=True
            ).start()

    def _handle_datagram(self, data: bytes, addr: Tuple[str, int]) -> None:
        LOGGER.debug("UDP client request received: %s", addr)
        outbound = OutboundQueue()
        self.requests.submit(decode_frame(data.strip()), outbound)
        try:
            frame = outbound.get(timeout=self.reply_timeout)
        except queue.Empty:
            frame = None
        finally:
            outbound.close()
        if frame is None or self._sock is None:
            return
        try:
            self._sock.sendto(frame, addr)
        except OSError as exc:
            LOGGER.warning("couldn't send UDP response to %s: %s", addr, exc)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass


__all__ = [
    "TcpListener",
    "UdpListener",
]
