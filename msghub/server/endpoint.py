"""연결 하나에 대한 reader/writer 스레드."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Tuple

from ..protocol import EXIT, JsonLineFramer, Message, ProtocolError
from .queues import DEFAULT_OUTBOUND_SIZE, OutboundQueue, RequestQueue

LOGGER = logging.getLogger(__name__)

RECV_BYTES = 4096
DRAIN_TIMEOUT = 1.0


class StreamEndpoint:
    """스트림 연결 상태.

    reader는 프레임을 요청 큐에 넣고, writer는 송신 큐를 소켓으로 비운다.
    연결이 끊기면 마지막으로 본 식별자로 exit 요청을 대신 넣는다.
    """

    def __init__(
        self,
        sock: socket.socket,
        addr: Tuple[str, int],
        requests: RequestQueue,
        *,
        outbound_size: int = DEFAULT_OUTBOUND_SIZE,
    ) -> None:
        self.socket = sock
        self.addr = addr
        self.requests = requests
        self.outbound = OutboundQueue(outbound_size)
        self.last_seen_id = ""
        self.alive = True
        self._close_lock = threading.Lock()
        self._writer_thread = threading.Thread(
            target=self._writer_loop, name=f"writer-{addr}", daemon=True
        )

    def serve(self) -> None:
        """reader 루프를 현재 스레드에서 돌리고 끝나면 연결을 정리한다."""
        LOGGER.info("client connection established: %s", self.addr)
        self._writer_thread.start()
        try:
            self._reader_loop()
        finally:
            # 처리기가 exit를 처리하면서 송신 큐를 닫으므로 writer는 남은 응답을 다 보내고 끝난다
            self.requests.submit(
                Message(type=EXIT, target_uuid=self.last_seen_id), self.outbound, closing=True
            )
            self._writer_thread.join(timeout=DRAIN_TIMEOUT)
            self.outbound.close()
            self.close()
            LOGGER.info("client connection dropped: %s", self.addr)

    def _reader_loop(self) -> None:
        framer = JsonLineFramer()
        while self.alive:
            try:
                chunk = self.socket.recv(RECV_BYTES)
            except OSError as exc:
                LOGGER.debug("read failed (%s): %s", self.addr, exc)
                return
            if not chunk:
                return
            try:
                messages = framer.feed(chunk)
            except ProtocolError as exc:
                LOGGER.warning("framing failed (%s): %s", self.addr, exc)
                return
            for message in messages:
                if message.target_uuid:
                    self.last_seen_id = message.target_uuid
                self.requests.submit(message, self.outbound)

    def _writer_loop(self) -> None:
        while True:
            frame = self.outbound.get()
            if frame is None:
                return
            try:
                self.socket.sendall(frame)
            except OSError as exc:
                LOGGER.warning("error responding to client %s: %s", self.addr, exc)
                self.outbound.close()
                return

    def close(self) -> None:
        with self._close_lock:
            if not self.alive:
                return
            self.alive = False
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        finally:
            try:
                self.socket.close()
            except OSError:
                pass


__all__ = [
    "StreamEndpoint",
]
