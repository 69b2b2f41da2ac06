"""테스트 헬퍼."""

from __future__ import annotations

import queue
import socket
from typing import List

from msghub.protocol import JsonLineFramer, Message, decode_frame
from msghub.server.queues import OutboundQueue

FIXED_TIME = " 1/01/26 12:00"


def drain(outbound: OutboundQueue) -> List[Message]:
    """큐에 쌓인 프레임을 모두 꺼내 디코드."""
    messages: List[Message] = []
    while True:
        try:
            frame = outbound.get(timeout=0)
        except queue.Empty:
            return messages
        if frame is None:
            return messages
        messages.append(decode_frame(frame))


class LineReader:
    """테스트용 소켓 수신기: 프레임을 하나씩 돌려준다."""

    def __init__(self, sock: socket.socket, timeout: float = 2.0) -> None:
        self.sock = sock
        self.sock.settimeout(timeout)
        self._framer = JsonLineFramer()
        self._pending: List[Message] = []

    def next(self) -> Message:
        while not self._pending:
            chunk = self.sock.recv(4096)
            if not chunk:
                raise EOFError("connection closed")
            self._pending.extend(self._framer.feed(chunk))
        return self._pending.pop(0)
