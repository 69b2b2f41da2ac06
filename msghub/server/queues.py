"""요청 큐와 연결별 송신 큐."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Optional

from ..protocol import Message

DEFAULT_OUTBOUND_SIZE = 256

_CLOSED = object()


class OutboundQueue:
    """연결 하나의 송신 프레임 FIFO.

    처리기는 offer()로 절대 블록되지 않고, writer 스레드만 get()에서 대기한다.
    close() 이후의 offer는 버려지고, 이미 들어온 프레임은 get()으로 모두 꺼낸 뒤에 None이 나온다.
    """

    def __init__(self, maxsize: int = DEFAULT_OUTBOUND_SIZE) -> None:
        # 종료 표식 자리를 하나 남겨 둔다
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize + 1)
        self._maxsize = maxsize
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, frame: bytes) -> bool:
        """프레임을 넣는다. 가득 찼거나 닫혀 있으면 False."""
        with self._lock:
            if self._closed or self._queue.qsize() >= self._maxsize:
                return False
            self._queue.put_nowait(frame)
        return True

    def get(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """다음 프레임. 닫혔으면 None, 시간 초과 시 queue.Empty."""
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # 다른 대기자도 종료를 볼 수 있게 되돌려 둔다
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __len__(self) -> int:
        return self._queue.qsize()


@dataclass
class Request:
    """처리기에 전달되는 요청과 응답을 돌려보낼 송신 큐."""

    message: Message
    outbound: Optional[OutboundQueue] = None
    # 연결의 마지막 요청이면 처리 후 송신 큐를 닫는다
    closing: bool = False


class RequestQueue:
    """여러 엔드포인트가 넣고 처리기 하나만 꺼내는 FIFO."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[Optional[Request]]" = queue.Queue()

    def submit(
        self,
        message: Message,
        outbound: Optional[OutboundQueue] = None,
        *,
        closing: bool = False,
    ) -> None:
        self._queue.put(Request(message, outbound, closing))

    def get(self, timeout: Optional[float] = None) -> Optional[Request]:
        """다음 요청. close() 표식을 만나면 None."""
        return self._queue.get(timeout=timeout)

    def close(self) -> None:
        """이미 들어온 요청을 모두 처리한 뒤 처리기가 멈추도록 표식을 넣는다."""
        self._queue.put(None)

    def __len__(self) -> int:
        return self._queue.qsize()


__all__ = [
    "DEFAULT_OUTBOUND_SIZE",
    "OutboundQueue",
    "Request",
    "RequestQueue",
]
