"""허브와의 TCP 연결 및 클라이언트 동작."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional

from ..protocol import (
    CREATE,
    DESTROY,
    ERR_NO_NAME,
    JOIN,
    LEAVE,
    LIST,
    NEW_MSG,
    SET_NAME,
    JsonLineFramer,
    Message,
    ProtocolError,
    encode_message,
    timestamp,
)

LOGGER = logging.getLogger(__name__)

MessageCallback = Callable[[Message], None]
CloseCallback = Callable[[], None]


class HubConnection:
    """허브 소켓 하나와 수신 스레드."""

    def __init__(
        self,
        on_message: MessageCallback,
        on_close: Optional[CloseCallback] = None,
    ) -> None:
        self._on_message = on_message
        self._on_close = on_close
        self._sock: Optional[socket.socket] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._writer_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._alive = False

    @property
    def connected(self) -> bool:
        return self._alive

    def connect(self, host: str, port: int, timeout: float = 5.0) -> None:
        """연결하고 수신 스레드를 시작. 실패하면 OSError."""
        if self._alive:
            raise ConnectionError("already connected")
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.settimeout(None)
        self.attach(sock)

    def attach(self, sock: socket.socket) -> None:
        """이미 연결된 소켓을 사용한다."""
        self._sock = sock
        self._alive = True
        self._reader_thread = threading.Thread(target=self._reader_loop, name="hub-reader", daemon=True)
        self._reader_thread.start()

    def _reader_loop(self) -> None:
        framer = JsonLineFramer()
        try:
            while self._alive and self._sock:
                chunk = self._sock.recv(4096)
                if not chunk:
                    break
                for message in framer.feed(chunk):
                    self._on_message(message)
        except (OSError, ProtocolError) as exc:
            if self._alive:
                LOGGER.warning("reader error: %s", exc)
        finally:
            self.close()

    def send(self, message: Message) -> None:
        sock = self._sock
        if not self._alive or sock is None:
            raise ConnectionError("not connected")
        data = encode_message(message)
        with self._writer_lock:
            try:
                sock.sendall(data)
            except OSError as exc:
                raise ConnectionError("send failed") from exc

    def close(self) -> None:
        with self._close_lock:
            if not self._alive:
                return
            self._alive = False
            sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass
        if self._on_close is not None:
            self._on_close()


class ChatClient:
    """식별자와 표시 이름을 가진 허브 클라이언트.

    모든 요청에 TargetUUID와 DateTime을 채워 보낸다. 허브가 이름이 없다고
    답하면(스냅샷 유실 등) 연결마다 한 번 set_name을 다시 보낸다.
    """

    def __init__(
        self,
        name: str,
        client_id: str,
        *,
        on_event: MessageCallback,
        on_close: Optional[CloseCallback] = None,
        connection: Optional[HubConnection] = None,
    ) -> None:
        self.name = name
        self.client_id = client_id
        self._on_event = on_event
        self.connection = connection or HubConnection(self._handle_message, on_close)
        self._renamed = False

    def connect(self, host: str, port: int, *, announce: bool = False) -> None:
        self.connection.connect(host, port)
        self._renamed = False
        if announce:
            self.set_name()

    def _handle_message(self, message: Message) -> None:
        if message.error == ERR_NO_NAME and not self._renamed:
            self._renamed = True
            LOGGER.info("hub does not know this client ID, sending name again")
            try:
                self.set_name()
            except ConnectionError as exc:
                LOGGER.warning("cannot resend name: %s", exc)
        self._on_event(message)

    def request(self, kind: str, room: str = "", text: str = "") -> Message:
        message = Message(
            type=kind,
            target_uuid=self.client_id,
            room=room,
            text=text,
            date_time=timestamp(),
        )
        self.connection.send(message)
        return message

    def set_name(self, name: Optional[str] = None) -> None:
        if name is not None:
            self.name = name
        self.request(SET_NAME, text=self.name)

    def list_rooms(self) -> None:
        self.request(LIST)

    def create_room(self, room: str) -> None:
        self.request(CREATE, room=room)

    def destroy_room(self, room: str) -> None:
        self.request(DESTROY, room=room)

    def join_room(self, room: str) -> None:
        self.request(JOIN, room=room)

    def leave_room(self, room: str) -> None:
        self.request(LEAVE, room=room)

    def send_message(self, room: str, text: str) -> None:
        self.request(NEW_MSG, room=room, text=text)

    def close(self) -> None:
        self.connection.close()


__all__ = [
    "ChatClient",
    "HubConnection",
]
