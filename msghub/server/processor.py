"""요청 처리기: 사용자/방 상태의 단일 소유자."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from ..protocol import (
    CREATE,
    DESTROY,
    ERR_ALREADY_SUBSCRIBED,
    ERR_NO_NAME,
    ERR_NO_ROOM,
    ERR_NOT_OWNER,
    ERR_NOT_SUBSCRIBED,
    ERR_ROOM_EXISTS,
    ERR_UNKNOWN_TYPE,
    EXIT,
    JOIN,
    LEAVE,
    LIST,
    NEW_MSG,
    SET_NAME,
    Message,
    ProtocolError,
    encode_message,
    timestamp,
)
from .persist import load_users, save_users
from .queues import Request, RequestQueue
from .registry import Room, User

LOGGER = logging.getLogger(__name__)

SEED_ROOMS = ("room_1", "room_2")
SEED_CREATOR = "admin"


class RequestProcessor:
    """요청 큐의 유일한 소비자.

    users/rooms는 run()을 돌리는 스레드에서만 변경된다. 다른 스레드는
    requests 큐에 요청을 넣고 송신 큐로 결과를 받는다.
    """

    def __init__(
        self,
        *,
        snapshot_path: Optional[Path] = None,
        snapshot_interval: int = 0,
        seed_rooms: Iterable[str] = SEED_ROOMS,
        enforce_owner: bool = False,
        clock: Callable[[], str] = timestamp,
    ) -> None:
        self.snapshot_path = snapshot_path
        self.snapshot_interval = max(0, snapshot_interval)
        self.enforce_owner = enforce_owner
        self.requests = RequestQueue()
        self.users: Dict[str, User] = {}
        self.rooms: Dict[str, Room] = {}
        self.processed = 0
        self._clock = clock
        for name in seed_rooms:
            self.rooms[name] = Room(name, SEED_CREATOR)

    # ---------- 스냅샷 ----------
    def load_snapshot(self) -> None:
        if self.snapshot_path is None:
            return
        users = load_users(self.snapshot_path)
        # 재시작을 넘어 살아남는 연결은 없다
        for user in users.values():
            user.online = False
        self.users.update(users)

    def save_snapshot(self) -> None:
        if self.snapshot_path is None:
            return
        try:
            save_users(self.users, self.snapshot_path)
        except (OSError, ValueError) as exc:
            LOGGER.warning("snapshot save failed (%s): %s", self.snapshot_path, exc)

    # ---------- 루프 ----------
    def run(self) -> None:
        """close() 표식이 올 때까지 요청을 하나씩 처리하고 스냅샷을 저장한다."""
        LOGGER.info("request processor started")
        while True:
            request = self.requests.get()
            if request is None:
                break
            try:
                self.process(request)
            except Exception:
                LOGGER.exception("process failed: type=%r", request.message.type)
            self.processed += 1
            if self.snapshot_interval and self.processed % self.snapshot_interval == 0:
                self.save_snapshot()
        self.save_snapshot()
        LOGGER.info("request processor stopped after %d requests", self.processed)

    def stop(self) -> None:
        self.requests.close()

    # ---------- 라우팅 ----------
    def process(self, request: Request) -> None:
        message = request.message
        response = Message(type=message.type, room=message.room, date_time=self._clock())

        if message.type == EXIT:
            try:
                self._handle_exit(request, response)
            finally:
                # 연결의 마지막 요청: 앞서 쌓인 응답을 writer가 다 보낸 뒤 끝나게 한다
                if request.closing and request.outbound is not None:
                    request.outbound.close()
            return

        user = self.users.get(message.target_uuid)
        if user is not None:
            user.outbound = request.outbound
            user.online = True
            response.username = user.name
        elif message.type != SET_NAME:
            response.error = ERR_NO_NAME
            self._reply(request, response)
            return

        kind = message.type
        if kind == SET_NAME:
            self._handle_set_name(request, response)
        elif kind == LIST:
            self._handle_list(request, response)
        elif kind == CREATE:
            self._handle_create(request, response)
        elif kind == DESTROY:
            self._handle_destroy(request, response)
        elif kind == JOIN:
            self._handle_join(request, response)
        elif kind == LEAVE:
            self._handle_leave(request, response)
        elif kind == NEW_MSG:
            self._handle_new_msg(request, response)
        else:
            response.error = ERR_UNKNOWN_TYPE
            self._reply(request, response)

    def _handle_set_name(self, request: Request, response: Message) -> None:
        message = request.message
        self.users[message.target_uuid] = User(
            name=message.text, online=True, outbound=request.outbound
        )
        LOGGER.info("user with UUID '%s' set their name to '%s'", message.target_uuid, message.text)
        response.username = message.text
        response.text = f"user name successfully set to '{message.text}'"
        self._reply(request, response)

    def _handle_list(self, request: Request, response: Message) -> None:
        response.text = ", ".join(self.rooms)
        self._reply(request, response)

    def _handle_create(self, request: Request, response: Message) -> None:
        message = request.message
        if message.room in self.rooms:
            response.error = ERR_ROOM_EXISTS
        else:
            self.rooms[message.room] = Room(message.room, message.target_uuid)
            LOGGER.info("room '%s' created by '%s'", message.room, message.target_uuid)
            response.text = f"room '{message.room}' successfully created"
        self._reply(request, response)

    def _handle_destroy(self, request: Request, response: Message) -> None:
        message = request.message
        room = self.rooms.get(message.room)
        if room is None:
            response.error = ERR_NO_ROOM
            self._reply(request, response)
            return
        if self.enforce_owner and room.creator != message.target_uuid:
            response.error = ERR_NOT_OWNER
            self._reply(request, response)
            return

        response.text = f"room '{room.name}' destroyed by '{response.username}'"
        self._broadcast(room, response)
        if not room.is_subscribed(message.target_uuid):
            self._reply(request, response)
        del self.rooms[room.name]
        LOGGER.info("room '%s' destroyed by '%s'", room.name, message.target_uuid)

    def _handle_join(self, request: Request, response: Message) -> None:
        message = request.message
        room = self.rooms.get(message.room)
        if room is None:
            response.error = ERR_NO_ROOM
        elif room.is_subscribed(message.target_uuid):
            response.error = ERR_ALREADY_SUBSCRIBED
        else:
            room.add_user(message.target_uuid)
            response.text = f"user '{response.username}' added to the '{room.name}' room"
            room.append(response)
            self._broadcast(room, response)
            return
        self._reply(request, response)

    def _handle_leave(self, request: Request, response: Message) -> None:
        message = request.message
        room = self._subscribed_room(request, response)
        if room is None:
            self._reply(request, response)
            return
        response.text = f"user '{response.username}' removed from the '{room.name}' room"
        room.append(response)
        # 떠나는 사용자도 이벤트를 받도록 제거 전에 보낸다
        self._broadcast(room, response)
        room.remove_user(message.target_uuid)

    def _handle_new_msg(self, request: Request, response: Message) -> None:
        room = self._subscribed_room(request, response)
        if room is None:
            self._reply(request, response)
            return
        response.text = request.message.text
        room.append(response)
        self._broadcast(room, response)

    def _handle_exit(self, request: Request, response: Message) -> None:
        user_id = request.message.target_uuid
        user = self.users.get(user_id)
        if user is None:
            LOGGER.debug("exit for unknown client ID %r ignored", user_id)
            return

        # 다른 연결로 이미 옮겨 간 사용자라면 현재 연결은 건드리지 않는다
        if request.outbound is None or user.outbound is request.outbound:
            user.outbound = None
            user.online = False

        for room in list(self.rooms.values()):
            if not room.is_subscribed(user_id):
                continue
            room.remove_user(user_id)
            event = dataclasses.replace(
                response,
                type=LEAVE,
                room=room.name,
                username=user.name,
                text=f"user '{user.name}' removed from the '{room.name}' room",
            )
            room.append(event)
            self._broadcast(room, event)
        LOGGER.info("user '%s' (%s) disconnected", user.name, user_id)

    # ---------- 헬퍼 ----------
    def _subscribed_room(self, request: Request, response: Message) -> Optional[Room]:
        message = request.message
        room = self.rooms.get(message.room)
        if room is None:
            response.error = ERR_NO_ROOM
            return None
        if not room.is_subscribed(message.target_uuid):
            response.error = ERR_NOT_SUBSCRIBED
            return None
        return room

    def _reply(self, request: Request, response: Message) -> None:
        if request.outbound is None:
            return
        try:
            frame = encode_message(response)
        except ProtocolError as exc:
            LOGGER.error("protocol encode failed: %s", exc)
            return
        if not request.outbound.offer(frame):
            LOGGER.debug("response dropped: type=%r", response.type)

    def _broadcast(self, room: Room, event: Message) -> None:
        try:
            frame = encode_message(event)
        except ProtocolError as exc:
            LOGGER.error("protocol encode failed: %s", exc)
            return
        for user_id in list(room.subscribers):
            user = self.users.get(user_id)
            outbound = user.outbound if user else None
            if outbound is None or not outbound.offer(frame):
                LOGGER.debug("broadcast dropped: room=%s user=%s", room.name, user_id)


__all__ = [
    "RequestProcessor",
    "SEED_CREATOR",
    "SEED_ROOMS",
]
