"""JSON line 기반 프로토콜 유틸리티."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

LOGGER = logging.getLogger(__name__)

MAX_MESSAGE_BYTES = 1_000_000  # 1MB 제한 (오용 방지)

# 명령/이벤트 타입
SET_NAME = "set_name"
LIST = "list"
CREATE = "create"
DESTROY = "destroy"
JOIN = "join"
LEAVE = "leave"
NEW_MSG = "new_msg"
EXIT = "exit"

COMMAND_TYPES = (SET_NAME, LIST, CREATE, DESTROY, JOIN, LEAVE, NEW_MSG, EXIT)

# 응답 Error 필드 문자열 (클라이언트도 비교에 사용)
ERR_NO_NAME = "no name is associated with client ID - set a user name first"
ERR_ROOM_EXISTS = "a room by that name already exists"
ERR_NO_ROOM = "specified room does not exist"
ERR_ALREADY_SUBSCRIBED = "user is already subscribed to this room"
ERR_NOT_SUBSCRIBED = "user is not subscribed to this room."
ERR_UNKNOWN_TYPE = "request type not recognised"
ERR_NOT_OWNER = "only the room creator can destroy this room"

# 와이어 필드명 (직렬화 순서 그대로)
_WIRE_FIELDS = (
    ("text", "Text"),
    ("type", "Type"),
    ("room", "Room"),
    ("date_time", "DateTime"),
    ("target_uuid", "TargetUUID"),
    ("error", "Error"),
    ("username", "Username"),
)


class ProtocolError(Exception):
    """프레이밍/파싱 중 발생하는 예외."""


@dataclass
class Message:
    """요청과 응답/이벤트에 공통으로 쓰이는 레코드."""

    type: str = ""
    target_uuid: str = ""
    room: str = ""
    text: str = ""
    date_time: str = ""
    username: str = ""
    error: str = ""

    def to_wire(self) -> Dict[str, str]:
        return {wire: getattr(self, attr) for attr, wire in _WIRE_FIELDS}

    @classmethod
    def from_wire(cls, obj: Dict[str, Any]) -> "Message":
        values: Dict[str, str] = {}
        for attr, wire in _WIRE_FIELDS:
            value = obj.get(wire)
            values[attr] = "" if value is None else _wire_text(wire, value)
        return cls(**values)

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


def _wire_text(wire: str, value: Any) -> str:
    """필드 값을 문자열로. UTF-8로 인코딩할 수 없는 값(짝 없는 서로게이트)은 버린다."""
    text = str(value)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        LOGGER.debug("dropping unencodable %s field", wire)
        return ""
    return text


def timestamp(now: Optional[datetime] = None) -> str:
    """서버 표시용 시각 문자열 (일자는 공백 패딩)."""
    now = now or datetime.now()
    return f"{now.day:>2}/{now:%m/%y %H:%M}"


class JsonLineFramer:
    """TCP 스트림을 JSON line 단위로 분리하는 헬퍼."""

    def __init__(self, *, max_message_bytes: int = MAX_MESSAGE_BYTES) -> None:
        self._buffer = bytearray()
        self._max_message_bytes = max_message_bytes

    def feed(self, chunk: bytes) -> List[Message]:
        """새로운 바이트 청크를 넣고 완성된 메시지들을 반환."""
        if not chunk:
            return []
        self._buffer.extend(chunk)

        messages: List[Message] = []
        while True:
            newline_index = self._buffer.find(b"\n")
            if newline_index == -1:
                break
            line = bytes(self._buffer[:newline_index])
            del self._buffer[: newline_index + 1]
            line = line.strip()
            if not line:
                continue
            messages.append(decode_frame(line))
        if len(self._buffer) > self._max_message_bytes:
            raise ProtocolError("message exceeds max size")
        return messages

    def flush(self) -> None:
        """버퍼 초기화."""
        self._buffer.clear()


def parse_json_line(line: Union[bytes, str]) -> Dict[str, Any]:
    """단일 JSON line을 dict로 파싱."""
    try:
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        obj = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"bad json: {exc}") from exc
    except RecursionError as exc:
        raise ProtocolError("json nested too deeply") from exc
    if not isinstance(obj, dict):
        raise ProtocolError("message must be object")
    return obj


def decode_frame(line: Union[bytes, str]) -> Message:
    """프레임 하나를 Message로 변환. 파싱 실패 시 빈 레코드."""
    try:
        obj = parse_json_line(line)
    except ProtocolError as exc:
        LOGGER.debug("undecodable frame: %s", exc)
        return Message()
    return Message.from_wire(obj)


def encode_message(message: Message) -> bytes:
    """Message를 JSON line 바이트로 직렬화."""
    try:
        payload = json.dumps(message.to_wire(), separators=(",", ":"), ensure_ascii=False)
        return (payload + "\n").encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"cannot encode message: {exc}") from exc


__all__ = [
    "COMMAND_TYPES",
    "JsonLineFramer",
    "Message",
    "ProtocolError",
    "decode_frame",
    "encode_message",
    "parse_json_line",
    "timestamp",
]
