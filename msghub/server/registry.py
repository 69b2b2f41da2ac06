"""사용자/방 레코드."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..protocol import Message
from .queues import OutboundQueue


@dataclass
class User:
    """식별자 하나에 대한 허브의 사용자 상태.

    outbound는 마지막으로 요청을 실어 온 연결의 송신 큐를 가리킬 뿐 소유하지 않는다.
    """

    name: str
    online: bool = False
    outbound: Optional[OutboundQueue] = field(default=None, repr=False, compare=False)

    def snapshot_payload(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "online": self.online,
        }


@dataclass
class Room:
    """단일 방의 생성자/구독자/메시지 로그."""

    name: str
    creator: str
    subscribers: set[str] = field(default_factory=set)
    messages: List[Message] = field(default_factory=list, repr=False)

    def add_user(self, user_id: str) -> None:
        self.subscribers.add(user_id)

    def remove_user(self, user_id: str) -> None:
        self.subscribers.discard(user_id)

    def is_subscribed(self, user_id: str) -> bool:
        return user_id in self.subscribers

    def append(self, message: Message) -> None:
        self.messages.append(message)


__all__ = [
    "Room",
    "User",
]
