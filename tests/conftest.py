"""공용 픽스처."""

from __future__ import annotations

from typing import Callable

import pytest

from msghub.protocol import Message
from msghub.server.processor import RequestProcessor
from msghub.server.queues import Request

from .helpers import FIXED_TIME


@pytest.fixture
def processor() -> RequestProcessor:
    return RequestProcessor(seed_rooms=(), clock=lambda: FIXED_TIME)


@pytest.fixture
def send(processor: RequestProcessor) -> Callable[..., None]:
    def _send(outbound, kind: str, user_id: str, room: str = "", text: str = "") -> None:
        message = Message(type=kind, target_uuid=user_id, room=room, text=text)
        processor.process(Request(message, outbound))

    return _send
