"""콘솔 명령 파싱과 이벤트 표시 형식."""

from __future__ import annotations

from typing import Optional, Tuple

from ..protocol import CREATE, DESTROY, EXIT, JOIN, LEAVE, LIST, NEW_MSG, SET_NAME, Message

HELP_TEXT = """commands:
  list                 list chat rooms
  create <room>        create a room
  destroy <room>       destroy a room
  join <room>          join a room
  leave <room>         leave a room
  <room> <text...>     send a message to a room
  exit                 disconnect and quit"""

HELP = "help"

_ROOM_COMMANDS = (CREATE, DESTROY, JOIN, LEAVE)


class CommandError(ValueError):
    """콘솔 입력을 명령으로 바꿀 수 없을 때."""


def parse_command(line: str) -> Optional[Tuple[str, str, str]]:
    """콘솔 한 줄을 (Type, Room, Text)로 변환. 빈 줄이면 None."""
    line = line.strip()
    if not line:
        return None
    head, _, rest = line.partition(" ")
    rest = rest.strip()

    if head in (LIST, EXIT, HELP) and not rest:
        return head, "", ""
    if head in _ROOM_COMMANDS:
        if not rest or " " in rest:
            raise CommandError(f"usage: {head} <room>")
        return head, rest, ""
    if not rest:
        raise CommandError(f"unknown command {head!r} (type 'help')")
    return NEW_MSG, head, rest


def format_event(message: Message, own_name: str) -> str:
    """허브에서 받은 레코드를 표시용 문자열로."""
    if message.error:
        return f"> Request error: {message.error}"

    kind = message.type
    if kind in (SET_NAME, CREATE, DESTROY):
        return message.text
    if kind == LIST:
        if not message.text:
            return "No rooms available"
        return f"Available chat rooms: {message.text}"
    if kind == JOIN:
        note = "You have joined the room." if message.username == own_name else "Joined the room."
        return f"[{message.room}] {message.username}: {note}"
    if kind == LEAVE:
        note = "You are leaving the room." if message.username == own_name else "Left the room."
        return f"[{message.room}] {message.username}: {note}"
    if kind == NEW_MSG:
        return f"[{message.room}] {message.username}: {message.text}"
    return "> Request message type not recognised"


__all__ = [
    "CommandError",
    "HELP",
    "HELP_TEXT",
    "format_event",
    "parse_command",
]
