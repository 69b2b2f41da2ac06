"""msghub 터미널 클라이언트 진입점."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence, TextIO

from ..protocol import EXIT, Message
from .commands import HELP, HELP_TEXT, CommandError, format_event, parse_command
from .connection import ChatClient
from .identity import identity_path, load_or_create_identity


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="msghub - console chat client")
    parser.add_argument("--host", default="localhost", help="허브 호스트 (default: localhost)")
    parser.add_argument("--port", type=int, default=8000, help="허브 포트 (default: 8000)")
    parser.add_argument("--name", help="사용자 이름 (없으면 입력받음)")
    parser.add_argument(
        "--data-dir", type=Path, default=Path.cwd() / "data", help="식별자 파일 디렉터리"
    )
    parser.add_argument("--log-level", default="WARNING", help="로그 레벨 (DEBUG/INFO/...)")
    return parser.parse_args(argv)


def command_loop(client: ChatClient, stdin: TextIO, stdout: TextIO, closed: threading.Event) -> None:
    """입력이 끝나거나 exit/연결 종료까지 콘솔 명령을 허브로 보낸다."""
    while not closed.is_set():
        line = stdin.readline()
        if not line:
            return
        try:
            parsed = parse_command(line)
        except CommandError as exc:
            print(f"> {exc}", file=stdout, flush=True)
            continue
        if parsed is None:
            continue
        kind, room, text = parsed
        if kind == EXIT:
            return
        if kind == HELP:
            print(HELP_TEXT, file=stdout, flush=True)
            continue
        try:
            client.request(kind, room=room, text=text)
        except ConnectionError as exc:
            print(f"> {exc}", file=stdout, flush=True)
            return


def run_client(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    name = args.name
    while not name:
        print("> Enter new or previously used user name:", flush=True)
        line = sys.stdin.readline()
        if not line:
            return 1
        name = line.strip()

    try:
        client_id, created = load_or_create_identity(identity_path(args.data_dir, name))
    except OSError as exc:
        print(f"> Could not locate existing or generate new client ID: {exc}", file=sys.stderr)
        return 1

    closed = threading.Event()

    def on_event(message: Message) -> None:
        print(format_event(message, client.name), flush=True)

    def on_close() -> None:
        if not closed.is_set():
            print("> Server closed connection.", flush=True)
        closed.set()

    client = ChatClient(name, client_id, on_event=on_event, on_close=on_close)
    try:
        client.connect(args.host, args.port, announce=created)
        client.list_rooms()
    except OSError as exc:
        print(f"> Cannot connect to {args.host}:{args.port}: {exc}", file=sys.stderr)
        return 1

    try:
        command_loop(client, sys.stdin, sys.stdout, closed)
    except KeyboardInterrupt:
        pass
    finally:
        closed.set()
        client.close()
    return 0


def main() -> None:
    args = parse_args()
    sys.exit(run_client(args))


if __name__ == "__main__":
    main()
