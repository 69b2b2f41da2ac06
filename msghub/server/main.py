"""msghub 허브 TCP/UDP 진입점."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .listener import TcpListener, UdpListener
from .processor import SEED_ROOMS, RequestProcessor
from .queues import DEFAULT_OUTBOUND_SIZE

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="msghub - multi-room chat hub")
    parser.add_argument("--host", default="localhost", help="서버 바인드 호스트 (default: localhost)")
    parser.add_argument("--port", type=int, default=8000, help="서버 포트 (default: 8000)")
    parser.add_argument("--backlog", type=int, default=128, help="listen backlog 크기")
    parser.add_argument(
        "--snapshot-path",
        type=Path,
        default=Path.cwd() / "data" / "users.json",
        help="사용자 스냅샷 파일 경로",
    )
    parser.add_argument(
        "--snapshot-interval", type=int, default=0, help="스냅샷 저장 주기(요청 수, 0이면 종료 시에만)"
    )
    parser.add_argument(
        "--outbound-size", type=int, default=DEFAULT_OUTBOUND_SIZE, help="연결별 송신 큐 크기"
    )
    parser.add_argument("--no-seed-rooms", action="store_true", help="room_1/room_2 기본 방 생성 안 함")
    parser.add_argument("--enforce-owner", action="store_true", help="방 생성자만 destroy 허용")
    parser.add_argument("--udp", action="store_true", help="같은 포트로 UDP 요청도 받기")
    parser.add_argument("--log-level", default="INFO", help="로그 레벨 (DEBUG/INFO/...)")
    return parser.parse_args(argv)


def console_loop(stop_event: threading.Event) -> None:
    """표준 입력에서 'exit'를 받으면 서버를 멈춘다."""
    for line in sys.stdin:
        if line.strip() == "exit":
            LOGGER.info("console exit requested")
            stop_event.set()
            return


def run_server(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    processor = RequestProcessor(
        snapshot_path=args.snapshot_path,
        snapshot_interval=args.snapshot_interval,
        seed_rooms=() if args.no_seed_rooms else SEED_ROOMS,
        enforce_owner=args.enforce_owner,
    )
    listeners: List[Union[TcpListener, UdpListener]] = []
    tcp = TcpListener(
        args.host,
        args.port,
        processor.requests,
        backlog=args.backlog,
        outbound_size=args.outbound_size,
    )
    udp = UdpListener(args.host, args.port, processor.requests) if args.udp else None
    # 처리기를 띄우기 전에 바인드한다. 실패하면 스냅샷은 읽지도 쓰지도 않는다
    try:
        tcp.bind()
        if udp is not None:
            udp.bind()
    except OSError as exc:
        LOGGER.error("cannot create a listener on %s:%s: %s", args.host, args.port, exc)
        tcp.stop()
        return 1

    processor.load_snapshot()
    processor_thread = threading.Thread(target=processor.run, name="processor")
    processor_thread.start()

    tcp.start()
    listeners.append(tcp)
    if udp is not None:
        udp.start()
        listeners.append(udp)

    stop_event = threading.Event()
    previous_handler = signal.signal(signal.SIGTERM, lambda signum, frame: stop_event.set())
    threading.Thread(target=console_loop, args=(stop_event,), name="console", daemon=True).start()

    try:
        while not stop_event.wait(0.5):
            pass
    except KeyboardInterrupt:
        LOGGER.info("KeyboardInterrupt → shutting down")
    finally:
        for listener in listeners:
            listener.stop()
        processor.stop()
        processor_thread.join()
        signal.signal(signal.SIGTERM, previous_handler)
    return 0


def main() -> None:
    args = parse_args()
    sys.exit(run_server(args))


if __name__ == "__main__":
    main()
