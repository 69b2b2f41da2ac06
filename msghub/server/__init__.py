"""
msghub 허브(서버) 패키지.

- queues: 요청 큐 / 연결별 송신 큐
- registry: 사용자/방 레코드
- processor: 단일 처리기 (상태 변경 및 브로드캐스트)
- endpoint: 연결별 reader/writer 스레드
- listener: TCP/UDP 수신 루프
- persist: 사용자 레지스트리 스냅샷
- main: 서버 진입점
"""

__all__ = [
    "endpoint",
    "listener",
    "main",
    "persist",
    "processor",
    "queues",
    "registry",
]
