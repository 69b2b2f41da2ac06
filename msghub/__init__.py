"""
msghub 패키지 초기화 모듈.

구성 요소는 다음 하위 모듈에 정리되어 있다.
- protocol: JSON line 기반 프레이밍/직렬화 (허브와 클라이언트가 공유)
- server: 요청 처리기, 연결 엔드포인트, 리스너, 스냅샷 영속화
- client: 식별자 파일, 허브 연결, 콘솔/PyQt5 클라이언트
"""

__version__ = "0.1.0"

__all__ = [
    "client",
    "protocol",
    "server",
]
