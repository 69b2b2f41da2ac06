"""
msghub 클라이언트 패키지.

- identity: 식별자 파일 읽기/생성
- connection: 허브 연결 및 고수준 동작
- commands: 콘솔 명령 파싱 / 이벤트 표시 형식
- console: 터미널 클라이언트 진입점
- app: PyQt5 데스크톱 클라이언트
"""

__all__ = [
    "app",
    "commands",
    "connection",
    "console",
    "identity",
]
