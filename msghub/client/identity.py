"""클라이언트 식별자 파일 관리."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional, Tuple

LOGGER = logging.getLogger(__name__)


def identity_path(data_dir: Path, name: str) -> Path:
    safe = "".join(c for c in name if c.isalnum() or c in ("-", "_")) or "client"
    return data_dir / f"{safe}.dat"


def load_identity(path: Path) -> Optional[str]:
    try:
        client_id = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        LOGGER.warning("cannot read identity file %s: %s", path, exc)
        return None
    return client_id or None


def create_identity(path: Path) -> str:
    """새 식별자(uuid4 표준 문자열)를 만들어 파일에 저장."""
    client_id = str(uuid.uuid4())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(client_id, encoding="utf-8")
    LOGGER.info("generated new client ID in %s", path)
    return client_id


def load_or_create_identity(path: Path) -> Tuple[str, bool]:
    """(식별자, 새로 만들었는지) 반환."""
    client_id = load_identity(path)
    if client_id is not None:
        return client_id, False
    return create_identity(path), True


__all__ = [
    "create_identity",
    "identity_path",
    "load_identity",
    "load_or_create_identity",
]
