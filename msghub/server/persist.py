"""사용자 레지스트리 스냅샷 영속화 유틸."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Mapping

from .registry import User

LOGGER = logging.getLogger(__name__)


def save_users(users: Mapping[str, User], path: Path) -> None:
    """사용자 레지스트리를 스냅샷(JSON)으로 저장. 송신 큐 참조는 저장하지 않는다."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "users": {user_id: user.snapshot_payload() for user_id, user in users.items()},
    }
    tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as fp:
            json.dump(data, fp, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
        LOGGER.info("snapshot saved: %s (%d users)", path, len(users))
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def load_users(path: Path) -> Dict[str, User]:
    """스냅샷을 읽어 레지스트리를 복원. 실패하면 빈 레지스트리."""
    if not path.exists():
        LOGGER.info("no snapshot at %s", path)
        return {}
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
    except (OSError, ValueError) as exc:
        LOGGER.warning("snapshot load failed (%s): %s", path, exc)
        return {}

    entries = data.get("users") if isinstance(data, dict) else None
    if not isinstance(entries, dict):
        LOGGER.warning("snapshot has no user table: %s", path)
        return {}

    users: Dict[str, User] = {}
    for user_id, entry in entries.items():
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            LOGGER.warning("skip bad snapshot entry: %r", user_id)
            continue
        users[str(user_id)] = User(name=entry["name"], online=bool(entry.get("online", False)))
    LOGGER.info("snapshot loaded: %s (%d users)", path, len(users))
    return users


__all__ = [
    "load_users",
    "save_users",
]
