"""스냅샷 영속화 테스트."""

import json

import pytest

from msghub.server.persist import load_users, save_users
from msghub.server.queues import OutboundQueue
from msghub.server.registry import User


def test_save_then_load(tmp_path) -> None:
    path = tmp_path / "data" / "users.json"
    users = {
        "u1": User(name="alice", online=True, outbound=OutboundQueue()),
        "u2": User(name="밥"),
    }
    save_users(users, path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {
        "users": {
            "u1": {"name": "alice", "online": True},
            "u2": {"name": "밥", "online": False},
        }
    }
    restored = load_users(path)
    assert restored == {"u1": User(name="alice", online=True), "u2": User(name="밥")}
    assert restored["u1"].outbound is None


def test_save_leaves_no_temp_files(tmp_path) -> None:
    path = tmp_path / "users.json"
    save_users({"u1": User(name="alice")}, path)
    save_users({"u1": User(name="alicia")}, path)
    assert [p.name for p in tmp_path.iterdir()] == ["users.json"]
    assert load_users(path)["u1"].name == "alicia"


def test_missing_file_gives_empty_registry(tmp_path) -> None:
    assert load_users(tmp_path / "nope.json") == {}


def test_corrupt_file_gives_empty_registry(tmp_path) -> None:
    path = tmp_path / "users.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_users(path) == {}
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_users(path) == {}


def test_bad_entries_are_skipped(tmp_path) -> None:
    path = tmp_path / "users.json"
    path.write_text(
        json.dumps({"users": {"u1": {"name": "alice"}, "u2": "bob", "u3": {"online": True}}}),
        encoding="utf-8",
    )
    assert load_users(path) == {"u1": User(name="alice")}


def test_unencodable_name_fails_without_partial_file(tmp_path) -> None:
    path = tmp_path / "users.json"
    save_users({"u1": User(name="alice")}, path)
    with pytest.raises(ValueError):
        save_users({"u1": User(name="\ud800")}, path)
    assert [p.name for p in tmp_path.iterdir()] == ["users.json"]
    assert load_users(path)["u1"].name == "alice"
