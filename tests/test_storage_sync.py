from __future__ import annotations

import json
from datetime import date

from src.shift_attendance.shift_attendance.database.bootstrap import demo_branches, seed_state, split_sql
from src.shift_attendance.shift_attendance.schedules.model import Assignment
from src.shift_attendance.shift_attendance.storage.local_cache import LocalCache
from src.shift_attendance.shift_attendance.storage.state import AppState
from src.shift_attendance.shift_attendance.storage.sync import SyncCoordinator


class FakeRemote:
    def __init__(self, rows=None, fail=False):
        self.rows = list(rows or [])
        self.fail = fail
        self.upserts = []
        self.deleted = []

    def list_all(self):
        if self.fail:
            raise ConnectionError("mysql down")
        return list(self.rows)

    def upsert_many(self, items):
        if self.fail:
            raise ConnectionError("mysql down")
        self.upserts.append(list(items))

    def delete(self, item_id):
        self.deleted.append(item_id)
        return True


def _assignment(n: int) -> Assignment:
    return Assignment(
        assignment_id=f"a{n}",
        user_id="staff_1",
        work_date=date(2026, 3, 10),
        shift_type="SHIFT_1",
        updated_at="2026-03-01T09:00:00",
        updated_by="Quản lý",
    )


def test_cache_round_trip_and_atomic_write(tmp_path):
    cache = LocalCache(tmp_path)
    cache.save("users", [{"id": "u1"}])
    assert cache.load("users") == [{"id": "u1"}]
    assert not list(tmp_path.glob("*.tmp"))

    cache.clear("users")
    assert cache.load("users") == []


def test_corrupt_cache_is_ignored(tmp_path):
    (tmp_path / "users.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "branches.json").write_text('{"id": 1}', encoding="utf-8")
    cache = LocalCache(tmp_path)
    assert cache.load("users") == []
    assert cache.load("branches") == []


def test_changes_are_mirrored_to_cache_and_remote(tmp_path):
    state = AppState()
    remote = FakeRemote()
    sync = SyncCoordinator(state, LocalCache(tmp_path), {"assignments": remote})
    sync.attach()
    sync.attach()

    state.assignments.upsert(_assignment(1))
    state.assignments.remove("a1")

    assert len(remote.upserts) == 1
    assert remote.deleted == ["a1"]
    assert json.loads((tmp_path / "assignments.json").read_text(encoding="utf-8")) == []


def test_remote_failure_is_logged_not_raised(tmp_path, caplog):
    state = AppState()
    sync = SyncCoordinator(state, LocalCache(tmp_path), {"assignments": FakeRemote(fail=True)})
    sync.attach()

    state.assignments.upsert(_assignment(1))

    assert state.assignments.get("a1") is not None
    assert LocalCache(tmp_path).load("assignments")[0]["id"] == "a1"
    assert "remote sync failed" in caplog.text


def test_load_prefers_remote_rows(tmp_path):
    cache = LocalCache(tmp_path)
    cache.save("assignments", [_assignment(1).to_dict()])
    state = AppState()

    SyncCoordinator(state, cache, {"assignments": FakeRemote(rows=[_assignment(2)])}).load()

    assert [a.assignment_id for a in state.assignments.all()] == ["a2"]
    assert cache.load("assignments")[0]["id"] == "a2"


def test_load_falls_back_to_cache(tmp_path):
    cache = LocalCache(tmp_path)
    cache.save("assignments", [_assignment(1).to_dict(), {"id": "broken"}])
    state = AppState()

    SyncCoordinator(state, cache, {"assignments": FakeRemote(fail=True)}).load()

    assert [a.assignment_id for a in state.assignments.all()] == ["a1"]


def test_push_all_sends_every_collection(tmp_path):
    state = AppState()
    seed_state(state)
    remote = FakeRemote()
    SyncCoordinator(state, LocalCache(tmp_path), {"branches": remote}).push_all()
    assert [b.branch_id for b in remote.upserts[0]] == [b.branch_id for b in demo_branches()]


def test_seed_only_fills_empty_collections():
    state = AppState()
    assert seed_state(state)
    assert not seed_state(state)
    assert len(state.branches) == 2
    assert len(state.users) == 3


def test_split_sql_skips_database_statements_and_comments():
    sql = """
    CREATE DATABASE IF NOT EXISTS x;
    USE x;
    -- tables
    CREATE TABLE a (id INT, note VARCHAR(10) DEFAULT 'a;b');
    INSERT INTO a VALUES (1, 'x');
    """
    statements = list(split_sql(sql))
    assert len(statements) == 2
    assert statements[0].startswith("CREATE TABLE a")
    assert "'a;b'" in statements[0]
