from __future__ import annotations

import base64
import io
from datetime import date, datetime

import pytest
from PIL import Image
from werkzeug.security import generate_password_hash

from src.shift_attendance.shift_attendance.attendance.capture import VerificationResult
from src.shift_attendance.shift_attendance.container import build_container
from src.shift_attendance.shift_attendance.core.enums import Role
from src.shift_attendance.shift_attendance.database.bootstrap import seed_state
from src.shift_attendance.shift_attendance.schedules.model import Assignment
from src.shift_attendance.shift_attendance.storage.state import AppState
from src.shift_attendance.shift_attendance.users.model import User

# Tuesday; demo branch "1" runs SHIFT_1 08:00-12:00 and SHIFT_2 12:00-17:00.
TODAY = date(2026, 3, 10)
BRANCH_1 = (10.7769, 106.7009)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class AcceptAll:
    def __init__(self):
        self.calls = 0

    def verify(self, image):
        self.calls += 1
        return VerificationResult(ok=True)


def png_bytes(size=(4, 4)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=(200, 10, 10)).save(buf, format="PNG")
    return buf.getvalue()


def png_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes()).decode("ascii")


def assign(state: AppState, user_id: str, work_date: date = TODAY, shift_type: str = "SHIFT_1") -> Assignment:
    return state.assignments.upsert(
        Assignment(
            assignment_id=f"a-{user_id}-{work_date.isoformat()}-{shift_type}",
            user_id=user_id,
            work_date=work_date,
            shift_type=shift_type,
            updated_at="2026-03-01T09:00:00",
            updated_by="Quản lý Chi nhánh",
        )
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 8, 3))


@pytest.fixture
def photo():
    return png_data_url()


@pytest.fixture
def state():
    s = AppState()
    seed_state(s)
    s.users.upsert(
        User(
            user_id="staff_2",
            username="nv2",
            name="Nhân viên 2",
            role=Role.STAFF,
            password_hash=generate_password_hash("123"),
            branch_id="2",
        )
    )
    return s


@pytest.fixture
def users(state):
    return {u.user_id: u for u in state.users.all()}


@pytest.fixture
def verifier():
    return AcceptAll()


@pytest.fixture
def container(state, clock, verifier, tmp_path):
    c = build_container(
        cache_dir=str(tmp_path / "cache"),
        remote_sync_enabled=False,
        verifier=verifier,
        clock=clock,
        state=state,
        load=False,
    )
    yield c
    c.sync.close()


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from src.shift_attendance.shift_attendance.main import create_app

    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username: str, password: str = "123"):
    resp = client.post("/api/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp
