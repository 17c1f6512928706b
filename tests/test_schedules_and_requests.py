from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from conftest import TODAY

from src.shift_attendance.shift_attendance.core.enums import RequestStatus, RequestType, UserStatus
from src.shift_attendance.shift_attendance.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.shift_attendance.shift_attendance.schedules.service import ScheduleService

NOW = datetime(2026, 3, 10, 9, 0)
TOMORROW = date(2026, 3, 11)


def test_toggle_adds_then_removes(container, state, users):
    service = container.schedule_service
    manager = users["manager_1"]

    added = service.toggle(actor=manager, user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    assert added is not None
    assert added.updated_by == "Quản lý Chi nhánh"
    assert len(state.assignments) == 1

    removed = service.toggle(actor=manager, user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    assert removed is None
    assert len(state.assignments) == 0

    actions = [log.action for log in service.logs()]
    assert actions[0].startswith("Xóa ca của Nhân viên 1")
    assert actions[1].startswith("Thêm ca cho Nhân viên 1")


def test_toggle_keeps_other_shift_types(container, state, users):
    service = container.schedule_service
    manager = users["manager_1"]
    service.toggle(actor=manager, user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    service.toggle(actor=manager, user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_2", now=NOW)
    assert sorted(a.shift_type for a in state.assignments.all()) == ["SHIFT_1", "SHIFT_2"]


def test_past_dates_are_locked(container, users):
    with pytest.raises(ValidationError, match="quá khứ"):
        container.schedule_service.toggle(
            actor=users["manager_1"], user_id="staff_1", work_date=date(2026, 3, 9), shift_type="SHIFT_1", now=NOW
        )


def test_today_is_still_editable(container, users):
    added = container.schedule_service.toggle(
        actor=users["manager_1"], user_id="staff_1", work_date=TODAY, shift_type="SHIFT_1", now=NOW
    )
    assert added.work_date == TODAY


def test_toggle_validation(container, state, users):
    service = container.schedule_service
    manager = users["manager_1"]

    with pytest.raises(ValidationError):
        service.toggle(actor=manager, user_id="", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    with pytest.raises(NotFoundError):
        service.toggle(actor=manager, user_id="ghost", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    with pytest.raises(ValidationError):
        service.toggle(actor=manager, user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_9", now=NOW)
    with pytest.raises(AuthorizationError):
        service.toggle(actor=manager, user_id="staff_2", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    with pytest.raises(AuthorizationError):
        service.toggle(actor=users["staff_1"], user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)

    state.users.upsert(replace(users["staff_1"], status=UserStatus.RESIGNED))
    with pytest.raises(ValidationError):
        service.toggle(actor=manager, user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)


def test_week_dates_monday_to_sunday():
    days = ScheduleService.week_dates(TODAY)
    assert days[0] == date(2026, 3, 9)
    assert days[-1] == date(2026, 3, 15)
    assert ScheduleService.week_dates(TODAY, offset=1)[0] == date(2026, 3, 16)


def test_save_week_logs_the_range(container, users):
    entry = container.schedule_service.save_week(actor=users["manager_1"], now=NOW)
    assert entry.action == "Đã lưu lịch tuần 09/03 - 15/03/2026"
    assert entry.timestamp == "09:00:00 10/03/2026"


def test_for_range_filters_by_branch(container, users):
    service = container.schedule_service
    service.toggle(actor=users["manager_1"], user_id="staff_1", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)
    service.toggle(actor=users["admin_1"], user_id="staff_2", work_date=TOMORROW, shift_type="SHIFT_1", now=NOW)

    assert len(service.for_range(start=TODAY, end=TOMORROW)) == 2
    assert [a.user_id for a in service.for_range(start=TODAY, end=TOMORROW, branch_id="2")] == ["staff_2"]


def test_leave_request_flow(container, users):
    service = container.request_service
    req = service.create(user=users["staff_1"], work_date=TOMORROW, request_type=RequestType.LEAVE, reason=" Ốm ")

    assert req.status == RequestStatus.PENDING
    assert req.reason == "Ốm"
    assert req.day_of_week == "Thứ 4"
    assert req.branch_id == "1"
    assert service.pending_for(users["manager_1"]) == [req]
    assert service.pending_for(users["staff_2"]) == []

    decided = service.decide(actor=users["manager_1"], request_id=req.request_id, status=RequestStatus.APPROVED)
    assert decided.status == RequestStatus.APPROVED

    with pytest.raises(ValidationError):
        service.decide(actor=users["manager_1"], request_id=req.request_id, status=RequestStatus.REJECTED)


def test_request_rules(container, users):
    service = container.request_service

    with pytest.raises(AuthorizationError):
        service.create(user=users["admin_1"], work_date=TOMORROW, request_type=RequestType.LEAVE, reason="x")
    with pytest.raises(ValidationError):
        service.create(user=users["staff_1"], work_date=TOMORROW, request_type=RequestType.LEAVE, reason="  ")

    req = service.create(
        user=users["staff_2"], work_date=TOMORROW, request_type=RequestType.REGISTER, reason="Muốn thêm ca", shift_type="SHIFT_2"
    )
    with pytest.raises(AuthorizationError):
        service.decide(actor=users["manager_1"], request_id=req.request_id, status=RequestStatus.APPROVED)
    with pytest.raises(AuthorizationError):
        service.decide(actor=users["staff_1"], request_id=req.request_id, status=RequestStatus.APPROVED)
    with pytest.raises(ValidationError):
        service.decide(actor=users["admin_1"], request_id=req.request_id, status=RequestStatus.PENDING)
    assert service.decide(actor=users["admin_1"], request_id=req.request_id, status=RequestStatus.REJECTED).status == (
        RequestStatus.REJECTED
    )
