from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from conftest import BRANCH_1, TODAY, assign

from src.shift_attendance.shift_attendance.attendance.capture import UploadedFrameDevice
from src.shift_attendance.shift_attendance.attendance.model import ShiftRecordKey
from src.shift_attendance.shift_attendance.container import build_container
from src.shift_attendance.shift_attendance.core.enums import AttendanceStatus, Direction, ShiftStatus
from src.shift_attendance.shift_attendance.core.exceptions import (
    AuthorizationError,
    DataIntegrityWarning,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.shift_attendance.shift_attendance.geo.fence import Coordinate
from src.shift_attendance.shift_attendance.reconciliation.model import ShiftClosingData


class AtBranch:
    def get_current_position(self, *, high_accuracy, timeout, maximum_age):
        return Coordinate(*BRANCH_1)


def _capture(service, record, direction, photo):
    return service.start_capture(record, direction, geolocation=AtBranch(), device=UploadedFrameDevice(photo)).run()


def _check_in(container, clock, photo, when=datetime(2026, 3, 10, 8, 3)):
    service = container.shift_record_service
    clock.now = when
    record = service.get(ShiftRecordKey(TODAY, "staff_1", "SHIFT_1").encode())
    return service.check_in(record, _capture(service, record, Direction.CHECK_IN, photo))


def _check_out(container, clock, photo, record, when=datetime(2026, 3, 10, 12, 1)):
    service = container.shift_record_service
    clock.now = when
    return service.check_out(record, _capture(service, record, Direction.CHECK_OUT, photo))


def test_materialize_is_idempotent_and_not_stored(container, state):
    a = assign(state, "staff_1")
    service = container.shift_record_service

    first = service.materialize(a)
    second = service.materialize(a)

    assert first == second
    assert first.record_id == f"{TODAY.isoformat()}|staff_1|SHIFT_1"
    assert first.status == ShiftStatus.PENDING
    assert first.branch_id == "1"
    assert len(state.shift_records) == 0


def test_todays_shifts_lists_assignments(container, state, users):
    assign(state, "staff_1", shift_type="SHIFT_1")
    assign(state, "staff_1", shift_type="SHIFT_2")
    assign(state, "staff_2")

    shifts = container.shift_record_service.todays_shifts(users["staff_1"])

    assert sorted(r.shift_type for r in shifts) == ["SHIFT_1", "SHIFT_2"]


def test_get_unknown_record(container):
    with pytest.raises(NotFoundError):
        container.shift_record_service.get(f"{TODAY.isoformat()}|staff_1|SHIFT_1")
    with pytest.raises(ValidationError):
        container.shift_record_service.get("garbage")


def test_on_time_check_in(container, state, clock, photo, verifier):
    assign(state, "staff_1")

    record = _check_in(container, clock, photo)

    assert record.check_in_time == "08:03"
    assert record.check_in_status == AttendanceStatus.ON_TIME
    assert record.check_in_photo.startswith("data:image/png")
    assert record.status == ShiftStatus.PENDING
    assert state.shift_records.get(record.record_id) == record
    assert verifier.calls == 1


def test_capture_uses_configured_location_timeout(state, clock, verifier, photo, tmp_path):
    container = build_container(
        cache_dir=str(tmp_path / "cache"),
        remote_sync_enabled=False,
        verifier=verifier,
        location_timeout=2.5,
        clock=clock,
        state=state,
        load=False,
    )
    assign(state, "staff_1")
    service = container.shift_record_service
    record = service.get(f"{TODAY.isoformat()}|staff_1|SHIFT_1")
    seen = []

    class Recording(AtBranch):
        def get_current_position(self, *, high_accuracy, timeout, maximum_age):
            seen.append(timeout)
            return super().get_current_position(high_accuracy=high_accuracy, timeout=timeout, maximum_age=maximum_age)

    service.start_capture(record, Direction.CHECK_IN, geolocation=Recording(), device=UploadedFrameDevice(photo)).run()

    assert seen == [2.5]
    assert verifier.calls == 1
    container.sync.close()


def test_check_in_only_on_the_shift_date(container, state, clock, photo):
    future = TODAY + timedelta(days=5)
    assign(state, "staff_1", future)
    service = container.shift_record_service
    record = service.get(f"{future.isoformat()}|staff_1|SHIFT_1")

    with pytest.raises(InvalidTransitionError):
        service.check_in(record, _capture(service, record, Direction.CHECK_IN, photo))
    assert len(state.shift_records) == 0


def test_overnight_check_out_on_the_next_day(container, state, clock, photo):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)

    with pytest.raises(InvalidTransitionError):
        _check_out(container, clock, photo, record, when=datetime(2026, 3, 12, 8, 0))

    done = _check_out(container, clock, photo, record, when=datetime(2026, 3, 11, 0, 30))
    assert done.check_out_time == "00:30"
    assert done.status == ShiftStatus.COMPLETED


def test_late_check_in(container, state, clock, photo):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo, when=datetime(2026, 3, 10, 8, 6))
    assert record.check_in_status == AttendanceStatus.LATE


def test_check_in_twice_is_rejected(container, state, clock, photo):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)
    service = container.shift_record_service

    assert not service.can_check_in(record)
    with pytest.raises(InvalidTransitionError, match="đã vào ca"):
        service.start_capture(record, Direction.CHECK_IN, geolocation=AtBranch(), device=UploadedFrameDevice(photo))


def test_check_out_before_check_in_is_rejected(container, state, photo):
    assign(state, "staff_1")
    service = container.shift_record_service
    record = service.get(f"{TODAY.isoformat()}|staff_1|SHIFT_1")

    assert not service.can_check_out(record)
    with pytest.raises(InvalidTransitionError, match="chưa vào ca"):
        service.start_capture(record, Direction.CHECK_OUT, geolocation=AtBranch(), device=UploadedFrameDevice(photo))


def test_early_check_out_completes_the_shift(container, state, clock, photo):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)
    service = container.shift_record_service

    clock.now = datetime(2026, 3, 10, 11, 50)
    done = service.check_out(record, _capture(service, record, Direction.CHECK_OUT, photo))

    assert done.check_out_time == "11:50"
    assert done.check_out_status == AttendanceStatus.EARLY_LEAVE
    assert done.status == ShiftStatus.COMPLETED
    assert done.check_in_status == AttendanceStatus.ON_TIME
    with pytest.raises(InvalidTransitionError):
        service.start_capture(done, Direction.CHECK_OUT, geolocation=AtBranch(), device=UploadedFrameDevice(photo))


def test_unconfigured_shift_type_warns_and_stays_unclassified(container, state, clock, photo):
    assign(state, "staff_1", shift_type="SHIFT_9")
    service = container.shift_record_service
    record = service.get(f"{TODAY.isoformat()}|staff_1|SHIFT_9")

    with pytest.warns(DataIntegrityWarning):
        updated = service.check_in(record, _capture(service, record, Direction.CHECK_IN, photo))

    assert updated.check_in_time == "08:03"
    assert updated.check_in_status is None


def test_capture_direction_must_match(container, state, clock, photo):
    assign(state, "staff_1")
    service = container.shift_record_service
    record = service.get(f"{TODAY.isoformat()}|staff_1|SHIFT_1")
    capture = _capture(service, record, Direction.CHECK_IN, photo)

    checked_in = service.check_in(record, capture)
    with pytest.raises(ValidationError):
        service.check_out(checked_in, capture)


def test_submit_and_replace_closing(container, state, clock, photo, users):
    assign(state, "staff_1")
    record = _check_out(container, clock, photo, _check_in(container, clock, photo))
    service = container.shift_record_service

    first = service.submit_closing(record, ShiftClosingData.build(total_cash=100), actor=users["staff_1"])
    second = service.submit_closing(first, ShiftClosingData.build(total_cash=250), actor=users["staff_1"])

    assert second.status == ShiftStatus.COMPLETED
    assert second.closing_data.total_cash == 250


def test_closing_by_other_staff_is_forbidden(container, state, clock, photo, users):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)
    with pytest.raises(AuthorizationError):
        container.shift_record_service.submit_closing(record, ShiftClosingData.build(), actor=users["staff_2"])


def test_closing_is_frozen_after_confirmation(container, state, clock, photo, users):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)
    confirmed = state.shift_records.upsert(replace(record, is_confirmed=True))
    with pytest.raises(InvalidTransitionError):
        container.shift_record_service.submit_closing(confirmed, ShiftClosingData.build(), actor=users["staff_1"])


def test_skip_closing_completes_without_report(container, state, clock, photo, users):
    assign(state, "staff_1")
    record = _check_out(container, clock, photo, _check_in(container, clock, photo))
    done = container.shift_record_service.skip_closing(record, actor=users["staff_1"])
    assert done.status == ShiftStatus.COMPLETED
    assert done.closing_data is None


def test_staff_cannot_close_a_shift_not_worked(container, state, clock, photo, users):
    assign(state, "staff_1")
    service = container.shift_record_service
    untouched = service.get(f"{TODAY.isoformat()}|staff_1|SHIFT_1")

    with pytest.raises(InvalidTransitionError, match="chưa ra ca"):
        service.skip_closing(untouched, actor=users["staff_1"])
    with pytest.raises(InvalidTransitionError, match="chưa ra ca"):
        service.submit_closing(untouched, ShiftClosingData.build(total_cash=100), actor=users["staff_1"])

    checked_in = _check_in(container, clock, photo)
    with pytest.raises(InvalidTransitionError):
        service.skip_closing(checked_in, actor=users["staff_1"])

    stored = state.shift_records.get(checked_in.record_id)
    assert stored.status == ShiftStatus.PENDING
    assert stored.closing_data is None


def test_manager_closing_leaves_audit_entry(container, state, clock, photo, users):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)
    service = container.shift_record_service

    updated = service.manager_closing(record, ShiftClosingData.build(total_cash=500_000), actor=users["manager_1"])

    assert updated.closing_data.total_cash == 500_000
    assert len(updated.audit_log) == 1
    entry = updated.audit_log[0]
    assert entry.action == "QUẢN LÝ BỔ SUNG BÁO CÁO"
    assert entry.user_name == "Quản lý Chi nhánh"
    assert entry.timestamp == "08:03:00 10/03/2026"


def test_manager_closing_needs_manager_of_that_branch(container, state, clock, photo, users):
    assign(state, "staff_1")
    record = _check_in(container, clock, photo)
    service = container.shift_record_service

    with pytest.raises(AuthorizationError):
        service.manager_closing(record, ShiftClosingData.build(), actor=users["staff_1"])

    other = replace(users["manager_1"], branch_id="2")
    with pytest.raises(AuthorizationError):
        service.manager_closing(record, ShiftClosingData.build(), actor=other)


def test_history_is_newest_first(container, state, clock, photo, users):
    assign(state, "staff_1")
    _check_in(container, clock, photo)
    older = ShiftRecordKey(TODAY.replace(day=3), "staff_1", "SHIFT_1")
    state.shift_records.upsert(
        replace(state.shift_records.all()[0], record_id=older.encode(), work_date=older.work_date)
    )

    history = container.shift_record_service.history(users["staff_1"])

    assert [r.work_date.day for r in history] == [10, 3]
