from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from ..attendance.model import ShiftRecord, ShiftRecordKey
from ..branches.model import Branch
from ..branches.service import shift_name
from ..common.datetime_utils import now_local, to_minutes
from ..core.constants import DEFAULT_REPORT_DAYS, MANAGER_REPORT_DAYS, SHIFT_STATUS_LABELS
from ..core.enums import AttendanceStatus, Role, ShiftStatus
from ..core.exceptions import AuthorizationError, ValidationError
from ..reconciliation.service import needs_approval
from ..schedules.model import Assignment
from ..storage.state import Collection
from ..users.model import User

CSV_HEADERS = ("Nhân viên", "Ngày", "Ca trực", "Check-in", "Check-out", "Số giờ làm", "Trạng thái")
UNKNOWN_STAFF = "Ẩn danh"
NO_TIME = "--:--"


def derive_display_status(assignment: Assignment, record: Optional[ShiftRecord], as_of: date) -> ShiftStatus:
    """Reporting-time status of one assignment; never written back to the record.

    ABSENT only for assignments dated before ``as_of`` with no check-in.
    """
    if record is not None and record.is_completed:
        return ShiftStatus.COMPLETED
    if record is not None and record.check_in_time:
        return ShiftStatus.PENDING
    if assignment.work_date < as_of:
        return ShiftStatus.ABSENT
    return ShiftStatus.PENDING


def working_hours(check_in: Optional[str], check_out: Optional[str]) -> float:
    """Hours between two HH:MM times, one decimal; check-out past midnight wraps."""
    if not check_in or not check_out:
        return 0.0
    minutes = to_minutes(check_out) - to_minutes(check_in)
    if minutes < 0:
        minutes += 24 * 60
    return round(minutes / 60, 1)


@dataclass(frozen=True)
class AttendanceReportRow:
    user_id: str
    staff_name: str
    work_date: date
    shift_type: str
    shift_name: str
    check_in: Optional[str]
    check_out: Optional[str]
    hours: float
    status: ShiftStatus
    check_in_status: Optional[AttendanceStatus] = None

    @property
    def status_label(self) -> str:
        return SHIFT_STATUS_LABELS[self.status.value]

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "staff_name": self.staff_name,
            "date": self.work_date.isoformat(),
            "shift_type": self.shift_type,
            "shift_name": self.shift_name,
            "check_in": self.check_in or NO_TIME,
            "check_out": self.check_out or NO_TIME,
            "hours": f"{self.hours:.1f}",
            "status": self.status.value,
            "status_label": self.status_label,
            "check_in_status": self.check_in_status.value if self.check_in_status else None,
        }

    def to_csv_row(self) -> List[str]:
        return [
            self.staff_name,
            self.work_date.isoformat(),
            self.shift_name,
            self.check_in or NO_TIME,
            self.check_out or NO_TIME,
            f"{self.hours:.1f}",
            self.status_label,
        ]


@dataclass(frozen=True)
class DashboardStats:
    work_date: date
    scheduled: int
    checked_in: int
    completed: int
    pending_approvals: int
    pending_requests: int

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "scheduled": self.scheduled,
            "checked_in": self.checked_in,
            "completed": self.completed,
            "pending_approvals": self.pending_approvals,
            "pending_requests": self.pending_requests,
        }


def export_csv(rows: Sequence[AttendanceReportRow]) -> bytes:
    """CSV bytes, UTF-8 with BOM so spreadsheet tools pick up Vietnamese text."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(row.to_csv_row())
    return out.getvalue().encode("utf-8-sig")


def export_filename(branch: Optional[Branch], start: date, end: date) -> str:
    name = "-".join((branch.name if branch else "tat-ca").split())
    return f"Bao-cao-cham-cong-{name}-{start.isoformat()}-den-{end.isoformat()}.csv"


class ReportService:
    """Use case: attendance report, CSV export and dashboard counters."""

    def __init__(
        self,
        assignments: Collection[Assignment],
        records: Collection[ShiftRecord],
        users: Collection[User],
        branches: Collection[Branch],
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._assignments = assignments
        self._records = records
        self._users = users
        self._branches = branches
        self._clock = clock

    def default_range(self, actor: User, *, today: Optional[date] = None) -> Tuple[date, date]:
        today = today or self._clock().date()
        days = MANAGER_REPORT_DAYS if actor.role == Role.MANAGER else DEFAULT_REPORT_DAYS
        return today - timedelta(days=days), today

    def scope_branch(self, actor: User, branch_id: Optional[str]) -> Optional[str]:
        if actor.role == Role.ADMIN:
            return branch_id
        if actor.role == Role.MANAGER:
            return actor.branch_id
        raise AuthorizationError("Bạn không có quyền")

    def attendance_rows(
        self,
        actor: User,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        branch_id: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> List[AttendanceReportRow]:
        branch_id = self.scope_branch(actor, branch_id)
        default_start, default_end = self.default_range(actor)
        start = start or default_start
        end = end or default_end
        if start > end:
            raise ValidationError("Ngày bắt đầu phải trước ngày kết thúc")
        as_of = as_of or self._clock().date()

        rows = []
        for a in self._assignments.find(lambda a: start <= a.work_date <= end):
            staff = self._users.get(a.user_id)
            if branch_id is not None and (staff is None or staff.branch_id != branch_id):
                continue

            key = ShiftRecordKey(work_date=a.work_date, user_id=a.user_id, shift_type=a.shift_type)
            record = self._records.get(key.encode())
            branch = self._branches.get(staff.branch_id) if staff and staff.branch_id else None
            rows.append(
                AttendanceReportRow(
                    user_id=a.user_id,
                    staff_name=staff.name if staff else UNKNOWN_STAFF,
                    work_date=a.work_date,
                    shift_type=a.shift_type,
                    shift_name=shift_name(branch, a.shift_type),
                    check_in=record.check_in_time if record else None,
                    check_out=record.check_out_time if record else None,
                    hours=working_hours(record.check_in_time, record.check_out_time) if record else 0.0,
                    status=derive_display_status(a, record, as_of),
                    check_in_status=record.check_in_status if record else None,
                )
            )

        rows.sort(key=lambda r: (r.work_date, r.staff_name), reverse=True)
        return rows

    def dashboard(self, actor: User, *, today: Optional[date] = None, pending_requests: int = 0) -> DashboardStats:
        """Today's counters for the manager/admin dashboard."""
        branch_id = self.scope_branch(actor, None)
        today = today or self._clock().date()

        def in_scope(user_id: str) -> bool:
            if branch_id is None:
                return True
            staff = self._users.get(user_id)
            return staff is not None and staff.branch_id == branch_id

        scheduled = self._assignments.find(lambda a: a.work_date == today and in_scope(a.user_id))
        records = self._records.find(lambda r: branch_id is None or r.branch_id == branch_id)
        todays = [r for r in records if r.work_date == today]
        return DashboardStats(
            work_date=today,
            scheduled=len(scheduled),
            checked_in=sum(1 for r in todays if r.check_in_time),
            completed=sum(1 for r in todays if r.is_completed),
            pending_approvals=sum(1 for r in records if needs_approval(r)),
            pending_requests=pending_requests,
        )
