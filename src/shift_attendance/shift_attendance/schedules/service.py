from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import List, Optional

from ..branches.model import Branch
from ..common.datetime_utils import format_timestamp, now_local
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..storage.state import Collection
from ..users.model import User
from .model import Assignment, ScheduleLog

logger = logging.getLogger(__name__)


class ScheduleService:
    """Use case: plan who works which shift on which day (toggle semantics)."""

    def __init__(
        self,
        assignments: Collection[Assignment],
        logs: Collection[ScheduleLog],
        users: Collection[User],
        branches: Collection[Branch],
    ):
        self._assignments = assignments
        self._logs = logs
        self._users = users
        self._branches = branches

    def toggle(
        self,
        *,
        actor: User,
        user_id: str,
        work_date: date,
        shift_type: str,
        now: Optional[datetime] = None,
    ) -> Optional[Assignment]:
        """Add the assignment, or remove it if the exact triple already exists.

        Returns the new assignment, or None when one was removed.
        """
        now = now or now_local()
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")
        if not user_id:
            raise ValidationError("Vui lòng chọn một nhân viên từ danh sách trước khi xếp lịch.")
        if work_date < now.date():
            raise ValidationError("Không thể điều chỉnh lịch trong quá khứ.")

        staff = self._users.get(user_id)
        if not staff:
            raise NotFoundError("Nhân viên không tồn tại")
        if staff.role == Role.ADMIN or not staff.is_working:
            raise ValidationError("Nhân viên này không thể được xếp lịch")
        if actor.role == Role.MANAGER and staff.branch_id != actor.branch_id:
            raise AuthorizationError("Chỉ được xếp lịch cho nhân viên thuộc chi nhánh của bạn")

        branch = self._branches.get(staff.branch_id) if staff.branch_id else None
        if branch is not None and shift_type not in branch.shifts:
            raise ValidationError(f"Ca {shift_type} chưa được cấu hình cho chi nhánh {branch.name}")

        existing = self._assignments.find(
            lambda a: a.user_id == user_id and a.work_date == work_date and a.shift_type == shift_type
        )
        if existing:
            for a in existing:
                self._assignments.remove(a.assignment_id)
            self._log(actor, f"Xóa ca của {staff.name} ngày {work_date.isoformat()}", now)
            return None

        assignment = Assignment(
            assignment_id=uuid.uuid4().hex,
            user_id=user_id,
            work_date=work_date,
            shift_type=shift_type,
            updated_at=now.isoformat(timespec="seconds"),
            updated_by=actor.name,
        )
        self._assignments.upsert(assignment)
        self._log(actor, f"Thêm ca cho {staff.name} ngày {work_date.isoformat()}", now)
        return assignment

    def for_user_on(self, user_id: str, work_date: date) -> List[Assignment]:
        return self._assignments.find(lambda a: a.user_id == user_id and a.work_date == work_date)

    def for_range(self, *, start: date, end: date, branch_id: Optional[str] = None) -> List[Assignment]:
        rows = self._assignments.find(lambda a: start <= a.work_date <= end)
        if branch_id is not None:
            staff_ids = {u.user_id for u in self._users.find(lambda u: u.branch_id == branch_id)}
            rows = [a for a in rows if a.user_id in staff_ids]
        return sorted(rows, key=lambda a: (a.work_date, a.user_id, a.shift_type))

    @staticmethod
    def week_dates(today: date, offset: int = 0) -> List[date]:
        """Monday..Sunday of the week containing ``today``, shifted by ``offset`` weeks."""
        monday = today - timedelta(days=today.weekday()) + timedelta(weeks=offset)
        return [monday + timedelta(days=i) for i in range(7)]

    def save_week(self, *, actor: User, offset: int = 0, now: Optional[datetime] = None) -> ScheduleLog:
        now = now or now_local()
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")
        days = self.week_dates(now.date(), offset)
        display = f"{days[0].strftime('%d/%m')} - {days[-1].strftime('%d/%m/%Y')}"
        return self._log(actor, f"Đã lưu lịch tuần {display}", now)

    def logs(self) -> List[ScheduleLog]:
        return self._logs.all()

    def _log(self, actor: User, action: str, now: datetime) -> ScheduleLog:
        entry = ScheduleLog(
            log_id=uuid.uuid4().hex,
            action=action,
            timestamp=format_timestamp(now),
            user_name=actor.name,
        )
        logger.info("schedule: %s (by %s)", action, actor.username)
        return self._logs.upsert(entry)
