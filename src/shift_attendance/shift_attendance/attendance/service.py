from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from ..branches.model import Branch, ShiftConfig
from ..branches.service import shift_name
from ..common.datetime_utils import format_timestamp, now_local
from ..core.constants import (
    AUDIT_MANAGER_CLOSING,
    AUDIT_MANAGER_CLOSING_COMMENT,
    DEFAULT_LATE_GRACE_MINUTES,
    LOCATION_TIMEOUT_SECONDS,
)
from ..core.enums import Direction, Role, ShiftStatus
from ..core.exceptions import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from ..reconciliation.model import ShiftAuditLog, ShiftClosingData
from ..schedules.model import Assignment
from ..storage.state import Collection
from ..users.model import User
from .capture import CaptureDeviceProvider, CaptureResult, CaptureSession, DelayVerifier, GeolocationProvider, Verifier
from .classifier import decide
from .model import ShiftRecord, ShiftRecordKey

logger = logging.getLogger(__name__)


class ShiftRecordService:
    """Use case: one assignment's actual shift, from check-in to closing report."""

    def __init__(
        self,
        records: Collection[ShiftRecord],
        assignments: Collection[Assignment],
        users: Collection[User],
        branches: Collection[Branch],
        *,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        verifier: Optional[Verifier] = None,
        location_timeout: float = LOCATION_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._records = records
        self._assignments = assignments
        self._users = users
        self._branches = branches
        self._grace_minutes = int(grace_minutes)
        self._verifier = verifier or DelayVerifier()
        self._location_timeout = float(location_timeout)
        self._clock = clock

    def materialize(self, assignment: Assignment, *, user: Optional[User] = None) -> ShiftRecord:
        """Stored record for the assignment, or a transient PENDING one (not stored)."""
        key = ShiftRecordKey(work_date=assignment.work_date, user_id=assignment.user_id, shift_type=assignment.shift_type)
        existing = self._records.get(key.encode())
        if existing:
            return existing

        user = user or self._users.get(assignment.user_id)
        return ShiftRecord.pending(
            key,
            user_name=user.name if user else None,
            branch_id=user.branch_id if user else None,
        )

    def get(self, record_id: str) -> ShiftRecord:
        record = self._records.get(record_id)
        if record:
            return record

        # Not stored yet: rebuild it from the assignment it encodes.
        key = ShiftRecordKey.decode(record_id)
        assignment = next(
            iter(
                self._assignments.find(
                    lambda a: a.user_id == key.user_id and a.work_date == key.work_date and a.shift_type == key.shift_type
                )
            ),
            None,
        )
        if not assignment:
            raise NotFoundError("Ca trực không tồn tại")
        return self.materialize(assignment)

    def todays_shifts(self, user: User, *, today: Optional[date] = None) -> List[ShiftRecord]:
        today = today or self._clock().date()
        assignments = self._assignments.find(lambda a: a.user_id == user.user_id and a.work_date == today)
        return [self.materialize(a, user=user) for a in assignments]

    def history(self, user: User, *, limit: int = 15) -> List[ShiftRecord]:
        rows = self._records.find(lambda r: r.user_id == user.user_id)
        rows.sort(key=lambda r: (r.work_date, r.check_in_time or ""), reverse=True)
        return rows[:limit]

    def branch_of(self, record: ShiftRecord) -> Branch:
        branch_id = record.branch_id
        if not branch_id:
            user = self._users.get(record.user_id)
            branch_id = user.branch_id if user else None
        branch = self._branches.get(branch_id) if branch_id else None
        if not branch:
            raise ValidationError("Nhân viên chưa được gán chi nhánh")
        return branch

    def shift_name(self, record: ShiftRecord) -> str:
        branch = self._branches.get(record.branch_id) if record.branch_id else None
        return shift_name(branch, record.shift_type)

    @staticmethod
    def can_check_in(record: ShiftRecord) -> bool:
        return record.status == ShiftStatus.PENDING and not record.check_in_time

    @staticmethod
    def can_check_out(record: ShiftRecord) -> bool:
        return bool(record.check_in_time) and not record.check_out_time

    def start_capture(
        self,
        record: ShiftRecord,
        direction: Direction,
        *,
        geolocation: GeolocationProvider,
        device: CaptureDeviceProvider,
        verifier: Optional[Verifier] = None,
        location_timeout: Optional[float] = None,
    ) -> CaptureSession:
        """Open a capture session, but only when the record allows that direction."""
        self._require_direction(record, Direction(direction))
        return CaptureSession(
            direction=direction,
            branch=self.branch_of(record),
            geolocation=geolocation,
            device=device,
            verifier=verifier or self._verifier,
            clock=self._clock,
            location_timeout=self._location_timeout if location_timeout is None else location_timeout,
        )

    def check_in(self, record: ShiftRecord, capture: CaptureResult) -> ShiftRecord:
        self._require_direction(record, Direction.CHECK_IN)
        if capture.direction != Direction.CHECK_IN:
            raise ValidationError("Ảnh chụp không dành cho vào ca")
        if capture.captured_on != record.work_date:
            raise InvalidTransitionError("Chỉ được vào ca trong ngày của ca trực")

        config = self._shift_config(record)
        status = decide(capture.captured_at, config, Direction.CHECK_IN, grace_minutes=self._grace_minutes) if config else None
        updated = replace(
            record,
            check_in_time=capture.captured_at,
            check_in_photo=capture.photo,
            check_in_status=status.status if status else None,
        )
        logger.info(
            "check-in %s at %s: %s%s",
            record.record_id,
            capture.captured_at,
            status.status.value if status else "UNCLASSIFIED",
            f" ({status.note})" if status and status.note else "",
        )
        return self._records.upsert(updated)

    def check_out(self, record: ShiftRecord, capture: CaptureResult) -> ShiftRecord:
        self._require_direction(record, Direction.CHECK_OUT)
        if capture.direction != Direction.CHECK_OUT:
            raise ValidationError("Ảnh chụp không dành cho ra ca")
        # Overnight shifts may close on the following day.
        if not record.work_date <= capture.captured_on <= record.work_date + timedelta(days=1):
            raise InvalidTransitionError("Chỉ được ra ca trong ngày của ca trực")

        config = self._shift_config(record)
        status = decide(capture.captured_at, config, Direction.CHECK_OUT, grace_minutes=self._grace_minutes) if config else None
        updated = replace(
            record,
            check_out_time=capture.captured_at,
            check_out_photo=capture.photo,
            check_out_status=status.status if status else None,
            status=ShiftStatus.COMPLETED,
        )
        logger.info(
            "check-out %s at %s: %s%s",
            record.record_id,
            capture.captured_at,
            status.status.value if status else "UNCLASSIFIED",
            f" ({status.note})" if status and status.note else "",
        )
        return self._records.upsert(updated)

    def submit_closing(self, record: ShiftRecord, closing: ShiftClosingData, *, actor: User) -> ShiftRecord:
        """Attach (or replace wholesale) the closing report; the record ends COMPLETED."""
        self._require_owner_or_manager(record, actor)
        self._require_unconfirmed(record)
        self._require_checked_out(record, actor)
        updated = replace(record, closing_data=closing, status=ShiftStatus.COMPLETED)
        logger.info("closing report for %s submitted by %s", record.record_id, actor.username)
        return self._records.upsert(updated)

    def skip_closing(self, record: ShiftRecord, *, actor: User) -> ShiftRecord:
        self._require_owner_or_manager(record, actor)
        self._require_checked_out(record, actor)
        if record.is_completed:
            return record
        return self._records.upsert(replace(record, status=ShiftStatus.COMPLETED))

    def manager_closing(
        self,
        record: ShiftRecord,
        closing: ShiftClosingData,
        *,
        actor: User,
        comment: Optional[str] = None,
    ) -> ShiftRecord:
        """Late closing report entered by a manager; leaves an audit trail entry."""
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")
        if actor.role == Role.MANAGER and record.branch_id != actor.branch_id:
            raise AuthorizationError("Ca trực không thuộc chi nhánh của bạn")
        self._require_unconfirmed(record)

        entry = ShiftAuditLog(
            log_id=uuid.uuid4().hex,
            action=AUDIT_MANAGER_CLOSING,
            timestamp=format_timestamp(self._clock()),
            user_name=actor.name,
            comment=comment or AUDIT_MANAGER_CLOSING_COMMENT,
        )
        updated = replace(
            record,
            closing_data=closing,
            status=ShiftStatus.COMPLETED,
            audit_log=record.audit_log + (entry,),
        )
        logger.info("closing report for %s added by manager %s", record.record_id, actor.username)
        return self._records.upsert(updated)

    def _shift_config(self, record: ShiftRecord) -> Optional[ShiftConfig]:
        branch = self.branch_of(record)
        config = branch.shift(record.shift_type)
        if config is None:
            # Warns and leaves the status unclassified; the check itself still counts.
            shift_name(branch, record.shift_type)
        return config

    def _require_direction(self, record: ShiftRecord, direction: Direction) -> None:
        if direction == Direction.CHECK_IN:
            if record.status != ShiftStatus.PENDING:
                raise InvalidTransitionError("Ca trực đã kết thúc")
            if record.check_in_time:
                raise InvalidTransitionError("Bạn đã vào ca rồi")
            return

        if not record.check_in_time:
            raise InvalidTransitionError("Bạn chưa vào ca")
        if record.check_out_time:
            raise InvalidTransitionError("Bạn đã ra ca rồi")

    @staticmethod
    def _require_unconfirmed(record: ShiftRecord) -> None:
        if record.is_confirmed:
            raise InvalidTransitionError("Ca trực đã được đối soát, không thể sửa báo cáo")

    @staticmethod
    def _require_checked_out(record: ShiftRecord, actor: User) -> None:
        # Managers add late reports through manager_closing.
        if actor.role.is_manager:
            return
        if not record.check_out_time:
            raise InvalidTransitionError("Bạn chưa ra ca")

    @staticmethod
    def _require_owner_or_manager(record: ShiftRecord, actor: User) -> None:
        if record.user_id == actor.user_id:
            return
        if actor.role == Role.ADMIN:
            return
        if actor.role == Role.MANAGER and record.branch_id == actor.branch_id:
            return
        raise AuthorizationError("Bạn không có quyền")
