from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional

from ..attendance.model import ShiftRecord
from ..common.datetime_utils import format_timestamp, now_local
from ..common.money import parse_currency
from ..core.constants import (
    AUDIT_RECONCILE,
    AUDIT_RECONCILE_DEFAULT_COMMENT,
    FIELD_LABEL_CASH,
    FIELD_LABEL_TRANSFER,
)
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, InvalidTransitionError, NotFoundError
from ..storage.state import Collection
from ..users.model import User
from .model import AdjustedClosingData, FieldChange, ShiftAuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancialSummary:
    start: date
    end: date
    total_cash: int
    total_transfer: int
    total_discounts: int
    completed_shifts: int
    reported_shifts: int
    pending_approvals: int

    @property
    def revenue(self) -> int:
        return self.total_cash + self.total_transfer

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total_cash": self.total_cash,
            "total_transfer": self.total_transfer,
            "total_discounts": self.total_discounts,
            "revenue": self.revenue,
            "completed_shifts": self.completed_shifts,
            "reported_shifts": self.reported_shifts,
            "pending_approvals": self.pending_approvals,
        }


def needs_approval(record: ShiftRecord) -> bool:
    return record.is_completed and record.closing_data is not None and not record.is_confirmed


def summarize(
    records: Iterable[ShiftRecord],
    *,
    start: date,
    end: date,
    branch_id: Optional[str] = None,
) -> FinancialSummary:
    """Totals over a date range: adjusted value wins, then submitted value, then 0.

    Discounts always come from the submitted report; they are never adjusted.
    """
    rows = [r for r in records if start <= r.work_date <= end and (branch_id is None or r.branch_id == branch_id)]
    return FinancialSummary(
        start=start,
        end=end,
        total_cash=sum(r.effective_cash for r in rows),
        total_transfer=sum(r.effective_transfer for r in rows),
        total_discounts=sum(r.closing_data.total_discounts for r in rows if r.closing_data),
        completed_shifts=sum(1 for r in rows if r.is_completed),
        reported_shifts=sum(1 for r in rows if r.closing_data is not None),
        pending_approvals=sum(1 for r in rows if needs_approval(r)),
    )


def pending_approvals(records: Iterable[ShiftRecord], *, branch_id: Optional[str] = None) -> List[ShiftRecord]:
    return [r for r in records if needs_approval(r) and (branch_id is None or r.branch_id == branch_id)]


class ReconciliationService:
    """Use case: manager review of submitted closing reports."""

    def __init__(self, records: Collection[ShiftRecord], *, clock: Callable[[], datetime] = now_local):
        self._records = records
        self._clock = clock

    def approve(
        self,
        record_id: str,
        *,
        actor: User,
        cash_input: Any = None,
        transfer_input: Any = None,
        comment: str = "",
    ) -> ShiftRecord:
        """Confirm a closing report, optionally overriding cash and/or transfer.

        ``None`` inputs keep the submitted value. Any other input is sanitised
        with ``parse_currency``; non-numeric text becomes 0. One audit entry is
        appended per call, listing every monetary field that differs.

        A confirmed record is frozen: calling again without new amounts only
        appends a review note, and any new amount is refused.
        """
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")

        record = self._records.get(record_id)
        if not record:
            raise NotFoundError("Ca trực không tồn tại")
        if actor.role == Role.MANAGER and record.branch_id != actor.branch_id:
            raise AuthorizationError("Ca trực không thuộc chi nhánh của bạn")
        if not record.is_completed or record.closing_data is None:
            raise InvalidTransitionError("Ca trực chưa có báo cáo chốt ca để đối soát")

        now = self._clock()
        comment = (comment or "").strip() or AUDIT_RECONCILE_DEFAULT_COMMENT

        if record.is_confirmed:
            if cash_input is not None or transfer_input is not None:
                raise InvalidTransitionError("Ca trực đã được đối soát, không thể điều chỉnh lại")
            entry = self._audit_entry(actor, now, comment, ())
            logger.info("reconciliation note on confirmed %s by %s", record_id, actor.username)
            return self._records.upsert(replace(record, audit_log=record.audit_log + (entry,)))

        closing = record.closing_data
        cash = parse_currency(cash_input) if cash_input is not None else None
        transfer = parse_currency(transfer_input) if transfer_input is not None else None

        changes = []
        if cash is not None and cash != closing.total_cash:
            changes.append(FieldChange(FIELD_LABEL_CASH, closing.total_cash, cash))
        if transfer is not None and transfer != closing.total_transfer:
            changes.append(FieldChange(FIELD_LABEL_TRANSFER, closing.total_transfer, transfer))

        adjusted = None
        if cash is not None or transfer is not None:
            adjusted = AdjustedClosingData(total_cash=cash, total_transfer=transfer)

        entry = self._audit_entry(actor, now, comment, tuple(changes))
        updated = replace(
            record,
            adjusted_closing_data=adjusted,
            is_confirmed=True,
            confirmed_by=actor.name,
            confirmed_at=format_timestamp(now),
            manager_comment=comment,
            audit_log=record.audit_log + (entry,),
        )
        logger.info(
            "shift %s reconciled by %s (%d change(s))",
            record_id,
            actor.username,
            len(changes),
        )
        return self._records.upsert(updated)

    def pending(self, actor: User) -> List[ShiftRecord]:
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")
        branch_id = actor.branch_id if actor.role == Role.MANAGER else None
        return pending_approvals(self._records.all(), branch_id=branch_id)

    def summary(self, actor: User, *, start: date, end: date, branch_id: Optional[str] = None) -> FinancialSummary:
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")
        if actor.role == Role.MANAGER:
            branch_id = actor.branch_id
        return summarize(self._records.all(), start=start, end=end, branch_id=branch_id)

    @staticmethod
    def _audit_entry(actor: User, now: datetime, comment: str, changes) -> ShiftAuditLog:
        return ShiftAuditLog(
            log_id=uuid.uuid4().hex,
            action=AUDIT_RECONCILE,
            timestamp=format_timestamp(now),
            user_name=actor.name,
            comment=comment,
            changes=changes,
        )
