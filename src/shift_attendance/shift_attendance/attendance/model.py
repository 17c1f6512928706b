from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional, Tuple

from ..common.datetime_utils import parse_iso_date
from ..core.enums import AttendanceStatus, ShiftStatus
from ..core.exceptions import ValidationError
from ..reconciliation.model import AdjustedClosingData, ShiftAuditLog, ShiftClosingData

_KEY_SEPARATOR = "|"


@dataclass(frozen=True)
class ShiftRecordKey:
    """Composite identity of one user's one shift on one day.

    Two keys built from the same (date, user, shift type) are equal and encode
    to the same storage id, which is what makes lookups idempotent.
    """

    work_date: date
    user_id: str
    shift_type: str

    def __post_init__(self):
        for part in (self.user_id, self.shift_type):
            if not part or _KEY_SEPARATOR in part:
                raise ValidationError(f"Thành phần khoá ca không hợp lệ: {part!r}")

    def encode(self) -> str:
        return _KEY_SEPARATOR.join((self.work_date.isoformat(), self.user_id, self.shift_type))

    @classmethod
    def decode(cls, value: str) -> "ShiftRecordKey":
        parts = value.split(_KEY_SEPARATOR)
        if len(parts) != 3:
            raise ValidationError(f"Mã ca không hợp lệ: {value!r}")
        return cls(work_date=parse_iso_date(parts[0]), user_id=parts[1], shift_type=parts[2])

    def __str__(self) -> str:
        return self.encode()


@dataclass(frozen=True)
class ShiftRecord:
    """Thực thể miền (domain): Bản ghi ca trực thực tế của một phân ca."""

    record_id: str
    user_id: str
    work_date: date
    shift_type: str
    status: ShiftStatus = ShiftStatus.PENDING
    user_name: Optional[str] = None
    branch_id: Optional[str] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    check_in_photo: Optional[str] = None
    check_out_photo: Optional[str] = None
    check_in_status: Optional[AttendanceStatus] = None
    check_out_status: Optional[AttendanceStatus] = None
    closing_data: Optional[ShiftClosingData] = None
    adjusted_closing_data: Optional[AdjustedClosingData] = None
    is_confirmed: bool = False
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[str] = None
    manager_comment: Optional[str] = None
    audit_log: Tuple[ShiftAuditLog, ...] = field(default_factory=tuple)

    @classmethod
    def pending(cls, key: ShiftRecordKey, *, user_name: Optional[str] = None, branch_id: Optional[str] = None) -> "ShiftRecord":
        return cls(
            record_id=key.encode(),
            user_id=key.user_id,
            work_date=key.work_date,
            shift_type=key.shift_type,
            user_name=user_name,
            branch_id=branch_id,
        )

    @property
    def key(self) -> ShiftRecordKey:
        return ShiftRecordKey(work_date=self.work_date, user_id=self.user_id, shift_type=self.shift_type)

    @property
    def is_completed(self) -> bool:
        return self.status == ShiftStatus.COMPLETED

    @property
    def effective_cash(self) -> int:
        if self.adjusted_closing_data and self.adjusted_closing_data.total_cash is not None:
            return self.adjusted_closing_data.total_cash
        return self.closing_data.total_cash if self.closing_data else 0

    @property
    def effective_transfer(self) -> int:
        if self.adjusted_closing_data and self.adjusted_closing_data.total_transfer is not None:
            return self.adjusted_closing_data.total_transfer
        return self.closing_data.total_transfer if self.closing_data else 0

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "date": self.work_date.isoformat(),
            "type": self.shift_type,
            "status": self.status.value,
            "branch_id": self.branch_id,
            "check_in_time": self.check_in_time,
            "check_out_time": self.check_out_time,
            "check_in_photo": self.check_in_photo,
            "check_out_photo": self.check_out_photo,
            "check_in_status": self.check_in_status.value if self.check_in_status else None,
            "check_out_status": self.check_out_status.value if self.check_out_status else None,
            "closing_data": self.closing_data.to_dict() if self.closing_data else None,
            "adjusted_closing_data": self.adjusted_closing_data.to_dict() if self.adjusted_closing_data else None,
            "is_confirmed": self.is_confirmed,
            "confirmed_by": self.confirmed_by,
            "confirmed_at": self.confirmed_at,
            "manager_comment": self.manager_comment,
            "audit_log": [a.to_dict() for a in self.audit_log],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShiftRecord":
        closing = data.get("closing_data")
        adjusted = data.get("adjusted_closing_data")
        check_in_status = data.get("check_in_status")
        check_out_status = data.get("check_out_status")
        return cls(
            record_id=str(data["id"]),
            user_id=str(data["user_id"]),
            user_name=data.get("user_name"),
            work_date=parse_iso_date(str(data["date"])),
            shift_type=str(data["type"]),
            status=ShiftStatus(data.get("status") or ShiftStatus.PENDING.value),
            branch_id=data.get("branch_id"),
            check_in_time=data.get("check_in_time"),
            check_out_time=data.get("check_out_time"),
            check_in_photo=data.get("check_in_photo"),
            check_out_photo=data.get("check_out_photo"),
            check_in_status=AttendanceStatus(check_in_status) if check_in_status else None,
            check_out_status=AttendanceStatus(check_out_status) if check_out_status else None,
            closing_data=ShiftClosingData.from_dict(closing) if closing else None,
            adjusted_closing_data=AdjustedClosingData.from_dict(adjusted) if adjusted else None,
            is_confirmed=bool(data.get("is_confirmed", False)),
            confirmed_by=data.get("confirmed_by"),
            confirmed_at=data.get("confirmed_at"),
            manager_comment=data.get("manager_comment"),
            audit_log=tuple(ShiftAuditLog.from_dict(a) for a in data.get("audit_log") or ()),
        )
