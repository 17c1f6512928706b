from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date
from ..core.enums import RequestStatus, RequestType


@dataclass(frozen=True)
class LeaveRequest:
    """Yêu cầu nghỉ phép (LEAVE) hoặc đăng ký ca (REGISTER)."""

    request_id: str
    user_id: str
    work_date: date
    day_of_week: str
    request_type: RequestType
    reason: str
    status: RequestStatus = RequestStatus.PENDING
    user_name: Optional[str] = None
    shift_type: Optional[str] = None
    branch_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "date": self.work_date.isoformat(),
            "day_of_week": self.day_of_week,
            "type": self.request_type.value,
            "reason": self.reason,
            "status": self.status.value,
            "shift_type": self.shift_type,
            "branch_id": self.branch_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LeaveRequest":
        return cls(
            request_id=str(data["id"]),
            user_id=str(data["user_id"]),
            user_name=data.get("user_name"),
            work_date=parse_iso_date(str(data["date"])),
            day_of_week=str(data.get("day_of_week") or ""),
            request_type=RequestType(data["type"]),
            reason=str(data.get("reason") or ""),
            status=RequestStatus(data.get("status") or RequestStatus.PENDING.value),
            shift_type=data.get("shift_type"),
            branch_id=data.get("branch_id"),
        )
