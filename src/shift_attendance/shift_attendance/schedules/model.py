from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from ..common.datetime_utils import parse_iso_date


@dataclass(frozen=True)
class Assignment:
    """Planned work: one user on one shift type on one day."""

    assignment_id: str
    user_id: str
    work_date: date
    shift_type: str
    updated_at: str
    updated_by: str

    def to_dict(self) -> dict:
        return {
            "id": self.assignment_id,
            "user_id": self.user_id,
            "date": self.work_date.isoformat(),
            "shift_type": self.shift_type,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Assignment":
        return cls(
            assignment_id=str(data["id"]),
            user_id=str(data["user_id"]),
            work_date=parse_iso_date(str(data["date"])),
            shift_type=str(data["shift_type"]),
            updated_at=str(data.get("updated_at") or ""),
            updated_by=str(data.get("updated_by") or ""),
        )


@dataclass(frozen=True)
class ScheduleLog:
    log_id: str
    action: str
    timestamp: str
    user_name: str

    def to_dict(self) -> dict:
        return {"id": self.log_id, "action": self.action, "timestamp": self.timestamp, "user_name": self.user_name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScheduleLog":
        return cls(
            log_id=str(data["id"]),
            action=str(data["action"]),
            timestamp=str(data["timestamp"]),
            user_name=str(data.get("user_name") or ""),
        )
