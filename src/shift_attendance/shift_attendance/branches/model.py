from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Any, Dict, Mapping, Optional

from ..common.datetime_utils import format_hhmm, parse_hhmm


@dataclass(frozen=True)
class ShiftConfig:
    """Cấu hình một ca làm việc của chi nhánh."""

    name: str
    start: time
    end: time

    @classmethod
    def of(cls, name: str, start: str, end: str) -> "ShiftConfig":
        return cls(name=name, start=parse_hhmm(start), end=parse_hhmm(end))

    @property
    def time_range(self) -> str:
        return f"{format_hhmm(self.start)} - {format_hhmm(self.end)}"

    def to_dict(self) -> dict:
        return {"name": self.name, "start": format_hhmm(self.start), "end": format_hhmm(self.end)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShiftConfig":
        return cls.of(str(data["name"]), str(data["start"]), str(data["end"]))


@dataclass(frozen=True)
class Branch:
    """Thực thể miền (domain): Chi nhánh, kèm toạ độ và bán kính điểm danh."""

    branch_id: str
    name: str
    lat: float
    lng: float
    radius: float
    address: Optional[str] = None
    shifts: Dict[str, ShiftConfig] = field(default_factory=dict)
    is_active: bool = True

    def shift(self, shift_type: str) -> Optional[ShiftConfig]:
        return self.shifts.get(shift_type)

    def to_dict(self) -> dict:
        return {
            "id": self.branch_id,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "radius": self.radius,
            "address": self.address,
            "shifts": {k: v.to_dict() for k, v in self.shifts.items()},
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Branch":
        return cls(
            branch_id=str(data["id"]),
            name=str(data["name"]),
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            radius=float(data["radius"]),
            address=data.get("address"),
            shifts={str(k): ShiftConfig.from_dict(v) for k, v in (data.get("shifts") or {}).items()},
            is_active=bool(data.get("is_active", True)),
        )
