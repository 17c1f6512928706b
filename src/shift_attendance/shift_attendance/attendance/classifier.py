from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..branches.model import ShiftConfig
from ..common.datetime_utils import TimeLike, to_minutes
from ..core.constants import DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AttendanceStatus, Direction


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


def classify(
    actual_time: TimeLike,
    shift: ShiftConfig,
    direction: Direction,
    *,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
) -> AttendanceStatus:
    """Derive the attendance status of one check-in or check-out.

    Check-in is LATE only past ``start + grace_minutes``; check-out is
    EARLY_LEAVE as soon as it is before ``end`` (no grace on exit). Never
    returns MISSED: absence is a reporting-time derivation.
    """
    return decide(actual_time, shift, direction, grace_minutes=grace_minutes).status


def decide(
    actual_time: TimeLike,
    shift: ShiftConfig,
    direction: Direction,
    *,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
) -> StatusDecision:
    actual = to_minutes(actual_time)

    if Direction(direction) == Direction.CHECK_IN:
        boundary = to_minutes(shift.start)
        late_by = actual - boundary
        if late_by > grace_minutes:
            return StatusDecision(AttendanceStatus.LATE, note=f"Đi muộn {late_by} phút")
        return StatusDecision(AttendanceStatus.ON_TIME)

    boundary = to_minutes(shift.end)
    if actual < boundary:
        return StatusDecision(AttendanceStatus.EARLY_LEAVE, note=f"Về sớm {boundary - actual} phút")
    return StatusDecision(AttendanceStatus.ON_TIME)
