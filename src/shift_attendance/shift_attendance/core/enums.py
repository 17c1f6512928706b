from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Vai trò người dùng dùng cho phân quyền."""

    STAFF = "STAFF"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    @property
    def is_manager(self) -> bool:
        return self in {Role.MANAGER, Role.ADMIN}


class UserStatus(str, Enum):
    WORKING = "WORKING"
    RESIGNED = "RESIGNED"


class AttendanceStatus(str, Enum):
    """Trạng thái điểm danh vào/ra ca."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    EARLY_LEAVE = "EARLY_LEAVE"
    MISSED = "MISSED"


class ShiftStatus(str, Enum):
    """Trạng thái vòng đời của một bản ghi ca trực."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    ABSENT = "ABSENT"


class Direction(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class CaptureStep(str, Enum):
    AWAITING_LOCATION = "AWAITING_LOCATION"
    AWAITING_CAPTURE = "AWAITING_CAPTURE"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class FailureReason(str, Enum):
    OUTSIDE_FENCE = "OUTSIDE_FENCE"
    NO_LOCATION_PERMISSION = "NO_LOCATION_PERMISSION"
    NO_CAPTURE_PERMISSION = "NO_CAPTURE_PERMISSION"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"


class RequestStatus(str, Enum):
    """Trạng thái luồng duyệt yêu cầu nghỉ/đăng ký ca."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RequestType(str, Enum):
    LEAVE = "LEAVE"
    REGISTER = "REGISTER"
