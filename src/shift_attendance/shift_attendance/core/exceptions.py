from __future__ import annotations

from typing import Optional

from .enums import FailureReason


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(ValidationError):
    """Raised when a referenced record does not exist."""


class InvalidTransitionError(DomainError):
    """Raised when an action is not allowed from the current state."""


class CaptureError(DomainError):
    """Recoverable failure of an attendance capture session."""

    reason: FailureReason = FailureReason.VERIFICATION_FAILED

    def __init__(self, message: str, *, reason: Optional[FailureReason] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class LocationUnavailable(CaptureError):
    reason = FailureReason.NO_LOCATION_PERMISSION


class OutOfFence(CaptureError):
    reason = FailureReason.OUTSIDE_FENCE

    def __init__(self, message: str, *, distance_m: float, lat: float, lng: float, radius_m: float):
        super().__init__(message)
        self.distance_m = distance_m
        self.lat = lat
        self.lng = lng
        self.radius_m = radius_m


class CaptureDeviceUnavailable(CaptureError):
    reason = FailureReason.NO_CAPTURE_PERMISSION


class DataIntegrityWarning(UserWarning):
    """Non-fatal: data references something that is not configured."""
