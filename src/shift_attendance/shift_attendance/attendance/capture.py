"""Attendance capture process: location gate, photo capture, verification.

The session is a small linear state machine::

    AWAITING_LOCATION -> AWAITING_CAPTURE -> PROCESSING -> DONE
            |                   |                |
            +------ FAILED <----+----------------+      (retry -> AWAITING_LOCATION)

Any state before DONE may be cancelled. The capture device is released on
every exit path (done, failure, cancel, context-manager exit). Nothing is
persisted here; the caller records the :class:`CaptureResult`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional, Protocol, Union

from ..branches.model import Branch
from ..common.datetime_utils import format_hhmm, now_local
from ..core.constants import LOCATION_TIMEOUT_SECONDS, VERIFICATION_DELAY_SECONDS
from ..core.enums import CaptureStep, Direction, FailureReason
from ..core.exceptions import (
    CaptureDeviceUnavailable,
    CaptureError,
    InvalidTransitionError,
    LocationUnavailable,
    OutOfFence,
    ValidationError,
)
from ..geo.fence import Coordinate, FenceResult, check_fence
from .photo import CapturedImage, decode_photo

logger = logging.getLogger(__name__)


class GeolocationProvider(Protocol):
    def get_current_position(self, *, high_accuracy: bool, timeout: float, maximum_age: float) -> Coordinate:
        """Raise LocationUnavailable on permission denial or timeout."""

        raise NotImplementedError


class CaptureDeviceProvider(Protocol):
    def acquire_video_stream(self, facing: str = "user") -> Any:
        """Raise CaptureDeviceUnavailable when permission is denied or no device exists."""

        raise NotImplementedError

    def capture_frame(self, stream: Any) -> Union[bytes, str]:
        raise NotImplementedError

    def release(self, stream: Any) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    detail: Optional[str] = None


class Verifier(Protocol):
    def verify(self, image: CapturedImage) -> VerificationResult:
        raise NotImplementedError


class DelayVerifier:
    """Placeholder verification: waits a fixed delay, then accepts.

    Swap in a real liveness/biometric client implementing ``Verifier``.
    """

    def __init__(self, delay_seconds: float = VERIFICATION_DELAY_SECONDS, *, sleep: Callable[[float], None] = time.sleep):
        self._delay = float(delay_seconds)
        self._sleep = sleep

    def verify(self, image: CapturedImage) -> VerificationResult:
        if self._delay > 0:
            self._sleep(self._delay)
        return VerificationResult(ok=True)


@dataclass(frozen=True)
class CaptureResult:
    direction: Direction
    image: CapturedImage
    captured_at: str
    captured_on: date
    distance_m: float

    @property
    def photo(self) -> str:
        return self.image.to_data_url()


class CaptureSession:
    def __init__(
        self,
        *,
        direction: Direction,
        branch: Branch,
        geolocation: GeolocationProvider,
        device: CaptureDeviceProvider,
        verifier: Optional[Verifier] = None,
        clock: Callable[[], datetime] = now_local,
        location_timeout: float = LOCATION_TIMEOUT_SECONDS,
    ):
        self.direction = Direction(direction)
        self.branch = branch
        self._geolocation = geolocation
        self._device = device
        self._verifier = verifier or DelayVerifier()
        self._clock = clock
        self._location_timeout = float(location_timeout)

        self.step = CaptureStep.AWAITING_LOCATION
        self.failure: Optional[FailureReason] = None
        self.error_message: Optional[str] = None
        self.fence: Optional[FenceResult] = None
        self.result: Optional[CaptureResult] = None
        self._stream: Any = None

    def __enter__(self) -> "CaptureSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.step not in {CaptureStep.DONE, CaptureStep.CANCELLED, CaptureStep.FAILED}:
            self.cancel()
        self._release()

    @property
    def is_open(self) -> bool:
        return self.step not in {CaptureStep.DONE, CaptureStep.CANCELLED}

    @property
    def device_acquired(self) -> bool:
        return self._stream is not None

    def locate(self) -> FenceResult:
        self._require(CaptureStep.AWAITING_LOCATION)
        try:
            position = self._geolocation.get_current_position(
                high_accuracy=True,
                timeout=self._location_timeout,
                maximum_age=0,
            )
        except LocationUnavailable as e:
            self._fail(FailureReason.NO_LOCATION_PERMISSION, str(e) or "Không thể truy cập vị trí. Vui lòng cấp quyền vị trí cho trình duyệt.")
            raise

        fence = check_fence(position, self.branch)
        self.fence = fence
        if not fence.inside:
            if fence.rounded_distance < 0:
                message = f"Tọa độ GPS không hợp lệ: {position.lat}, {position.lng}"
            else:
                message = (
                    f"Bạn đang cách chi nhánh {fence.rounded_distance}m. (Yêu cầu < {self.branch.radius:g}m). "
                    f"Tọa độ GPS: {position.lat:.4f}, {position.lng:.4f}"
                )
            self._fail(FailureReason.OUTSIDE_FENCE, message)
            raise OutOfFence(
                message,
                distance_m=fence.distance_m,
                lat=position.lat,
                lng=position.lng,
                radius_m=self.branch.radius,
            )

        self.step = CaptureStep.AWAITING_CAPTURE
        return fence

    def open_camera(self) -> None:
        self._require(CaptureStep.AWAITING_CAPTURE)
        if self._stream is not None:
            return
        try:
            self._stream = self._device.acquire_video_stream("user")
        except CaptureDeviceUnavailable as e:
            self._fail(FailureReason.NO_CAPTURE_PERMISSION, str(e) or "Không thể mở Camera. Vui lòng cấp quyền.")
            raise

    def capture(self) -> CaptureResult:
        self._require(CaptureStep.AWAITING_CAPTURE)
        if self._stream is None:
            self.open_camera()

        try:
            frame = self._device.capture_frame(self._stream)
            image = decode_photo(frame)
        except CaptureDeviceUnavailable as e:
            self._fail(FailureReason.NO_CAPTURE_PERMISSION, str(e) or "Không thể mở Camera. Vui lòng cấp quyền.")
            raise
        except ValidationError as e:
            self._fail(FailureReason.VERIFICATION_FAILED, str(e))
            raise CaptureError(str(e), reason=FailureReason.VERIFICATION_FAILED)

        self.step = CaptureStep.PROCESSING
        try:
            verdict = self._verifier.verify(image)
        finally:
            self._release()

        if not verdict.ok:
            message = verdict.detail or "Xác thực khuôn mặt không thành công"
            self._fail(FailureReason.VERIFICATION_FAILED, message)
            raise CaptureError(message, reason=FailureReason.VERIFICATION_FAILED)

        captured = self._clock()
        self.result = CaptureResult(
            direction=self.direction,
            image=image,
            captured_at=format_hhmm(captured),
            captured_on=captured.date(),
            distance_m=self.fence.distance_m if self.fence else 0.0,
        )
        self.step = CaptureStep.DONE
        logger.info(
            "capture done: %s at %s (%sm from branch %s)",
            self.direction.value,
            self.result.captured_at,
            self.fence.rounded_distance if self.fence else "?",
            self.branch.branch_id,
        )
        return self.result

    def retry(self) -> None:
        self._require(CaptureStep.FAILED)
        self.failure = None
        self.error_message = None
        self.fence = None
        self.step = CaptureStep.AWAITING_LOCATION

    def cancel(self) -> None:
        if self.step == CaptureStep.DONE:
            raise InvalidTransitionError("Phiên điểm danh đã hoàn tất")
        self._release()
        self.step = CaptureStep.CANCELLED

    def run(self) -> CaptureResult:
        """Drive location -> camera -> capture without user interaction."""
        with self:
            self.locate()
            self.open_camera()
            return self.capture()

    def _require(self, step: CaptureStep) -> None:
        if self.step != step:
            raise InvalidTransitionError(f"Không thể thực hiện ở bước {self.step.value}")

    def _fail(self, reason: FailureReason, message: str) -> None:
        self._release()
        self.step = CaptureStep.FAILED
        self.failure = reason
        self.error_message = message
        logger.info("capture failed: %s (%s)", reason.value, message)

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            self._device.release(stream)


class ReportedPosition:
    """Geolocation provider for positions reported by the browser with the request."""

    def __init__(self, position: Optional[Coordinate], *, error: Optional[str] = None):
        self._position = position
        self._error = error

    def get_current_position(self, *, high_accuracy: bool, timeout: float, maximum_age: float) -> Coordinate:
        if self._position is None:
            raise LocationUnavailable(self._error or "Không thể truy cập vị trí. Vui lòng cấp quyền vị trí cho trình duyệt.")
        return self._position


class UploadedFrameDevice:
    """Capture device backed by a photo uploaded with the request."""

    def __init__(self, photo: Optional[Union[bytes, str]]):
        self._photo = photo
        self.released = False

    def acquire_video_stream(self, facing: str = "user") -> Any:
        if not self._photo:
            raise CaptureDeviceUnavailable("Không thể mở Camera. Vui lòng cấp quyền.")
        self.released = False
        return self._photo

    def capture_frame(self, stream: Any) -> Union[bytes, str]:
        return stream

    def release(self, stream: Any) -> None:
        self.released = True
