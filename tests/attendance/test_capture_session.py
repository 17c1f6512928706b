from __future__ import annotations

from datetime import date, datetime

import pytest

from conftest import png_data_url

from src.shift_attendance.shift_attendance.attendance.capture import (
    CaptureSession,
    DelayVerifier,
    ReportedPosition,
    UploadedFrameDevice,
    VerificationResult,
)
from src.shift_attendance.shift_attendance.branches.model import Branch
from src.shift_attendance.shift_attendance.core.enums import CaptureStep, Direction, FailureReason
from src.shift_attendance.shift_attendance.core.exceptions import (
    CaptureDeviceUnavailable,
    CaptureError,
    InvalidTransitionError,
    LocationUnavailable,
    OutOfFence,
)
from src.shift_attendance.shift_attendance.geo.fence import Coordinate

BRANCH = Branch(branch_id="1", name="Q1", lat=10.7769, lng=106.7009, radius=100)
INSIDE = Coordinate(10.7770, 106.7009)
FAR = Coordinate(10.7869, 106.7009)


class FakeGeolocation:
    def __init__(self, position=None, error=None):
        self.position = position
        self.error = error
        self.calls = []

    def get_current_position(self, *, high_accuracy, timeout, maximum_age):
        self.calls.append({"high_accuracy": high_accuracy, "timeout": timeout, "maximum_age": maximum_age})
        if self.error:
            raise LocationUnavailable(self.error)
        return self.position


class FakeCamera:
    def __init__(self, frame=None, deny=False):
        self.frame = frame if frame is not None else png_data_url()
        self.deny = deny
        self.acquired = 0
        self.released = 0

    def acquire_video_stream(self, facing="user"):
        if self.deny:
            raise CaptureDeviceUnavailable("denied")
        self.acquired += 1
        return object()

    def capture_frame(self, stream):
        return self.frame

    def release(self, stream):
        self.released += 1


class Reject:
    def verify(self, image):
        return VerificationResult(ok=False, detail="Không nhận diện được khuôn mặt")


def _session(geo, camera, verifier=None, **kwargs):
    return CaptureSession(
        direction=Direction.CHECK_IN,
        branch=BRANCH,
        geolocation=geo,
        device=camera,
        verifier=verifier or DelayVerifier(0),
        clock=lambda: datetime(2026, 3, 10, 8, 7, 45),
        **kwargs,
    )


def test_happy_path_produces_result_and_releases_camera():
    geo, camera = FakeGeolocation(INSIDE), FakeCamera()
    session = _session(geo, camera)

    result = session.run()

    assert session.step == CaptureStep.DONE
    assert result.captured_at == "08:07"
    assert result.captured_on == date(2026, 3, 10)
    assert result.direction == Direction.CHECK_IN
    assert result.photo.startswith("data:image/png;base64,")
    assert result.distance_m < 100
    assert camera.acquired == 1 and camera.released == 1
    assert not session.device_acquired


def test_location_request_is_fresh_and_high_accuracy():
    geo = FakeGeolocation(INSIDE)
    _session(geo, FakeCamera(), location_timeout=3.0).locate()
    assert geo.calls == [{"high_accuracy": True, "timeout": 3.0, "maximum_age": 0}]


def test_outside_fence_fails_before_camera_opens():
    camera = FakeCamera()
    session = _session(FakeGeolocation(FAR), camera)

    with pytest.raises(OutOfFence) as exc:
        session.locate()

    assert session.step == CaptureStep.FAILED
    assert session.failure == FailureReason.OUTSIDE_FENCE
    assert exc.value.reason == FailureReason.OUTSIDE_FENCE
    assert "Bạn đang cách chi nhánh 1112m" in str(exc.value)
    assert "(Yêu cầu < 100m)" in str(exc.value)
    assert camera.acquired == 0


def test_invalid_coordinates_fail_as_outside_fence():
    session = _session(FakeGeolocation(Coordinate(float("nan"), float("nan"))), FakeCamera())
    with pytest.raises(OutOfFence):
        session.locate()
    assert session.failure == FailureReason.OUTSIDE_FENCE
    assert "không hợp lệ" in session.error_message


def test_location_denied():
    session = _session(FakeGeolocation(error="User denied Geolocation"), FakeCamera())
    with pytest.raises(LocationUnavailable):
        session.locate()
    assert session.step == CaptureStep.FAILED
    assert session.failure == FailureReason.NO_LOCATION_PERMISSION


def test_camera_denied():
    session = _session(FakeGeolocation(INSIDE), FakeCamera(deny=True))
    session.locate()
    with pytest.raises(CaptureDeviceUnavailable):
        session.open_camera()
    assert session.failure == FailureReason.NO_CAPTURE_PERMISSION


def test_verification_failure_releases_camera():
    camera = FakeCamera()
    session = _session(FakeGeolocation(INSIDE), camera, verifier=Reject())

    with pytest.raises(CaptureError) as exc:
        session.run()

    assert exc.value.reason == FailureReason.VERIFICATION_FAILED
    assert session.step == CaptureStep.FAILED
    assert session.result is None
    assert camera.released == camera.acquired == 1


def test_garbage_frame_is_a_verification_failure():
    camera = FakeCamera(frame=b"not an image")
    session = _session(FakeGeolocation(INSIDE), camera)
    with pytest.raises(CaptureError):
        session.run()
    assert session.failure == FailureReason.VERIFICATION_FAILED
    assert camera.released == 1


def test_retry_after_failure_starts_over():
    geo = FakeGeolocation(FAR)
    session = _session(geo, FakeCamera())
    with pytest.raises(OutOfFence):
        session.locate()

    session.retry()
    assert session.step == CaptureStep.AWAITING_LOCATION
    assert session.failure is None

    geo.position = INSIDE
    session.locate()
    assert session.step == CaptureStep.AWAITING_CAPTURE


def test_retry_only_from_failed():
    with pytest.raises(InvalidTransitionError):
        _session(FakeGeolocation(INSIDE), FakeCamera()).retry()


def test_cancel_releases_open_camera():
    camera = FakeCamera()
    session = _session(FakeGeolocation(INSIDE), camera)
    session.locate()
    session.open_camera()
    assert session.device_acquired

    session.cancel()

    assert session.step == CaptureStep.CANCELLED
    assert camera.released == 1
    assert not session.is_open


def test_leaving_context_cancels_and_releases():
    camera = FakeCamera()
    with _session(FakeGeolocation(INSIDE), camera) as session:
        session.locate()
        session.open_camera()
    assert session.step == CaptureStep.CANCELLED
    assert camera.released == 1


def test_cannot_cancel_after_done():
    session = _session(FakeGeolocation(INSIDE), FakeCamera())
    session.run()
    with pytest.raises(InvalidTransitionError):
        session.cancel()


def test_steps_must_follow_order():
    session = _session(FakeGeolocation(INSIDE), FakeCamera())
    with pytest.raises(InvalidTransitionError):
        session.capture()


def test_delay_verifier_waits_then_accepts():
    slept = []
    verdict = DelayVerifier(1.5, sleep=slept.append).verify(None)
    assert verdict.ok
    assert slept == [1.5]


def test_request_adapters():
    with pytest.raises(LocationUnavailable):
        ReportedPosition(None).get_current_position(high_accuracy=True, timeout=5, maximum_age=0)

    device = UploadedFrameDevice(None)
    with pytest.raises(CaptureDeviceUnavailable):
        device.acquire_video_stream()

    device = UploadedFrameDevice("data:image/png;base64,AAAA")
    stream = device.acquire_video_stream()
    assert device.capture_frame(stream) == "data:image/png;base64,AAAA"
    device.release(stream)
    assert device.released
