from __future__ import annotations

from typing import Optional

from flask import Flask

from ..branches.service import shift_name
from ..container import Container
from ..core.enums import Direction
from ..core.exceptions import AuthorizationError
from ..geo.fence import Coordinate
from ..reconciliation.model import ClosingDraft
from ..users.model import User
from ..web import json_errors, login_required, ok, payload
from .capture import ReportedPosition, UploadedFrameDevice
from .model import ShiftRecord
from .service import ShiftRecordService


def _reported_coordinate(data) -> Optional[Coordinate]:
    if data.get("lat") in (None, "") or data.get("lng") in (None, ""):
        return None
    try:
        return Coordinate(float(data["lat"]), float(data["lng"]))
    except (TypeError, ValueError):
        # Unparseable coordinates fail the fence check instead of counting as "no permission".
        return Coordinate(float("nan"), float("nan"))


def register(app: Flask, container: Container) -> None:
    service: ShiftRecordService = container.shift_record_service

    def _view(record: ShiftRecord) -> dict:
        branch = container.state.branches.get(record.branch_id) if record.branch_id else None
        config = branch.shift(record.shift_type) if branch else None
        data = record.to_dict()
        data.update(
            shift_name=shift_name(branch, record.shift_type),
            time_range=config.time_range if config else None,
            can_check_in=service.can_check_in(record),
            can_check_out=service.can_check_out(record),
        )
        return data

    def _own_record(user: User, record_id: str) -> ShiftRecord:
        record = service.get(record_id)
        if record.user_id != user.user_id:
            raise AuthorizationError("Đây không phải ca trực của bạn")
        return record

    def _capture(user: User, record_id: str, direction: Direction):
        record = _own_record(user, record_id)
        data = payload()
        session = service.start_capture(
            record,
            direction,
            geolocation=ReportedPosition(_reported_coordinate(data), error=data.get("location_error")),
            device=UploadedFrameDevice(data.get("photo")),
            verifier=container.verifier,
            location_timeout=container.location_timeout,
        )
        return record, session.run()

    @app.route("/api/shifts/today", methods=["GET"], endpoint="todays_shifts")
    @json_errors
    @login_required(container)
    def todays_shifts(user: User):
        records = service.todays_shifts(user)
        return ok(shifts=[_view(r) for r in records])

    @app.route("/api/shifts/history", methods=["GET"], endpoint="shift_history")
    @json_errors
    @login_required(container)
    def shift_history(user: User):
        return ok(shifts=[_view(r) for r in service.history(user)])

    @app.route("/api/shifts/<record_id>/check-in", methods=["POST"], endpoint="check_in")
    @json_errors
    @login_required(container)
    def check_in(user: User, record_id: str):
        record, result = _capture(user, record_id, Direction.CHECK_IN)
        updated = service.check_in(record, result)
        return ok(
            message="Điểm danh vào ca thành công!",
            shift=_view(updated),
            distance_m=round(result.distance_m),
        )

    @app.route("/api/shifts/<record_id>/check-out", methods=["POST"], endpoint="check_out")
    @json_errors
    @login_required(container)
    def check_out(user: User, record_id: str):
        record, result = _capture(user, record_id, Direction.CHECK_OUT)
        updated = service.check_out(record, result)
        return ok(
            message="Điểm danh ra ca thành công!",
            shift=_view(updated),
            distance_m=round(result.distance_m),
            closing_form=True,
        )

    @app.route("/api/shifts/<record_id>/closing", methods=["POST"], endpoint="submit_closing")
    @json_errors
    @login_required(container)
    def submit_closing(user: User, record_id: str):
        record = service.get(record_id)
        closing = ClosingDraft.from_mapping(payload()).to_closing_data()
        updated = service.submit_closing(record, closing, actor=user)
        return ok(message="Đã lưu báo cáo chốt ca thành công!", shift=_view(updated))

    @app.route("/api/shifts/<record_id>/skip-closing", methods=["POST"], endpoint="skip_closing")
    @json_errors
    @login_required(container)
    def skip_closing(user: User, record_id: str):
        record = service.get(record_id)
        updated = service.skip_closing(record, actor=user)
        return ok(shift=_view(updated))
