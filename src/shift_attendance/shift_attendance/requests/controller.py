from __future__ import annotations

from flask import Flask

from ..container import Container
from ..core.enums import RequestStatus, RequestType
from ..core.exceptions import ValidationError
from ..users.model import User
from ..web import json_errors, login_required, manager_required, ok, parse_date, payload


def register(app: Flask, container: Container) -> None:
    service = container.request_service

    @app.route("/api/requests", methods=["GET"], endpoint="list_requests")
    @json_errors
    @login_required(container)
    def list_requests(user: User):
        rows = sorted(service.visible_to(user), key=lambda r: r.work_date, reverse=True)
        return ok(requests=[r.to_dict() for r in rows])

    @app.route("/api/requests", methods=["POST"], endpoint="create_request")
    @json_errors
    @login_required(container)
    def create_request(user: User):
        data = payload()
        work_date = parse_date(data.get("date"))
        if work_date is None:
            raise ValidationError("Vui lòng chọn ngày")
        try:
            request_type = RequestType(data.get("type", RequestType.LEAVE.value))
        except ValueError:
            raise ValidationError("Loại yêu cầu không hợp lệ")
        req = service.create(
            user=user,
            work_date=work_date,
            request_type=request_type,
            reason=data.get("reason", ""),
            shift_type=data.get("shift_type") or None,
        )
        return ok(201, message="Đã gửi yêu cầu.", request=req.to_dict())

    @app.route("/api/requests/<request_id>/decision", methods=["POST"], endpoint="decide_request")
    @json_errors
    @manager_required(container)
    def decide_request(user: User, request_id: str):
        try:
            status = RequestStatus(payload().get("status"))
        except ValueError:
            raise ValidationError("Trạng thái duyệt không hợp lệ")
        req = service.decide(actor=user, request_id=request_id, status=status)
        return ok(message="Đã cập nhật yêu cầu.", request=req.to_dict())
