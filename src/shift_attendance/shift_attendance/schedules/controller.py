from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import day_of_week_label
from ..container import Container
from ..core.exceptions import ValidationError
from ..users.controller import public_user
from ..users.model import User
from ..web import json_errors, login_required, manager_required, ok, parse_date, payload


def _offset(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        raise ValidationError("Tuần không hợp lệ")


def register(app: Flask, container: Container) -> None:
    service = container.schedule_service

    def _week(offset: int, branch_id=None):
        days = service.week_dates(container.clock().date(), offset)
        assignments = service.for_range(start=days[0], end=days[-1], branch_id=branch_id)
        return days, [a.to_dict() for a in assignments]

    @app.route("/api/schedules/week", methods=["GET"], endpoint="schedule_week")
    @json_errors
    @manager_required(container)
    def schedule_week(user: User):
        offset = _offset(request.args.get("offset"))
        branch_id = container.report_service.scope_branch(user, request.args.get("branch_id") or None)
        days, assignments = _week(offset, branch_id)
        staff = container.user_service.schedulable_staff(user, branch_id=branch_id)
        return ok(
            offset=offset,
            days=[{"date": d.isoformat(), "label": day_of_week_label(d)} for d in days],
            staff=[public_user(u) for u in staff],
            assignments=assignments,
        )

    @app.route("/api/schedules/toggle", methods=["POST"], endpoint="toggle_assignment")
    @json_errors
    @manager_required(container)
    def toggle_assignment(user: User):
        data = payload()
        work_date = parse_date(data.get("date"))
        if work_date is None:
            raise ValidationError("Vui lòng chọn ngày")
        assignment = service.toggle(
            actor=user,
            user_id=data.get("user_id", ""),
            work_date=work_date,
            shift_type=data.get("shift_type", ""),
            now=container.clock(),
        )
        if assignment is None:
            return ok(message="Đã xóa ca trực.", assignment=None)
        return ok(message="Đã xếp ca trực.", assignment=assignment.to_dict())

    @app.route("/api/schedules/save-week", methods=["POST"], endpoint="save_week")
    @json_errors
    @manager_required(container)
    def save_week(user: User):
        entry = service.save_week(actor=user, offset=_offset(payload().get("offset")), now=container.clock())
        return ok(message="Đã lưu lịch làm việc thành công!", log=entry.to_dict())

    @app.route("/api/schedules/logs", methods=["GET"], endpoint="schedule_logs")
    @json_errors
    @manager_required(container)
    def schedule_logs(user: User):
        return ok(logs=[entry.to_dict() for entry in service.logs()])

    @app.route("/api/schedules/mine", methods=["GET"], endpoint="my_schedule")
    @json_errors
    @login_required(container)
    def my_schedule(user: User):
        days, assignments = _week(_offset(request.args.get("offset")))
        mine = [a for a in assignments if a["user_id"] == user.user_id]
        return ok(days=[d.isoformat() for d in days], assignments=mine)
