from __future__ import annotations

from typing import Dict, Optional

from flask import Flask

from ..container import Container
from ..core.exceptions import ValidationError
from ..users.model import User
from ..web import admin_required, json_errors, login_required, ok, payload
from .model import ShiftConfig


def _shifts_from(data) -> Optional[Dict[str, ShiftConfig]]:
    raw = data.get("shifts")
    if raw is None:
        return None
    try:
        return {str(key): ShiftConfig.from_dict(value) for key, value in raw.items()}
    except (AttributeError, KeyError, TypeError):
        raise ValidationError("Cấu hình ca không hợp lệ")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/branches", methods=["GET"], endpoint="list_branches")
    @json_errors
    @login_required(container)
    def list_branches(user: User):
        branches = container.branch_service.list()
        return ok(branches=[b.to_dict() for b in branches])

    @app.route("/api/branches", methods=["POST"], endpoint="add_branch")
    @json_errors
    @admin_required(container)
    def add_branch(user: User):
        data = payload()
        branch = container.branch_service.save(
            actor=user,
            name=data.get("name", ""),
            lat=data.get("lat"),
            lng=data.get("lng"),
            radius=data.get("radius", 100),
            address=data.get("address"),
            shifts=_shifts_from(data),
        )
        return ok(201, message="Đã lưu cấu hình chi nhánh thành công!", branch=branch.to_dict())

    @app.route("/api/branches/<branch_id>", methods=["PUT"], endpoint="edit_branch")
    @json_errors
    @admin_required(container)
    def edit_branch(user: User, branch_id: str):
        current = container.branch_service.get(branch_id)
        data = payload()
        branch = container.branch_service.save(
            actor=user,
            branch_id=branch_id,
            name=data.get("name", current.name),
            lat=data.get("lat", current.lat),
            lng=data.get("lng", current.lng),
            radius=data.get("radius", current.radius),
            address=data.get("address", current.address),
            shifts=_shifts_from(data),
        )
        return ok(message="Đã lưu cấu hình chi nhánh thành công!", branch=branch.to_dict())

    @app.route("/api/branches/<branch_id>/toggle", methods=["POST"], endpoint="toggle_branch")
    @json_errors
    @admin_required(container)
    def toggle_branch(user: User, branch_id: str):
        branch = container.branch_service.toggle_active(actor=user, branch_id=branch_id)
        return ok(branch=branch.to_dict())

    @app.route("/api/branches/<branch_id>/shifts", methods=["POST"], endpoint="add_branch_shift")
    @json_errors
    @admin_required(container)
    def add_branch_shift(user: User, branch_id: str):
        branch = container.branch_service.add_shift(actor=user, branch_id=branch_id)
        return ok(201, branch=branch.to_dict())

    @app.route("/api/branches/<branch_id>/shifts/<shift_type>", methods=["PUT"], endpoint="edit_branch_shift")
    @json_errors
    @admin_required(container)
    def edit_branch_shift(user: User, branch_id: str, shift_type: str):
        data = payload()
        branch = container.branch_service.set_shift(
            actor=user,
            branch_id=branch_id,
            shift_type=shift_type,
            name=data.get("name", ""),
            start=data.get("start", ""),
            end=data.get("end", ""),
        )
        return ok(branch=branch.to_dict())

    @app.route("/api/branches/<branch_id>/shifts/<shift_type>", methods=["DELETE"], endpoint="remove_branch_shift")
    @json_errors
    @admin_required(container)
    def remove_branch_shift(user: User, branch_id: str, shift_type: str):
        branch = container.branch_service.remove_shift(actor=user, branch_id=branch_id, shift_type=shift_type)
        return ok(branch=branch.to_dict())
