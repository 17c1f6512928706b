from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..container import Container
from ..core.enums import Role, UserStatus
from ..core.exceptions import ValidationError
from ..web import admin_required, json_errors, login_required, ok, payload
from .model import User


def public_user(user: User) -> dict:
    data = user.to_dict()
    data.pop("password_hash", None)
    return data


def _role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError("Loại tài khoản không hợp lệ")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/login", methods=["POST"], endpoint="login")
    @json_errors
    def login():
        data = payload()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["role"] = s_user.role.value
        session["branch_id"] = s_user.branch_id

        user = container.user_service.get(s_user.user_id)
        return ok(message="Đăng nhập thành công!", user=public_user(user), must_change_password=s_user.must_change_password)

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok(message="Đã đăng xuất hệ thống.")

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @json_errors
    @login_required(container)
    def me(user: User):
        return ok(user=public_user(user), must_change_password=user.is_first_login)

    @app.route("/api/me/password", methods=["POST"], endpoint="change_password")
    @json_errors
    @login_required(container)
    def change_password(user: User):
        data = payload()
        container.user_service.change_password(
            user_id=user.user_id,
            new_password=data.get("new_password", ""),
            confirm_password=data.get("confirm_password", ""),
        )
        return ok(message="Đổi mật khẩu thành công!")

    @app.route("/api/me/profile", methods=["PATCH"], endpoint="update_profile")
    @json_errors
    @login_required(container)
    def update_profile(user: User):
        data = payload()
        updated = container.user_service.update_profile(
            user_id=user.user_id,
            name=data.get("name"),
            email=data.get("email"),
            avatar=data.get("avatar"),
        )
        return ok(user=public_user(updated))

    @app.route("/api/me/regulations/<regulation_id>", methods=["POST"], endpoint="acknowledge_regulation")
    @json_errors
    @login_required(container)
    def acknowledge_regulation(user: User, regulation_id: str):
        updated = container.user_service.acknowledge_regulation(user_id=user.user_id, regulation_id=regulation_id)
        return ok(confirmed_regulations=list(updated.confirmed_regulations))

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @json_errors
    @login_required(container)
    def list_users(user: User):
        return ok(users=[public_user(u) for u in container.user_service.visible_to(user)])

    @app.route("/api/users", methods=["POST"], endpoint="add_user")
    @json_errors
    @admin_required(container)
    def add_user(user: User):
        data = payload()
        created = container.user_service.create_account(
            actor=user,
            name=data.get("name", ""),
            username=data.get("username", ""),
            role=_role(data.get("role", Role.STAFF.value)),
            branch_id=data.get("branch_id") or None,
            email=data.get("email"),
            password=data.get("password") or None,
        )
        return ok(201, message="Thêm nhân viên thành công!", user=public_user(created))

    @app.route("/api/users/<user_id>", methods=["PUT"], endpoint="edit_user")
    @json_errors
    @admin_required(container)
    def edit_user(user: User, user_id: str):
        data = payload()
        status = data.get("status")
        try:
            status = UserStatus(status) if status else None
        except ValueError:
            raise ValidationError("Trạng thái không hợp lệ")
        updated = container.user_service.update_account(
            actor=user,
            user_id=user_id,
            name=data.get("name"),
            email=data.get("email"),
            role=_role(data["role"]) if data.get("role") else None,
            branch_id=data.get("branch_id"),
            status=status,
        )
        return ok(user=public_user(updated))

    @app.route("/api/users/<user_id>/toggle-status", methods=["POST"], endpoint="toggle_user_status")
    @json_errors
    @admin_required(container)
    def toggle_user_status(user: User, user_id: str):
        updated = container.user_service.toggle_status(actor=user, user_id=user_id)
        return ok(user=public_user(updated))

    @app.route("/api/users/<user_id>/reset-password", methods=["POST"], endpoint="reset_password")
    @json_errors
    @admin_required(container)
    def reset_password(user: User, user_id: str):
        container.user_service.reset_password(actor=user, user_id=user_id)
        return ok(message="Đã reset thành công về mật khẩu mặc định.")

    @app.route("/api/users/<user_id>", methods=["DELETE"], endpoint="delete_user")
    @json_errors
    @admin_required(container)
    def delete_user(user: User, user_id: str):
        container.user_service.delete_user(actor=user, user_id=user_id)
        return ok(message="Đã xóa nhân viên.")

