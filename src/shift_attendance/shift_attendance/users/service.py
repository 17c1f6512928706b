from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role, UserStatus
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..storage.state import Collection
from .model import User

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "123"
MIN_PASSWORD_LENGTH = 6
AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: str
    name: str
    role: Role
    branch_id: Optional[str]
    must_change_password: bool


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: Collection[User]):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        username = (username or "").strip()
        matches = self._users.find(lambda u: u.username == username)
        user = matches[0] if matches else None
        if not user or not user.is_working:
            raise AuthenticationError("Sai tài khoản hoặc mật khẩu")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes or corrupted values
            ok = False

        if not ok:
            logger.info("failed login for %r", username)
            raise AuthenticationError("Sai tài khoản hoặc mật khẩu")

        return SessionUser(
            user_id=user.user_id,
            name=user.name,
            role=user.role,
            branch_id=user.branch_id,
            must_change_password=user.is_first_login,
        )


class UserService:
    """Use case: manage accounts (admin) and self-service profile changes."""

    def __init__(self, users: Collection[User]):
        self._users = users

    def get(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if not user:
            raise NotFoundError("Nhân viên không tồn tại")
        return user

    def visible_to(self, actor: User) -> List[User]:
        if actor.role == Role.ADMIN:
            return self._users.all()
        if actor.role == Role.MANAGER:
            return self._users.find(lambda u: u.branch_id == actor.branch_id and u.role != Role.ADMIN)
        return [actor]

    def schedulable_staff(self, actor: User, *, branch_id: Optional[str] = None) -> List[User]:
        """Working, non-admin users a manager may put on the schedule."""
        if actor.role == Role.MANAGER:
            branch_id = actor.branch_id
        return self._users.find(
            lambda u: u.role != Role.ADMIN and u.is_working and (branch_id is None or u.branch_id == branch_id)
        )

    def create_account(
        self,
        *,
        actor: User,
        name: str,
        username: str,
        role: Role,
        branch_id: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        self._require_admin(actor)
        name = require_non_empty(name, "Họ tên")
        username = require_non_empty(username, "Tên đăng nhập")
        role = Role(role)
        if self._users.find(lambda u: u.username == username):
            raise ValidationError("Tên đăng nhập đã tồn tại")
        if role != Role.ADMIN and not branch_id:
            raise ValidationError("Vui lòng chọn chi nhánh")

        user = User(
            user_id=f"staff_{uuid.uuid4().hex[:12]}",
            username=username,
            name=name,
            role=role,
            password_hash=generate_password_hash(password or DEFAULT_PASSWORD),
            branch_id=branch_id if role != Role.ADMIN else None,
            email=(email or "").strip() or None,
            avatar=AVATAR_URL.format(seed=username),
            is_first_login=password is None,
        )
        logger.info("account %s (%s) created by %s", username, role.value, actor.username)
        return self._users.upsert(user)

    def update_account(
        self,
        *,
        actor: User,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[Role] = None,
        branch_id: Optional[str] = None,
        status: Optional[UserStatus] = None,
    ) -> User:
        self._require_admin(actor)
        user = self.get(user_id)
        return self._users.upsert(
            replace(
                user,
                name=require_non_empty(name, "Họ tên") if name is not None else user.name,
                email=email if email is not None else user.email,
                role=Role(role) if role is not None else user.role,
                branch_id=branch_id if branch_id is not None else user.branch_id,
                status=UserStatus(status) if status is not None else user.status,
            )
        )

    def toggle_status(self, *, actor: User, user_id: str) -> User:
        self._require_admin(actor)
        user = self.get(user_id)
        if user.user_id == actor.user_id:
            raise ValidationError("Không thể tự khoá tài khoản của mình")
        status = UserStatus.RESIGNED if user.is_working else UserStatus.WORKING
        logger.info("account %s -> %s", user.username, status.value)
        return self._users.upsert(replace(user, status=status))

    def reset_password(self, *, actor: User, user_id: str) -> User:
        self._require_admin(actor)
        user = self.get(user_id)
        return self._users.upsert(replace(user, password_hash=generate_password_hash(DEFAULT_PASSWORD), is_first_login=True))

    def delete_user(self, *, actor: User, user_id: str) -> None:
        self._require_admin(actor)
        user = self.get(user_id)
        if user.role == Role.ADMIN:
            raise ValidationError("Không thể xóa tài khoản Admin")
        self._users.remove(user_id)
        logger.info("account %s deleted by %s", user.username, actor.username)

    def change_password(self, *, user_id: str, new_password: str, confirm_password: str) -> User:
        require_min_length(new_password, "Mật khẩu", MIN_PASSWORD_LENGTH)
        if new_password != confirm_password:
            raise ValidationError("Mật khẩu xác nhận không khớp.")
        user = self.get(user_id)
        return self._users.upsert(replace(user, password_hash=generate_password_hash(new_password), is_first_login=False))

    def acknowledge_regulation(self, *, user_id: str, regulation_id: str) -> User:
        regulation_id = require_non_empty(regulation_id, "Mã nội quy")
        user = self.get(user_id)
        if regulation_id in user.confirmed_regulations:
            return user
        return self._users.upsert(replace(user, confirmed_regulations=user.confirmed_regulations + (regulation_id,)))

    def update_profile(
        self,
        *,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> User:
        user = self.get(user_id)
        return self._users.upsert(
            replace(
                user,
                name=require_non_empty(name, "Họ tên") if name is not None else user.name,
                email=email if email is not None else user.email,
                avatar=avatar if avatar is not None else user.avatar,
            )
        )

    @staticmethod
    def _require_admin(actor: User) -> None:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Bạn không có quyền")
