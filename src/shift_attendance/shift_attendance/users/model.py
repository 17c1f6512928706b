from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from ..core.enums import Role, UserStatus


@dataclass(frozen=True)
class User:
    """Thực thể miền (domain): User.

    Lưu ý: Đây là đối tượng dữ liệu thuần (không chứa code truy cập DB).
    """

    user_id: str
    username: str
    name: str
    role: Role
    password_hash: str
    status: UserStatus = UserStatus.WORKING
    branch_id: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    is_first_login: bool = False
    confirmed_regulations: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_working(self) -> bool:
        return self.status == UserStatus.WORKING

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "name": self.name,
            "role": self.role.value,
            "password_hash": self.password_hash,
            "status": self.status.value,
            "branch_id": self.branch_id,
            "email": self.email,
            "avatar": self.avatar,
            "is_first_login": self.is_first_login,
            "confirmed_regulations": list(self.confirmed_regulations),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            user_id=str(data["id"]),
            username=str(data["username"]),
            name=str(data["name"]),
            role=Role(data["role"]),
            password_hash=str(data.get("password_hash") or ""),
            status=UserStatus(data.get("status") or UserStatus.WORKING.value),
            branch_id=data.get("branch_id"),
            email=data.get("email"),
            avatar=data.get("avatar"),
            is_first_login=bool(data.get("is_first_login", False)),
            confirmed_regulations=tuple(data.get("confirmed_regulations") or ()),
        )
