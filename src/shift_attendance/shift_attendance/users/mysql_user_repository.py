from __future__ import annotations

from typing import Iterable, Sequence

from ..core.enums import Role, UserStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_json, to_json
from .model import User
from .repository import UserRepository


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, username, name, email, password_hash, role, avatar, status,
                       branch_id, is_first_login, confirmed_regulations
                FROM users
                ORDER BY id
                """
            )
            rows = fetchall(cur)
            return [
                User(
                    user_id=str(r["id"]),
                    username=r["username"],
                    name=r["name"],
                    role=Role(r["role"]),
                    password_hash=r.get("password_hash") or "",
                    status=UserStatus(r.get("status") or UserStatus.WORKING.value),
                    branch_id=r.get("branch_id"),
                    email=r.get("email"),
                    avatar=r.get("avatar"),
                    is_first_login=bool(r.get("is_first_login")),
                    confirmed_regulations=tuple(from_json(r.get("confirmed_regulations")) or ()),
                )
                for r in rows
            ]

    def upsert_many(self, users: Iterable[User]) -> None:
        params = [
            (
                u.user_id,
                u.username,
                u.name,
                u.email,
                u.password_hash,
                u.role.value,
                u.avatar,
                u.status.value,
                u.branch_id,
                1 if u.is_first_login else 0,
                to_json(list(u.confirmed_regulations)),
            )
            for u in users
        ]
        if not params:
            return

        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO users(id, username, name, email, password_hash, role, avatar, status,
                                  branch_id, is_first_login, confirmed_regulations)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    username=VALUES(username), name=VALUES(name), email=VALUES(email),
                    password_hash=VALUES(password_hash), role=VALUES(role), avatar=VALUES(avatar),
                    status=VALUES(status), branch_id=VALUES(branch_id),
                    is_first_login=VALUES(is_first_login), confirmed_regulations=VALUES(confirmed_regulations)
                """,
                params,
            )

    def delete(self, user_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE id=%s", (user_id,))
            return cur.rowcount > 0
