from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, List, Union

import mysql.connector
from werkzeug.security import generate_password_hash

from ..branches.model import Branch, ShiftConfig
from ..core.enums import Role
from ..storage.state import AppState
from ..users.model import User
from .connection import DBConfig

logger = logging.getLogger(__name__)

_CREATE_DB_OR_USE = re.compile(r"(?im)^\s*(CREATE\s+DATABASE|USE)\b.*?;\s*$")


def _connect(config: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=config.host, port=config.port, user=config.user, password=config.password, use_pure=True)
    if with_database:
        kwargs["database"] = config.database
    return mysql.connector.connect(**kwargs)


def split_sql(sql: str) -> Iterator[str]:
    """Split a script on ';' outside of quoted strings; comment lines are dropped."""
    sql = _CREATE_DB_OR_USE.sub("", sql)
    sql = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))

    buf: List[str] = []
    quote = None
    escaped = False
    for ch in sql:
        buf.append(ch)
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(config: DBConfig) -> None:
    conn = _connect(config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(config: DBConfig, *, schema_path: Union[str, Path]) -> None:
    ensure_database_exists(config)
    sql = Path(schema_path).read_text(encoding="utf-8")

    conn = _connect(config)
    try:
        cur = conn.cursor()
        for stmt in split_sql(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied to %s@%s/%s", config.user, config.host, config.database)


def list_tables(config: DBConfig) -> List[str]:
    conn = _connect(config)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def demo_branches() -> List[Branch]:
    return [
        Branch(
            branch_id="1",
            name="Chi nhánh Quận 1",
            lat=10.7769,
            lng=106.7009,
            radius=100,
            address="72 Lê Thánh Tôn, Quận 1",
            shifts={
                "SHIFT_1": ShiftConfig.of("Ca 1", "08:00", "12:00"),
                "SHIFT_2": ShiftConfig.of("Ca 2", "12:00", "17:00"),
                "SHIFT_3": ShiftConfig.of("Ca 3", "17:00", "22:00"),
            },
        ),
        Branch(
            branch_id="2",
            name="Chi nhánh Quận 7",
            lat=10.7289,
            lng=106.7082,
            radius=150,
            address="101 Tôn Dật Tiên, Quận 7",
            shifts={
                "SHIFT_1": ShiftConfig.of("Ca Sáng", "07:30", "11:30"),
                "SHIFT_2": ShiftConfig.of("Ca Chiều", "11:30", "16:30"),
                "SHIFT_3": ShiftConfig.of("Ca Tối", "16:30", "21:30"),
            },
        ),
    ]


def demo_users(password: str = "123") -> List[User]:
    avatar = "https://api.dicebear.com/7.x/avataaars/svg?seed={}"
    return [
        User(
            user_id="admin_1",
            username="admin",
            name="Hệ thống Admin",
            email="admin@lapoza.com",
            role=Role.ADMIN,
            password_hash=generate_password_hash(password),
            avatar=avatar.format("Admin"),
        ),
        User(
            user_id="manager_1",
            username="quanly",
            name="Quản lý Chi nhánh",
            email="manager@lapoza.com",
            role=Role.MANAGER,
            password_hash=generate_password_hash(password),
            avatar=avatar.format("Manager"),
            branch_id="1",
        ),
        User(
            user_id="staff_1",
            username="nv1",
            name="Nhân viên 1",
            email="nv1@lapoza.com",
            role=Role.STAFF,
            password_hash=generate_password_hash(password),
            avatar=avatar.format("Staff1"),
            branch_id="1",
        ),
    ]


def seed_state(state: AppState) -> bool:
    """Fill empty branch/user collections with demo data; returns True if anything was added."""
    seeded = False
    if not len(state.branches):
        for branch in reversed(demo_branches()):
            state.branches.upsert(branch)
        seeded = True
    if not len(state.users):
        for user in reversed(demo_users()):
            state.users.upsert(user)
        seeded = True
    if seeded:
        logger.info("demo data seeded (%d branches, %d users)", len(state.branches), len(state.users))
    return seeded
