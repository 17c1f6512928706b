from __future__ import annotations

from typing import Iterable, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_json, to_json
from .model import Branch, ShiftConfig
from .repository import BranchRepository


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, lat, lng, radius, address, shifts, is_active
                FROM branches
                ORDER BY id
                """
            )
            rows = fetchall(cur)
            return [
                Branch(
                    branch_id=str(r["id"]),
                    name=r["name"],
                    lat=float(r["lat"]),
                    lng=float(r["lng"]),
                    radius=float(r["radius"]),
                    address=r.get("address"),
                    shifts={k: ShiftConfig.from_dict(v) for k, v in (from_json(r.get("shifts")) or {}).items()},
                    is_active=bool(r.get("is_active", 1)),
                )
                for r in rows
            ]

    def upsert_many(self, branches: Iterable[Branch]) -> None:
        params = [
            (
                b.branch_id,
                b.name,
                b.lat,
                b.lng,
                b.radius,
                b.address,
                to_json({k: v.to_dict() for k, v in b.shifts.items()}),
                1 if b.is_active else 0,
            )
            for b in branches
        ]
        if not params:
            return

        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO branches(id, name, lat, lng, radius, address, shifts, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    name=VALUES(name), lat=VALUES(lat), lng=VALUES(lng), radius=VALUES(radius),
                    address=VALUES(address), shifts=VALUES(shifts), is_active=VALUES(is_active)
                """,
                params,
            )
