from __future__ import annotations

from typing import Iterable, Sequence

from ..common.datetime_utils import parse_iso_date
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_iso_date, db_cursor, fetchall
from .model import Assignment, ScheduleLog
from .repository import AssignmentRepository, ScheduleLogRepository


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, work_date, shift_type, updated_at, updated_by
                FROM assignments
                ORDER BY work_date ASC, user_id ASC
                """
            )
            rows = fetchall(cur)
            return [
                Assignment(
                    assignment_id=str(r["id"]),
                    user_id=str(r["user_id"]),
                    work_date=parse_iso_date(as_iso_date(r["work_date"])),
                    shift_type=str(r["shift_type"]),
                    updated_at=str(r.get("updated_at") or ""),
                    updated_by=str(r.get("updated_by") or ""),
                )
                for r in rows
            ]

    def upsert_many(self, assignments: Iterable[Assignment]) -> None:
        params = [
            (a.assignment_id, a.user_id, a.work_date, a.shift_type, a.updated_at, a.updated_by)
            for a in assignments
        ]
        if not params:
            return

        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO assignments(id, user_id, work_date, shift_type, updated_at, updated_by)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    user_id=VALUES(user_id), work_date=VALUES(work_date), shift_type=VALUES(shift_type),
                    updated_at=VALUES(updated_at), updated_by=VALUES(updated_by)
                """,
                params,
            )

    def delete(self, assignment_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM assignments WHERE id=%s", (assignment_id,))
            return cur.rowcount > 0


class MySQLScheduleLogRepository(ScheduleLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[ScheduleLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, action, timestamp, user_name FROM schedule_logs ORDER BY seq DESC")
            return [
                ScheduleLog(
                    log_id=str(r["id"]),
                    action=r["action"],
                    timestamp=str(r["timestamp"]),
                    user_name=r.get("user_name") or "",
                )
                for r in fetchall(cur)
            ]

    def upsert_many(self, logs: Iterable[ScheduleLog]) -> None:
        params = [(log.log_id, log.action, log.timestamp, log.user_name) for log in logs]
        if not params:
            return

        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO schedule_logs(id, action, timestamp, user_name)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE action=VALUES(action)
                """,
                params,
            )
