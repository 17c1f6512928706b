from __future__ import annotations

from typing import Iterable, Sequence

from ..common.datetime_utils import parse_iso_date
from ..core.enums import RequestStatus, RequestType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_iso_date, db_cursor, fetchall
from .model import LeaveRequest
from .repository import LeaveRequestRepository


class MySQLLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, user_name, work_date, day_of_week, type, reason, status,
                       shift_type, branch_id
                FROM leave_requests
                ORDER BY work_date DESC
                """
            )
            rows = fetchall(cur)
            return [
                LeaveRequest(
                    request_id=str(r["id"]),
                    user_id=str(r["user_id"]),
                    user_name=r.get("user_name"),
                    work_date=parse_iso_date(as_iso_date(r["work_date"])),
                    day_of_week=r.get("day_of_week") or "",
                    request_type=RequestType(r["type"]),
                    reason=r.get("reason") or "",
                    status=RequestStatus(r["status"]),
                    shift_type=r.get("shift_type"),
                    branch_id=r.get("branch_id"),
                )
                for r in rows
            ]

    def upsert_many(self, requests: Iterable[LeaveRequest]) -> None:
        params = [
            (
                r.request_id,
                r.user_id,
                r.user_name,
                r.work_date,
                r.day_of_week,
                r.request_type.value,
                r.reason,
                r.status.value,
                r.shift_type,
                r.branch_id,
            )
            for r in requests
        ]
        if not params:
            return

        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO leave_requests(id, user_id, user_name, work_date, day_of_week, type, reason,
                                           status, shift_type, branch_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    user_name=VALUES(user_name), work_date=VALUES(work_date), day_of_week=VALUES(day_of_week),
                    type=VALUES(type), reason=VALUES(reason), status=VALUES(status),
                    shift_type=VALUES(shift_type), branch_id=VALUES(branch_id)
                """,
                params,
            )
