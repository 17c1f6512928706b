from __future__ import annotations

from typing import Iterable, Sequence

from ..core.enums import AttendanceStatus, ShiftStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_iso_date, db_cursor, fetchall, from_json, to_json
from ..common.datetime_utils import parse_iso_date
from ..reconciliation.model import AdjustedClosingData, ShiftAuditLog, ShiftClosingData
from .model import ShiftRecord
from .repository import ShiftRecordRepository


class MySQLShiftRecordRepository(ShiftRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[ShiftRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, user_name, work_date, shift_type, status, branch_id,
                       check_in_time, check_out_time, check_in_photo, check_out_photo,
                       check_in_status, check_out_status, closing_data, adjusted_closing_data,
                       is_confirmed, confirmed_by, confirmed_at, manager_comment, audit_log
                FROM shift_records
                ORDER BY work_date DESC
                """
            )
            rows = fetchall(cur)
            return [self._to_record(r) for r in rows]

    def upsert_many(self, records: Iterable[ShiftRecord]) -> None:
        params = [
            (
                r.record_id,
                r.user_id,
                r.user_name,
                r.work_date,
                r.shift_type,
                r.status.value,
                r.branch_id,
                r.check_in_time,
                r.check_out_time,
                r.check_in_photo,
                r.check_out_photo,
                r.check_in_status.value if r.check_in_status else None,
                r.check_out_status.value if r.check_out_status else None,
                to_json(r.closing_data.to_dict()) if r.closing_data else None,
                to_json(r.adjusted_closing_data.to_dict()) if r.adjusted_closing_data else None,
                1 if r.is_confirmed else 0,
                r.confirmed_by,
                r.confirmed_at,
                r.manager_comment,
                to_json([a.to_dict() for a in r.audit_log]),
            )
            for r in records
        ]
        if not params:
            return

        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO shift_records(
                    id, user_id, user_name, work_date, shift_type, status, branch_id,
                    check_in_time, check_out_time, check_in_photo, check_out_photo,
                    check_in_status, check_out_status, closing_data, adjusted_closing_data,
                    is_confirmed, confirmed_by, confirmed_at, manager_comment, audit_log
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    user_name=VALUES(user_name), status=VALUES(status), branch_id=VALUES(branch_id),
                    check_in_time=VALUES(check_in_time), check_out_time=VALUES(check_out_time),
                    check_in_photo=VALUES(check_in_photo), check_out_photo=VALUES(check_out_photo),
                    check_in_status=VALUES(check_in_status), check_out_status=VALUES(check_out_status),
                    closing_data=VALUES(closing_data), adjusted_closing_data=VALUES(adjusted_closing_data),
                    is_confirmed=VALUES(is_confirmed), confirmed_by=VALUES(confirmed_by),
                    confirmed_at=VALUES(confirmed_at), manager_comment=VALUES(manager_comment),
                    audit_log=VALUES(audit_log)
                """,
                params,
            )

    @staticmethod
    def _to_record(r: dict) -> ShiftRecord:
        closing = from_json(r.get("closing_data"))
        adjusted = from_json(r.get("adjusted_closing_data"))
        check_in_status = r.get("check_in_status")
        check_out_status = r.get("check_out_status")
        return ShiftRecord(
            record_id=str(r["id"]),
            user_id=str(r["user_id"]),
            user_name=r.get("user_name"),
            work_date=parse_iso_date(as_iso_date(r["work_date"])),
            shift_type=str(r["shift_type"]),
            status=ShiftStatus(r["status"]),
            branch_id=r.get("branch_id"),
            check_in_time=r.get("check_in_time"),
            check_out_time=r.get("check_out_time"),
            check_in_photo=r.get("check_in_photo"),
            check_out_photo=r.get("check_out_photo"),
            check_in_status=AttendanceStatus(check_in_status) if check_in_status else None,
            check_out_status=AttendanceStatus(check_out_status) if check_out_status else None,
            closing_data=ShiftClosingData.from_dict(closing) if closing else None,
            adjusted_closing_data=AdjustedClosingData.from_dict(adjusted) if adjusted else None,
            is_confirmed=bool(r.get("is_confirmed")),
            confirmed_by=r.get("confirmed_by"),
            confirmed_at=r.get("confirmed_at"),
            manager_comment=r.get("manager_comment"),
            audit_log=tuple(ShiftAuditLog.from_dict(a) for a in from_json(r.get("audit_log")) or ()),
        )
