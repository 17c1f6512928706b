from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.capture import DelayVerifier, Verifier
from .attendance.mysql_shift_record_repository import MySQLShiftRecordRepository
from .attendance.service import ShiftRecordService
from .branches.mysql_branch_repository import MySQLBranchRepository
from .branches.service import BranchService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, LOCATION_TIMEOUT_SECONDS, VERIFICATION_DELAY_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .reconciliation.service import ReconciliationService
from .reports.service import ReportService
from .requests.mysql_request_repository import MySQLLeaveRequestRepository
from .requests.service import RequestService
from .schedules.mysql_schedule_repository import MySQLAssignmentRepository, MySQLScheduleLogRepository
from .schedules.service import ScheduleService
from .storage.local_cache import LocalCache
from .storage.state import AppState
from .storage.sync import SyncCoordinator
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    state: AppState
    sync: SyncCoordinator

    auth_service: AuthService
    user_service: UserService
    branch_service: BranchService
    shift_record_service: ShiftRecordService
    reconciliation_service: ReconciliationService
    schedule_service: ScheduleService
    request_service: RequestService
    report_service: ReportService

    verifier: Verifier
    location_timeout: float
    clock: Callable[[], datetime]


def remote_repositories(db_config: dict) -> dict:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    return {
        "branches": MySQLBranchRepository(conn),
        "users": MySQLUserRepository(conn),
        "assignments": MySQLAssignmentRepository(conn),
        "shift_records": MySQLShiftRecordRepository(conn),
        "leave_requests": MySQLLeaveRequestRepository(conn),
        "schedule_logs": MySQLScheduleLogRepository(conn),
    }


def build_container(
    *,
    cache_dir: str,
    db_config: Optional[dict] = None,
    remote_sync_enabled: bool = True,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    location_timeout: float = LOCATION_TIMEOUT_SECONDS,
    verification_delay: float = VERIFICATION_DELAY_SECONDS,
    verifier: Optional[Verifier] = None,
    clock: Callable[[], datetime] = now_local,
    state: Optional[AppState] = None,
    load: bool = True,
) -> Container:
    state = state or AppState()
    verifier = verifier or DelayVerifier(verification_delay)
    remotes = remote_repositories(db_config) if remote_sync_enabled and db_config else {}
    # One worker keeps remote writes in submission order.
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-sync") if remotes else None
    sync = SyncCoordinator(state, LocalCache(cache_dir), remotes, executor=executor)
    if load:
        sync.load()
    sync.attach()

    return Container(
        state=state,
        sync=sync,
        auth_service=AuthService(state.users),
        user_service=UserService(state.users),
        branch_service=BranchService(state.branches),
        shift_record_service=ShiftRecordService(
            state.shift_records,
            state.assignments,
            state.users,
            state.branches,
            grace_minutes=grace_minutes,
            verifier=verifier,
            location_timeout=location_timeout,
            clock=clock,
        ),
        reconciliation_service=ReconciliationService(state.shift_records, clock=clock),
        schedule_service=ScheduleService(state.assignments, state.schedule_logs, state.users, state.branches),
        request_service=RequestService(state.leave_requests),
        report_service=ReportService(state.assignments, state.shift_records, state.users, state.branches, clock=clock),
        verifier=verifier,
        location_timeout=float(location_timeout),
        clock=clock,
    )
