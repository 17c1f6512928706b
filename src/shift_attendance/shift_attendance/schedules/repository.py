from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .model import Assignment, ScheduleLog


class AssignmentRepository(Protocol):
    def list_all(self) -> Sequence[Assignment]:
        raise NotImplementedError

    def upsert_many(self, assignments: Iterable[Assignment]) -> None:
        raise NotImplementedError

    def delete(self, assignment_id: str) -> bool:
        """Toggling an assignment off removes it from the store."""

        raise NotImplementedError


class ScheduleLogRepository(Protocol):
    def list_all(self) -> Sequence[ScheduleLog]:
        raise NotImplementedError

    def upsert_many(self, logs: Iterable[ScheduleLog]) -> None:
        raise NotImplementedError
