from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .model import LeaveRequest


class LeaveRequestRepository(Protocol):
    def list_all(self) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def upsert_many(self, requests: Iterable[LeaveRequest]) -> None:
        raise NotImplementedError
