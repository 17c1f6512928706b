from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .model import ShiftRecord


class ShiftRecordRepository(Protocol):
    def list_all(self) -> Sequence[ShiftRecord]:
        """Newest work date first."""

        raise NotImplementedError

    def upsert_many(self, records: Iterable[ShiftRecord]) -> None:
        """Insert-or-replace keyed by record id; each row is self-contained."""

        raise NotImplementedError
