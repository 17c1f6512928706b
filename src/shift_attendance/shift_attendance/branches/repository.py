from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .model import Branch


class BranchRepository(Protocol):
    def list_all(self) -> Sequence[Branch]:
        raise NotImplementedError

    def upsert_many(self, branches: Iterable[Branch]) -> None:
        """Insert-or-replace keyed by branch id."""

        raise NotImplementedError
