from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

from ..attendance.model import ShiftRecord
from ..branches.model import Branch
from ..requests.model import LeaveRequest
from ..schedules.model import Assignment, ScheduleLog
from ..users.model import User

T = TypeVar("T")

ChangeListener = Callable[[str, Sequence[T]], None]
RemoveListener = Callable[[str, str], None]


class Collection(Generic[T]):
    """In-memory, ordered record collection keyed by id.

    Upsert replaces in place (position preserved) or prepends, so the newest
    records come first. Listeners are notified after the in-memory change.
    """

    def __init__(self, name: str, key: Callable[[T], str], items: Iterable[T] = ()):
        self.name = name
        self._key = key
        self._items: List[T] = list(items)
        self._on_change: List[ChangeListener] = []
        self._on_remove: List[RemoveListener] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def subscribe(self, on_change: ChangeListener, on_remove: Optional[RemoveListener] = None) -> None:
        self._on_change.append(on_change)
        if on_remove is not None:
            self._on_remove.append(on_remove)

    def all(self) -> List[T]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[T]:
        for item in self._items:
            if self._key(item) == item_id:
                return item
        return None

    def find(self, predicate: Callable[[T], bool]) -> List[T]:
        return [item for item in self._items if predicate(item)]

    def upsert(self, item: T) -> T:
        item_id = self._key(item)
        for idx, existing in enumerate(self._items):
            if self._key(existing) == item_id:
                self._items[idx] = item
                break
        else:
            self._items.insert(0, item)

        for listener in self._on_change:
            listener(self.name, [item])
        return item

    def remove(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if self._key(item) != item_id]
        removed = len(self._items) != before
        if removed:
            for listener in self._on_remove:
                listener(self.name, item_id)
        return removed

    def replace_all(self, items: Iterable[T]) -> None:
        """Load-time replacement; listeners are not notified."""
        self._items = list(items)


@dataclass
class AppState:
    """All application data, owned by one coordinator and handed to services by slice."""

    branches: Collection[Branch] = field(default_factory=lambda: Collection("branches", lambda b: b.branch_id))
    users: Collection[User] = field(default_factory=lambda: Collection("users", lambda u: u.user_id))
    assignments: Collection[Assignment] = field(
        default_factory=lambda: Collection("assignments", lambda a: a.assignment_id)
    )
    shift_records: Collection[ShiftRecord] = field(
        default_factory=lambda: Collection("shift_records", lambda r: r.record_id)
    )
    leave_requests: Collection[LeaveRequest] = field(
        default_factory=lambda: Collection("leave_requests", lambda r: r.request_id)
    )
    schedule_logs: Collection[ScheduleLog] = field(
        default_factory=lambda: Collection("schedule_logs", lambda log: log.log_id)
    )

    def collections(self) -> List[Collection]:
        return [
            self.branches,
            self.users,
            self.assignments,
            self.shift_records,
            self.leave_requests,
            self.schedule_logs,
        ]

    def collection(self, name: str) -> Collection:
        for c in self.collections():
            if c.name == name:
                return c
        raise KeyError(name)
