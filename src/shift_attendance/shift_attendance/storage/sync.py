"""Local-first persistence for :class:`AppState`.

Every in-memory change is mirrored to the local cache right away and pushed
to the remote repositories fire-and-forget: remote errors are logged, never
raised, and never roll back the in-memory state. Writes are last-write-wins;
there is no version check between concurrent writers.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..attendance.model import ShiftRecord
from ..branches.model import Branch
from ..core.exceptions import ValidationError
from ..requests.model import LeaveRequest
from ..schedules.model import Assignment, ScheduleLog
from ..users.model import User
from .local_cache import LocalCache
from .state import AppState

logger = logging.getLogger(__name__)

DECODERS: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
    "branches": Branch.from_dict,
    "users": User.from_dict,
    "assignments": Assignment.from_dict,
    "shift_records": ShiftRecord.from_dict,
    "leave_requests": LeaveRequest.from_dict,
    "schedule_logs": ScheduleLog.from_dict,
}


class SyncCoordinator:
    def __init__(
        self,
        state: AppState,
        cache: LocalCache,
        remotes: Optional[Mapping[str, Any]] = None,
        *,
        executor: Optional[Executor] = None,
    ):
        self.state = state
        self._cache = cache
        self._remotes = dict(remotes or {})
        self._executor = executor
        self._attached = False

    def load(self) -> AppState:
        """Fill the state: remote wins for a collection when it returned rows, else keep the cache."""
        for collection in self.state.collections():
            name = collection.name
            cached = self._decode(name, self._cache.load(name))
            remote = self._fetch(name)
            if remote:
                collection.replace_all(remote)
                self._write_cache(name)
                logger.info("loaded %d %s from remote store", len(remote), name)
            else:
                collection.replace_all(cached)
                logger.info("loaded %d %s from local cache", len(cached), name)
        return self.state

    def attach(self) -> None:
        """Start mirroring every collection change; safe to call twice."""
        if self._attached:
            return
        for collection in self.state.collections():
            collection.subscribe(self.persist, self.persist_removal)
        self._attached = True

    def persist(self, name: str, items: Sequence[Any]) -> None:
        self._write_cache(name)
        repo = self._remotes.get(name)
        if repo is not None:
            self._submit(f"upsert {name}", repo.upsert_many, list(items))

    def persist_removal(self, name: str, item_id: str) -> None:
        self._write_cache(name)
        repo = self._remotes.get(name)
        delete = getattr(repo, "delete", None)
        if delete is not None:
            self._submit(f"delete {name}/{item_id}", delete, item_id)

    def push_all(self) -> None:
        """Re-send every collection to the remote store (e.g. after seeding)."""
        for collection in self.state.collections():
            repo = self._remotes.get(collection.name)
            if repo is not None and len(collection):
                self._submit(f"upsert {collection.name}", repo.upsert_many, collection.all())

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def _fetch(self, name: str) -> List[Any]:
        repo = self._remotes.get(name)
        if repo is None:
            return []
        try:
            return list(repo.list_all())
        except Exception:
            logger.exception("could not load %s from remote store, using local cache", name)
            return []

    def _decode(self, name: str, rows: List[Mapping[str, Any]]) -> List[Any]:
        decode = DECODERS[name]
        items = []
        for row in rows:
            try:
                items.append(decode(row))
            except (KeyError, TypeError, ValueError, ValidationError):
                logger.warning("skipping malformed cached %s row: %r", name, row)
        return items

    def _write_cache(self, name: str) -> None:
        collection = self.state.collection(name)
        try:
            self._cache.save(name, [item.to_dict() for item in collection.all()])
        except OSError:
            logger.exception("could not write local cache for %s", name)

    def _submit(self, label: str, fn: Callable[..., Any], *args: Any) -> None:
        if self._executor is None:
            self._run(label, fn, *args)
        else:
            self._executor.submit(self._run, label, fn, *args)

    @staticmethod
    def _run(label: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("remote sync failed: %s", label)
