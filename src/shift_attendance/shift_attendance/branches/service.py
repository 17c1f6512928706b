from __future__ import annotations

import logging
import uuid
import warnings
from dataclasses import replace
from typing import Dict, List, Optional

from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_FENCE_RADIUS_METERS
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, DataIntegrityWarning, NotFoundError, ValidationError
from ..geo.fence import Coordinate
from ..storage.state import Collection
from ..users.model import User
from .model import Branch, ShiftConfig

logger = logging.getLogger(__name__)


def shift_name(branch: Optional[Branch], shift_type: str) -> str:
    """Configured display name of a shift, or the raw key if it is not configured."""
    config = branch.shift(shift_type) if branch else None
    if config is not None:
        return config.name

    where = branch.branch_id if branch else "?"
    message = f"shift type {shift_type!r} is not configured for branch {where}"
    logger.warning(message)
    warnings.warn(message, DataIntegrityWarning, stacklevel=2)
    return shift_type


def default_shifts() -> Dict[str, ShiftConfig]:
    return {
        "SHIFT_1": ShiftConfig.of("Ca Sáng", "08:00", "12:00"),
        "SHIFT_2": ShiftConfig.of("Ca Chiều", "12:00", "17:00"),
    }


class BranchService:
    """Use case: branch network and per-branch shift configuration (admin only)."""

    def __init__(self, branches: Collection[Branch]):
        self._branches = branches

    def list(self, *, active_only: bool = False) -> List[Branch]:
        rows = self._branches.all()
        if active_only:
            rows = [b for b in rows if b.is_active]
        return rows

    def get(self, branch_id: str) -> Branch:
        branch = self._branches.get(branch_id)
        if not branch:
            raise NotFoundError("Chi nhánh không tồn tại")
        return branch

    def save(
        self,
        *,
        actor: User,
        name: str,
        lat: float,
        lng: float,
        radius: float = DEFAULT_FENCE_RADIUS_METERS,
        address: Optional[str] = None,
        shifts: Optional[Dict[str, ShiftConfig]] = None,
        branch_id: Optional[str] = None,
    ) -> Branch:
        """Create a branch, or overwrite an existing one when ``branch_id`` is known."""
        self._require_admin(actor)
        name = require_non_empty(name, "Tên chi nhánh")
        try:
            lat, lng, radius = float(lat), float(lng), float(radius)
        except (TypeError, ValueError):
            raise ValidationError("Toạ độ hoặc bán kính không hợp lệ")
        if not Coordinate(lat, lng).is_valid:
            raise ValidationError("Toạ độ chi nhánh không hợp lệ")
        if not radius >= 0:
            raise ValidationError("Bán kính điểm danh không được âm")

        existing = self._branches.get(branch_id) if branch_id else None
        if existing:
            branch = replace(
                existing,
                name=name,
                lat=lat,
                lng=lng,
                radius=radius,
                address=address,
                shifts=dict(shifts) if shifts is not None else existing.shifts,
            )
            logger.info("branch %s updated by %s", branch.branch_id, actor.username)
        else:
            branch = Branch(
                branch_id=branch_id or uuid.uuid4().hex,
                name=name,
                lat=lat,
                lng=lng,
                radius=radius,
                address=address,
                shifts=dict(shifts) if shifts is not None else default_shifts(),
                is_active=True,
            )
            logger.info("branch %s created by %s", branch.branch_id, actor.username)
        return self._branches.upsert(branch)

    def set_shift(self, *, actor: User, branch_id: str, shift_type: str, name: str, start: str, end: str) -> Branch:
        self._require_admin(actor)
        shift_type = require_non_empty(shift_type, "Mã ca")
        config = ShiftConfig.of(require_non_empty(name, "Tên ca"), start, end)
        branch = self.get(branch_id)
        return self._branches.upsert(replace(branch, shifts={**branch.shifts, shift_type: config}))

    def add_shift(self, *, actor: User, branch_id: str) -> Branch:
        """Append the next ``SHIFT_n`` slot with placeholder hours."""
        branch = self.get(branch_id)
        n = len(branch.shifts) + 1
        key = f"SHIFT_{n}"
        while key in branch.shifts:
            n += 1
            key = f"SHIFT_{n}"
        return self.set_shift(actor=actor, branch_id=branch_id, shift_type=key, name=f"Ca {n}", start="09:00", end="18:00")

    def remove_shift(self, *, actor: User, branch_id: str, shift_type: str) -> Branch:
        self._require_admin(actor)
        branch = self.get(branch_id)
        if shift_type not in branch.shifts:
            raise NotFoundError("Ca không tồn tại")
        shifts = {k: v for k, v in branch.shifts.items() if k != shift_type}
        return self._branches.upsert(replace(branch, shifts=shifts))

    def toggle_active(self, *, actor: User, branch_id: str) -> Branch:
        self._require_admin(actor)
        branch = self.get(branch_id)
        updated = replace(branch, is_active=not branch.is_active)
        logger.info("branch %s active=%s", branch_id, updated.is_active)
        return self._branches.upsert(updated)

    @staticmethod
    def _require_admin(actor: User) -> None:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Chỉ Admin được cấu hình chi nhánh")
