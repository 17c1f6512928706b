from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date
from typing import List, Optional

from ..common.datetime_utils import day_of_week_label
from ..common.validators import require_non_empty
from ..core.enums import RequestStatus, RequestType, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..storage.state import Collection
from ..users.model import User
from .model import LeaveRequest


class RequestService:
    def __init__(self, requests: Collection[LeaveRequest]):
        self._requests = requests

    def create(
        self,
        *,
        user: User,
        work_date: date,
        request_type: RequestType,
        reason: str,
        shift_type: Optional[str] = None,
    ) -> LeaveRequest:
        if user.role == Role.ADMIN:
            raise AuthorizationError("Admin không gửi yêu cầu nghỉ/đăng ký ca")

        reason = require_non_empty(reason, "Lý do")
        req = LeaveRequest(
            request_id=uuid.uuid4().hex,
            user_id=user.user_id,
            user_name=user.name,
            work_date=work_date,
            day_of_week=day_of_week_label(work_date),
            request_type=RequestType(request_type),
            reason=reason,
            shift_type=shift_type,
            branch_id=user.branch_id,
        )
        return self._requests.upsert(req)

    def decide(self, *, actor: User, request_id: str, status: RequestStatus) -> LeaveRequest:
        if not actor.role.is_manager:
            raise AuthorizationError("Bạn không có quyền")
        if status == RequestStatus.PENDING:
            raise ValidationError("Trạng thái duyệt không hợp lệ")

        req = self._requests.get(request_id)
        if not req:
            raise NotFoundError("Yêu cầu không tồn tại")
        if actor.role == Role.MANAGER and req.branch_id != actor.branch_id:
            raise AuthorizationError("Yêu cầu không thuộc chi nhánh của bạn")
        if req.status != RequestStatus.PENDING:
            raise ValidationError("Yêu cầu đã được xử lý")

        return self._requests.upsert(replace(req, status=RequestStatus(status)))

    def visible_to(self, user: User) -> List[LeaveRequest]:
        """Admin sees everything, managers their branch, staff their own requests."""
        if user.role == Role.ADMIN:
            return self._requests.all()
        if user.role == Role.MANAGER:
            return self._requests.find(lambda r: r.branch_id == user.branch_id)
        return self._requests.find(lambda r: r.user_id == user.user_id)

    def pending_for(self, user: User) -> List[LeaveRequest]:
        return [r for r in self.visible_to(user) if r.status == RequestStatus.PENDING]
