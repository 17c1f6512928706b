"""Helpers shared by the feature controllers: session auth and JSON error mapping."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from functools import wraps
from typing import Optional

from flask import current_app, jsonify, request, session

from .core.enums import Role
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CaptureError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    OutOfFence,
    ValidationError,
)
from .users.model import User

logger = logging.getLogger(__name__)


def _finite(value, convert=float):
    return convert(value) if isinstance(value, (int, float)) and math.isfinite(value) else None


def ok(status: int = 200, **payload):
    return jsonify({"success": True, **payload}), status


def fail(message: str, status: int, **payload):
    return jsonify({"success": False, "message": message, **payload}), status


def current_user(container) -> Optional[User]:
    user_id = session.get("user_id")
    if not user_id:
        return None
    user = container.state.users.get(user_id)
    if not user or not user.is_working:
        session.clear()
        return None
    return user


def login_required(container, *roles: Role):
    """Require a logged-in, working account; optionally restrict to ``roles``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user(container)
            if user is None:
                return fail("Vui lòng đăng nhập để tiếp tục!", 401)
            if roles and user.role not in roles:
                return fail("Bạn không có quyền truy cập chức năng này", 403)
            return view(user, *args, **kwargs)

        return wrapper

    return decorator


def manager_required(container):
    return login_required(container, Role.MANAGER, Role.ADMIN)


def admin_required(container):
    return login_required(container, Role.ADMIN)


def json_errors(view):
    """Translate domain exceptions into the JSON error shape."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except OutOfFence as e:
            return fail(
                str(e),
                422,
                reason=e.reason.value,
                distance_m=_finite(e.distance_m, round),
                lat=_finite(e.lat),
                lng=_finite(e.lng),
                radius_m=e.radius_m,
            )
        except CaptureError as e:
            return fail(str(e), 422, reason=e.reason.value)
        except NotFoundError as e:
            return fail(str(e), 404)
        except AuthenticationError as e:
            return fail(str(e), 401)
        except AuthorizationError as e:
            return fail(str(e), 403)
        except InvalidTransitionError as e:
            return fail(str(e), 409)
        except (ValidationError, DomainError) as e:
            return fail(str(e), 400)
        except Exception:
            logger.exception("unhandled error in %s %s", request.method, request.path)
            if current_app.config.get("DEBUG"):
                raise
            return fail("Lỗi hệ thống", 500)

    return wrapper


def payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict() or {}


def parse_date(value: Optional[str], default: Optional[date] = None) -> Optional[date]:
    if not value:
        return default
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Ngày không hợp lệ (YYYY-MM-DD): {value!r}")
