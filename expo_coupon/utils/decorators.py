# ------- expo_coupon/utils/decorators.py -------
from functools import wraps

from flask import g, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..errors import Forbidden, InvalidInput, Unauthorized
from ..extensions import db
from ..model.user import User


def _current_user():
    verify_jwt_in_request()
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None


def current_user() -> User:
    return g.current_user


def login_required(fn):
    """Valid bearer token for an active account; the user is available as g.current_user."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        u = _current_user()
        if not u or not u.active:
            raise Unauthorized("Account not found or inactive")
        g.current_user = u
        return fn(*args, **kwargs)
    return wrapper


def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if g.current_user.role not in roles:
                raise Forbidden(message or "Forbidden")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = role_required("admin", message="Admin access required")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("JSON object body required")
    return data
