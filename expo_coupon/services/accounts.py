# expo_coupon/services/accounts.py
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import Conflict, InvalidInput, NotFound, Unauthorized
from ..extensions import db
from ..model import ROLES, User

logger = logging.getLogger(__name__)


def _min_length():
    return current_app.config.get("PASSWORD_MIN_LENGTH", 4)


def _check_password(password):
    if not password or len(password) < _min_length():
        raise InvalidInput(f"Password must be at least {_min_length()} characters")


def get_user(user_id) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("Staff not found")
    return user


def authenticate(username, password) -> User:
    username = (username or "").strip()
    if not username or not password:
        raise InvalidInput("Username and password required")

    user = User.query.filter_by(username=username, active=True).first()
    if not user or not check_password_hash(user.password_hash, password):
        raise Unauthorized("Invalid credentials")
    return user


def create_staff(username, password, name, role="staff") -> User:
    username = (username or "").strip()
    name = (name or "").strip()
    role = (role or "staff").strip().lower()
    if not username or not password or not name:
        raise InvalidInput("Username, password, and name required")
    _check_password(password)
    if role not in ROLES:
        raise InvalidInput("Role must be 'admin' or 'staff'")
    if User.query.filter_by(username=username).first():
        raise Conflict("Username already exists")

    user = User(username=username, name=name, role=role, password_hash=generate_password_hash(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race with another request creating the same username
        db.session.rollback()
        raise Conflict("Username already exists")
    return user


def toggle_active(actor: User, user_id) -> User:
    user = get_user(user_id)
    if user.is_admin and user.id == actor.id:
        raise InvalidInput("Cannot deactivate your own admin account")

    # never leave the system without an active admin
    if user.is_admin and user.active:
        active_admins = User.query.filter_by(role="admin", active=True).count()
        if active_admins <= 1:
            raise InvalidInput("Cannot deactivate the last active admin")

    user.active = not user.active
    db.session.commit()
    return user


def reset_password(user_id, password) -> User:
    _check_password(password)
    user = get_user(user_id)
    user.password_hash = generate_password_hash(password)
    db.session.commit()
    return user


def change_password(user: User, current_password, new_password) -> User:
    if not current_password or not new_password:
        raise InvalidInput("Current and new password required")
    _check_password(new_password)
    if not check_password_hash(user.password_hash, current_password):
        raise InvalidInput("Current password incorrect")
    user.password_hash = generate_password_hash(new_password)
    db.session.commit()
    return user


def ensure_default_admin():
    """Seed an admin account on first boot. Returns the new user, or None if an admin exists."""
    if User.query.filter_by(role="admin").first():
        return None

    cfg = current_app.config
    user = User(
        username=cfg["DEFAULT_ADMIN_USERNAME"],
        name=cfg["DEFAULT_ADMIN_NAME"],
        role="admin",
        password_hash=generate_password_hash(cfg["DEFAULT_ADMIN_PASSWORD"]),
    )
    db.session.add(user)
    db.session.commit()
    logger.warning("Default admin created: username=%s (change the password)", user.username)
    return user
