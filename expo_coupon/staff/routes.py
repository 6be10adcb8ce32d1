from flask import jsonify

from . import bp
from ..model import User
from ..services import accounts
from ..utils.api import ok
from ..utils.decorators import admin_required, current_user, json_body


@bp.get("")
@admin_required
def list_staff():
    staff = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify(staff=[u.as_admin_dict() for u in staff])


@bp.post("")
@admin_required
def create_staff():
    data = json_body()
    user = accounts.create_staff(
        data.get("username"),
        data.get("password"),
        data.get("name"),
        role=data.get("role") or "staff",
    )
    return ok("Staff member created", {"staff": user.as_dict()}, status_code=201)


@bp.patch("/<int:user_id>/toggle")
@admin_required
def toggle(user_id):
    user = accounts.toggle_active(current_user(), user_id)
    return ok("Staff status updated", {"active": bool(user.active)})


@bp.patch("/<int:user_id>/password")
@admin_required
def reset_password(user_id):
    data = json_body()
    accounts.reset_password(user_id, data.get("password"))
    return ok("Password updated successfully")
