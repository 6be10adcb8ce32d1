from flask import jsonify
from flask_jwt_extended import create_access_token

from . import bp
from ..services import accounts
from ..utils.api import ok
from ..utils.decorators import current_user, json_body, login_required


def _issue_token(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={"username": user.username, "name": user.name, "role": user.role},
    )


@bp.post("/login")
def login():
    data = json_body()
    user = accounts.authenticate(data.get("username"), data.get("password"))
    return jsonify(token=_issue_token(user), user=user.as_dict()), 200


@bp.get("/me")
@login_required
def me():
    return jsonify(user=current_user().as_dict())


@bp.patch("/password")
@login_required
def change_password():
    data = json_body()
    accounts.change_password(current_user(), data.get("current_password"), data.get("new_password"))
    return ok("Password updated successfully")
