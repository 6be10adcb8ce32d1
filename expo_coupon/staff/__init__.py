from flask import Blueprint

bp = Blueprint("staff", __name__, url_prefix="/api/staff")

from . import routes  # noqa: E402,F401
