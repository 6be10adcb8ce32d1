from flask import current_app, jsonify

from . import bp
from ..utils.decorators import login_required


@bp.get("")
@login_required
def list_branches():
    return jsonify(branches=current_app.extensions["branches"].list())
