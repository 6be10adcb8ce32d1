import logging

from flask import current_app, jsonify, request

from . import bp
from ..errors import CouponError
from ..services.filters import FilterCriteria
from ..services.odoo import OdooError
from ..utils.decorators import login_required

logger = logging.getLogger(__name__)


@bp.get("")
@login_required
def stats():
    day = FilterCriteria.from_args({"date": request.args.get("date")}).date
    aggregator = current_app.extensions["stats"]
    try:
        return jsonify(aggregator.collect(day))
    except OdooError as e:
        logger.error("Stats error: %s", e)
        raise CouponError("Failed to fetch stats")
