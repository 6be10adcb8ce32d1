# expo_coupon/coupon/routes.py
from flask import jsonify, request, send_file

from . import bp
from ..errors import InvalidInput
from ..services import records
from ..services.coupon_service import CouponService
from ..services.export import XLSX_MIMETYPE, coupons_workbook, export_filename
from ..services.filters import FilterCriteria, Pagination, build
from ..utils.api import ok
from ..utils.decorators import admin_required, current_user, json_body, login_required


def _parse_opt_int(v):
    if v is None: return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}: return None
    try: return int(v)
    except (TypeError, ValueError):
        raise InvalidInput("branch_id must be an integer")


@bp.post("")
@login_required
def create_coupon():
    data = json_body()
    result = CouponService.from_app().issue(
        current_user(),
        customer_name=data.get("customer_name"),
        mobile_number=data.get("mobile_number"),
        branch=data.get("branch"),
        branch_id=_parse_opt_int(data.get("branch_id")),
    )
    return ok(
        "Coupon created successfully",
        {"coupon": result.coupon, "whatsapp": result.outcome.as_dict()},
        status_code=201,
    )


@bp.get("")
@login_required
def list_coupons():
    """
    Query params:
      page, limit          -> pagination (limit defaults to 50)
      branch               -> exact branch
      staff_id             -> issuing staff member
      date                 -> YYYY-MM-DD, single day
      date_from, date_to   -> YYYY-MM-DD, inclusive range
      search               -> substring of customer name, mobile number or coupon code
    """
    pagination = Pagination.from_args(request.args)
    spec = build(FilterCriteria.from_args(request.args))
    items, total = records.list_coupons(spec, pagination)
    return jsonify(coupons=items, pagination=pagination.as_dict(total))


@bp.get("/export")
@admin_required
def export_coupons():
    spec = build(FilterCriteria.from_args(request.args))
    output = coupons_workbook(records.export_rows(spec))
    return send_file(
        output,
        as_attachment=True,
        download_name=export_filename(),
        mimetype=XLSX_MIMETYPE,
    )


@bp.post("/<int:coupon_id>/resend")
@login_required
def resend(coupon_id):
    outcome = CouponService.from_app().resend(coupon_id)
    body = {"success": outcome.success}
    if outcome.error:
        body["error"] = outcome.error
    return jsonify(body)
