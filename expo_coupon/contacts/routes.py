# expo_coupon/contacts/routes.py
import logging

from flask import current_app, jsonify, request, send_file

from . import bp
from ..errors import CouponError, InvalidInput, NotFound
from ..services.export import XLSX_MIMETYPE, contacts_workbook, export_filename
from ..services.filters import Pagination
from ..services.odoo import OdooError
from ..utils.decorators import admin_required, login_required

logger = logging.getLogger(__name__)


def _parse_opt_int(v):
    if v is None: return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}: return None
    try: return int(v)
    except (TypeError, ValueError):
        raise InvalidInput("branch_id must be an integer")


def _directory():
    directory = current_app.extensions.get("contacts")
    if directory is None:
        raise NotFound("Contacts are only available when Odoo is configured")
    return directory


@bp.get("")
@login_required
def list_contacts():
    """Campaign contacts from Odoo. Query params: page, limit, branch_id."""
    directory = _directory()
    pagination = Pagination.from_args(request.args)
    branch_id = _parse_opt_int(request.args.get("branch_id"))
    try:
        items, total = directory.page(pagination, branch_id)
    except OdooError as e:
        logger.error("Fetch contacts error: %s", e)
        raise CouponError("Failed to fetch contacts")
    return jsonify(contacts=items, pagination=pagination.as_dict(total))


@bp.get("/export")
@admin_required
def export_contacts():
    directory = _directory()
    branch_id = _parse_opt_int(request.args.get("branch_id"))
    try:
        rows = directory.export_rows(branch_id)
    except OdooError as e:
        logger.error("Contacts export error: %s", e)
        raise CouponError("Failed to export contacts")
    return send_file(
        contacts_workbook(rows),
        as_attachment=True,
        download_name=export_filename(kind="contacts"),
        mimetype=XLSX_MIMETYPE,
    )
