# expo_coupon/services/records.py
from sqlalchemy import func

from ..extensions import db
from ..model import Coupon, User
from .filters import FilterSpec, Pagination


def _rows_query():
    return (
        db.session.query(Coupon, User.name.label("staff_name"), User.username.label("staff_username"))
        .join(User, Coupon.staff_id == User.id)
    )


def count_coupons(spec: FilterSpec) -> int:
    return spec.apply(db.session.query(func.count(Coupon.id))).scalar() or 0


def list_coupons(spec: FilterSpec, pagination: Pagination):
    """One page of coupons (newest first) plus the total across all pages."""
    total = count_coupons(spec)
    rows = (
        spec.apply(_rows_query())
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .limit(pagination.limit)
        .offset(pagination.offset)
        .all()
    )
    items = [
        {**coupon.as_dict(), "staff_name": staff_name, "staff_username": staff_username}
        for coupon, staff_name, staff_username in rows
    ]
    return items, total


def export_rows(spec: FilterSpec):
    rows = spec.apply(_rows_query()).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()
    return [
        {
            "Customer Name": c.customer_name,
            "Mobile Number": c.mobile_number,
            "Branch": c.branch,
            "Coupon Code": c.coupon_code,
            "Staff Name": staff_name,
            "WhatsApp Sent": "Yes" if c.whatsapp_sent else "No",
            "Date & Time": c.created_at.strftime("%Y-%m-%d %H:%M:%S") if c.created_at else "",
        }
        for c, staff_name, _ in rows
    ]
