# --- expo_coupon/model/coupon.py ---

from ..extensions import db
from sqlalchemy.sql import func


class Coupon(db.Model):
    __tablename__ = "coupons"

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(180), nullable=False)
    mobile_number = db.Column(db.String(32), nullable=False, index=True)  # as entered
    mobile_local = db.Column(db.String(16), nullable=False)
    branch = db.Column(db.String(120), nullable=False)
    branch_id = db.Column(db.Integer, nullable=True)  # remote branch id when delivered through Odoo
    contact_id = db.Column(db.Integer, nullable=True)  # Odoo res.partner id once created
    coupon_code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    whatsapp_sent = db.Column(db.Boolean, nullable=False, default=False)
    whatsapp_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    staff = db.relationship("User", back_populates="coupons")

    def as_dict(self):
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "mobile_number": self.mobile_number,
            "branch": self.branch,
            "branch_id": self.branch_id,
            "contact_id": self.contact_id,
            "coupon_code": self.coupon_code,
            "staff_id": self.staff_id,
            "whatsapp_sent": bool(self.whatsapp_sent),
            "whatsapp_error": self.whatsapp_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
