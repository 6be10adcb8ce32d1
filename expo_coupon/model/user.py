# --- expo_coupon/model/user.py ---

from ..extensions import db
from sqlalchemy.sql import func

ROLES = ("admin", "staff")


class User(db.Model):
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'staff')", name="ck_users_role"),
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    name = db.Column(db.String(180), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="staff", index=True)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, server_default=func.now())

    coupons = db.relationship("Coupon", back_populates="staff", lazy="dynamic")

    @property
    def is_admin(self):
        return self.role == "admin"

    def as_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
        }

    def as_admin_dict(self):
        return {
            **self.as_dict(),
            "active": bool(self.active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
