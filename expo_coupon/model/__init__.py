# ------ expo_coupon/model/__init__.py ------

from .user import User, ROLES
from .coupon import Coupon

__all__ = [
    "User",
    "ROLES",
    "Coupon",
]
