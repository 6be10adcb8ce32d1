# --- expo_coupon/errors.py ---


class CouponError(Exception):
    """Base error for the service. Carries the HTTP status used at the API boundary."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None, status_code=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidInput(CouponError):
    status_code = 400
    default_message = "Invalid input"


class InvalidPhone(InvalidInput):
    default_message = "Invalid Oman mobile number (8 digits, starts with 7 or 9)"


class Unauthorized(CouponError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(CouponError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(CouponError):
    status_code = 404
    default_message = "Not found"


class Conflict(CouponError):
    status_code = 400
    default_message = "Conflict"


class PersistenceConflict(Conflict):
    """Coupon code regeneration retries exhausted."""

    status_code = 500
    default_message = "Failed to create coupon"


class PersistenceFailure(CouponError):
    status_code = 500
    default_message = "Database unavailable"


class DeliveryFailure(CouponError):
    """A messaging or ERP step failed. Gateways turn this into a DeliveryOutcome."""

    status_code = 502
    default_message = "Delivery failed"

    def __init__(self, message=None, step=None):
        self.step = step
        super().__init__(message)
