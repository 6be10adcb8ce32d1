# expo_coupon/services/coupon_service.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import InvalidInput, InvalidPhone, NotFound, PersistenceConflict, PersistenceFailure
from ..extensions import db
from ..model import Coupon
from .codes import generate_code
from .delivery import ContactDeliveryGateway, DeliveryOutcome, DeliveryRequest
from .phone import NumberingPlan

logger = logging.getLogger(__name__)

_CODE_COLLISION = re.compile(r"coupon_code", re.IGNORECASE)


def is_code_collision(exc: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: coupons.coupon_code"
    # postgres: duplicate key value violates unique constraint "ix_coupons_coupon_code"
    return bool(_CODE_COLLISION.search(str(exc.orig)))


@dataclass
class IssueResult:
    coupon_id: int
    coupon: dict
    outcome: DeliveryOutcome


class CouponService:
    """
    Issues coupons: validate, normalize the phone, insert with a fresh code,
    then attempt delivery and record the outcome.

    Holds no per-request state; the gateway is shared and must be thread safe.
    """

    def __init__(
        self,
        gateway: ContactDeliveryGateway,
        plan: NumberingPlan,
        prefix: str = "EXPO",
        max_attempts: int = 3,
        code_factory=generate_code,
    ):
        self.gateway = gateway
        self.plan = plan
        self.prefix = prefix
        self.max_attempts = max(1, max_attempts)
        self.code_factory = code_factory

    @classmethod
    def from_app(cls, app=None) -> "CouponService":
        app = app or current_app
        return cls(
            gateway=app.extensions["delivery_gateway"],
            plan=app.extensions["numbering_plan"],
            prefix=app.config.get("COUPON_PREFIX") or "EXPO",
            max_attempts=app.config.get("COUPON_INSERT_RETRIES") or 3,
        )

    # ---------- issue ----------
    def issue(self, staff, customer_name, mobile_number, branch, branch_id=None) -> IssueResult:
        customer_name = (customer_name or "").strip()
        mobile_number = (mobile_number or "").strip()
        branch = (branch or "").strip()
        if not customer_name or not mobile_number or not branch:
            raise InvalidInput("Customer name, mobile number, and branch required")

        local = self.plan.normalize(mobile_number)
        if not self.plan.is_valid(local):
            raise InvalidPhone()

        coupon = self._insert(
            customer_name=customer_name,
            mobile_number=mobile_number,
            mobile_local=local,
            branch=branch,
            branch_id=branch_id,
            staff_id=staff.id,
        )
        # snapshot now so the response survives a failed status update
        snapshot = coupon.as_dict()

        outcome = self._deliver(coupon, staff.name)
        self._record(coupon, outcome)

        snapshot.update(whatsapp_sent=outcome.success, whatsapp_error=outcome.error)
        if outcome.contact_id is not None:
            snapshot["contact_id"] = outcome.contact_id
        return IssueResult(coupon_id=snapshot["id"], coupon=snapshot, outcome=outcome)

    def _insert(self, **fields) -> Coupon:
        for attempt in range(1, self.max_attempts + 1):
            coupon = Coupon(coupon_code=self.code_factory(self.prefix), **fields)
            db.session.add(coupon)
            try:
                db.session.commit()
                return coupon
            except IntegrityError as e:
                db.session.rollback()
                if not is_code_collision(e):
                    logger.exception("Coupon insert rejected by the database")
                    raise PersistenceFailure("Failed to create coupon")
                logger.warning("Coupon code %s collided (attempt %d/%d)", coupon.coupon_code, attempt, self.max_attempts)
            except SQLAlchemyError:
                db.session.rollback()
                logger.exception("Coupon insert failed")
                raise PersistenceFailure("Failed to create coupon")
        raise PersistenceConflict()

    def _deliver(self, coupon: Coupon, staff_name: str) -> DeliveryOutcome:
        request = DeliveryRequest(
            phone_local=coupon.mobile_local,
            code=coupon.coupon_code,
            customer_name=coupon.customer_name,
            staff_name=staff_name,
            branch=coupon.branch,
            branch_id=coupon.branch_id,
            contact_id=coupon.contact_id,
        )
        try:
            return self.gateway.send(request)
        except Exception as e:
            # gateways report provider errors as outcomes; anything else is a bug
            logger.exception("Delivery gateway %s raised for coupon %s", self.gateway.name, coupon.coupon_code)
            return DeliveryOutcome.failed(f"Delivery error: {e.__class__.__name__}")

    def _record(self, coupon: Coupon, outcome: DeliveryOutcome) -> bool:
        try:
            coupon.whatsapp_sent = outcome.success
            coupon.whatsapp_error = None if outcome.success else outcome.error
            if outcome.contact_id is not None:
                coupon.contact_id = outcome.contact_id
            db.session.commit()
            return True
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not record delivery status for coupon %s", coupon.coupon_code)
            return False

    # ---------- resend ----------
    def resend(self, coupon_id: int) -> DeliveryOutcome:
        coupon = db.session.get(Coupon, coupon_id)
        if not coupon:
            raise NotFound("Coupon not found")

        # always re-sends, even when the coupon was already delivered
        outcome = self._deliver(coupon, coupon.staff.name if coupon.staff else "")
        self._record(coupon, outcome)
        return outcome
