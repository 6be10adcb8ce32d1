# expo_coupon/services/delivery.py
"""
WhatsApp delivery of coupon codes.

Two gateways share one contract, ``send(request) -> DeliveryOutcome``:

* DirectMessagingGateway posts a text message through the Twilio REST API.
* ERPMediatedGateway creates the customer as an Odoo contact, leaves a note
  naming the staff member, then sends the campaign's WhatsApp template.

Provider errors never propagate out of ``send``; they come back as a failed
outcome so the coupon record is kept and the send can be retried later.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict

import httpx

from ..errors import DeliveryFailure
from .odoo import OdooClient, OdooError
from .phone import NumberingPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryRequest:
    phone_local: str
    code: str
    customer_name: str
    staff_name: str
    branch: str | None = None
    branch_id: int | None = None
    # remote contact from an earlier attempt; set on resend
    contact_id: int | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
    success: bool
    message_id: str | None = None
    error: str | None = None
    contact_id: int | None = None

    @classmethod
    def failed(cls, error, contact_id=None):
        return cls(success=False, error=str(error), contact_id=contact_id)

    def as_dict(self):
        return {k: v for k, v in asdict(self).items() if v is not None}


class ContactDeliveryGateway:
    name = "base"

    def send(self, request: DeliveryRequest) -> DeliveryOutcome:
        raise NotImplementedError


class DirectMessagingGateway(ContactDeliveryGateway):
    name = "twilio"

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        plan: NumberingPlan,
        template: str,
        api_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.plan = plan
        self.template = template
        self.api_url = api_url.rstrip("/")
        self._http = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_config(cls, config, plan: NumberingPlan, transport=None):
        return cls(
            account_sid=config.get("TWILIO_ACCOUNT_SID"),
            auth_token=config.get("TWILIO_AUTH_TOKEN"),
            from_number=config.get("TWILIO_WHATSAPP_NUMBER"),
            plan=plan,
            template=config.get("COUPON_MESSAGE_TEMPLATE"),
            api_url=config.get("TWILIO_API_URL") or "https://api.twilio.com/2010-04-01",
            timeout=config.get("OUTBOUND_TIMEOUT") or 15.0,
            transport=transport,
        )

    @property
    def configured(self):
        sid = self.account_sid or ""
        return bool(sid.startswith("AC") and self.auth_token and self.from_number)

    def send(self, request: DeliveryRequest) -> DeliveryOutcome:
        if not self.configured:
            logger.warning("Twilio not configured; coupon %s not sent", request.code)
            return DeliveryOutcome.failed("Twilio not configured")

        to = f"whatsapp:+{self.plan.to_international(request.phone_local)}"
        body = self.template.replace("{code}", request.code).replace("{customer_name}", request.customer_name)
        try:
            resp = self._http.post(
                f"{self.api_url}/Accounts/{self.account_sid}/Messages.json",
                data={"From": f"whatsapp:{self.from_number}", "To": to, "Body": body},
                auth=(self.account_sid, self.auth_token),
            )
        except httpx.TimeoutException:
            logger.error("Twilio timed out sending coupon %s", request.code)
            return DeliveryOutcome.failed("Twilio request timed out")
        except httpx.HTTPError as e:
            logger.error("Twilio request failed for coupon %s: %s", request.code, e)
            return DeliveryOutcome.failed(f"Twilio request failed: {e}")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            error = data.get("message") or f"Twilio returned HTTP {resp.status_code}"
            logger.error("WhatsApp send error for coupon %s: %s", request.code, error)
            return DeliveryOutcome.failed(error)

        logger.info("WhatsApp message sent for coupon %s: %s", request.code, data.get("sid"))
        return DeliveryOutcome(success=True, message_id=data.get("sid"))


class ERPMediatedGateway(ContactDeliveryGateway):
    name = "odoo"

    def __init__(self, client: OdooClient, plan: NumberingPlan, campaign_tag: str, template_name: str):
        self.client = client
        self.plan = plan
        self.campaign_tag = campaign_tag
        self.template_name = template_name

    @classmethod
    def from_config(cls, config, client: OdooClient, plan: NumberingPlan):
        return cls(
            client=client,
            plan=plan,
            campaign_tag=config.get("CAMPAIGN_TAG") or "#IDF2026",
            template_name=config.get("WHATSAPP_TEMPLATE_NAME") or "idf_2026",
        )

    def contact_name(self, request: DeliveryRequest) -> str:
        return f"{request.customer_name.strip().upper()} {request.phone_local} {self.campaign_tag}"

    def note_body(self, staff_name: str) -> str:
        return f"<p>Created by <b>{staff_name}</b> {self.campaign_tag}</p>"

    def _step(self, step, fn, *args):
        try:
            return fn(*args)
        except OdooError as e:
            raise DeliveryFailure(str(e), step=step)

    def find_contact(self, request: DeliveryRequest):
        rows = self.client.search_partners([["name", "=", self.contact_name(request)]], ["id"], limit=1)
        return rows[0]["id"] if rows else None

    def _create_contact(self, request: DeliveryRequest) -> int:
        values = {
            "name": self.contact_name(request),
            "phone": request.phone_local,
            "city": request.branch,
            "is_customer_toggle": True,
        }
        if request.branch_id:
            values["branch_id"] = request.branch_id
        partner_id = self._step("create contact", self.client.create_partner, values)
        logger.info("Odoo contact %s created for coupon %s", partner_id, request.code)
        return partner_id

    def send(self, request: DeliveryRequest) -> DeliveryOutcome:
        """
        Contact and note are created once per customer: a known contact_id, or
        an existing contact with the same campaign name, goes straight to the
        template steps so resends don't add contacts or notes.
        """
        partner_id = request.contact_id
        try:
            self._step("authenticate", self.client.authenticate)

            if partner_id is None:
                partner_id = self._step("find contact", self.find_contact, request)
                if partner_id is None:
                    partner_id = self._create_contact(request)
                    self._step("post note", self.client.post_note, partner_id, self.note_body(request.staff_name))
                else:
                    logger.info("Reusing Odoo contact %s for coupon %s", partner_id, request.code)

            template_id = self._step("find template", self.client.find_template, self.template_name)
            if not template_id:
                raise DeliveryFailure(f"WhatsApp template '{self.template_name}' not found", step="find template")
            phone = f"+{self.plan.to_international(request.phone_local)}"
            composer_id = self._step("create composer", self.client.create_composer, partner_id, phone, template_id)
            if not composer_id:
                raise DeliveryFailure("Odoo did not return a composer", step="create composer")
            self._step("send template", self.client.send_composer, composer_id)
        except DeliveryFailure as e:
            logger.error("Odoo delivery for coupon %s failed at %s: %s", request.code, e.step, e.message)
            return DeliveryOutcome.failed(f"{e.step}: {e.message}", contact_id=partner_id)

        logger.info("WhatsApp template sent to partner %s for coupon %s", partner_id, request.code)
        return DeliveryOutcome(success=True, message_id=str(composer_id), contact_id=partner_id)


def build_gateway(config, plan: NumberingPlan, odoo_client: OdooClient | None = None) -> ContactDeliveryGateway:
    mode = (config.get("DELIVERY_MODE") or "twilio").lower()
    if mode == "odoo":
        return ERPMediatedGateway.from_config(config, odoo_client or OdooClient.from_config(config), plan)
    if mode == "twilio":
        return DirectMessagingGateway.from_config(config, plan)
    raise ValueError(f"Unknown DELIVERY_MODE: {mode}")
