# expo_coupon/services/odoo.py
"""
Thin JSON-RPC client for the Odoo instance that holds campaign contacts.

Only the calls this service needs are wrapped: authenticate, partner create /
search / count, chatter notes, WhatsApp template + composer, and branch lookup.
"""
from __future__ import annotations

import itertools
import logging
import threading
import time

import httpx

logger = logging.getLogger(__name__)


class OdooError(Exception):
    pass


class OdooSession:
    """
    Holds the uid returned by `common.authenticate`.

    One instance is shared by every caller of a client. Concurrent first
    callers may each authenticate; the last one to finish wins, which is
    harmless because authentication is idempotent. `max_age` (seconds, 0 for
    never) bounds how long a uid is trusted before re-authenticating.
    """

    def __init__(self, max_age: float = 0, clock=time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self.uid = None
        self.authenticated_at = None

    @property
    def expired(self) -> bool:
        if self.uid is None:
            return True
        if not self.max_age:
            return False
        return self._clock() - self.authenticated_at >= self.max_age

    def store(self, uid):
        self.uid = uid
        self.authenticated_at = self._clock()

    def invalidate(self):
        self.uid = None
        self.authenticated_at = None


class OdooClient:
    def __init__(
        self,
        url: str,
        database: str | None,
        username: str | None,
        api_key: str | None,
        session: OdooSession | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = (url or "").rstrip("/")
        self.database = database
        self.username = username
        self.api_key = api_key
        self.session = session or OdooSession()
        self._http = httpx.Client(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)
        self._ids_lock = threading.Lock()

    @classmethod
    def from_config(cls, config, transport=None) -> "OdooClient":
        return cls(
            url=config.get("ODOO_URL"),
            database=config.get("ODOO_DATABASE"),
            username=config.get("ODOO_USERNAME"),
            api_key=config.get("ODOO_API_KEY"),
            session=OdooSession(max_age=config.get("ODOO_SESSION_MAX_AGE") or 0),
            timeout=config.get("OUTBOUND_TIMEOUT") or 15.0,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.url and self.database and self.username and self.api_key)

    # ---------- transport ----------
    def _next_id(self):
        with self._ids_lock:
            return next(self._ids)

    def _rpc(self, service: str, method: str, *args):
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": list(args)},
            "id": self._next_id(),
        }
        try:
            resp = self._http.post(f"{self.url}/jsonrpc", json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.TimeoutException:
            raise OdooError("Odoo request timed out")
        except (httpx.HTTPError, ValueError) as e:
            raise OdooError(f"Odoo request failed: {e}")

        if not isinstance(body, dict):
            raise OdooError("Unexpected Odoo response")
        error = body.get("error")
        if error:
            data = error.get("data") or {}
            raise OdooError(data.get("message") or error.get("message") or "Odoo API error")
        return body.get("result")

    # ---------- session ----------
    def authenticate(self):
        if not self.session.expired:
            return self.session.uid
        if not self.configured:
            raise OdooError("Odoo credentials not configured")

        uid = self._rpc("common", "authenticate", self.database, self.username, self.api_key, {})
        if not uid:
            raise OdooError("Odoo authentication failed")
        self.session.store(uid)
        logger.info("Odoo authenticated, uid=%s", uid)
        return uid

    def execute_kw(self, model: str, method: str, args: list, kwargs: dict | None = None):
        uid = self.authenticate()
        call = [self.database, uid, self.api_key, model, method, args]
        if kwargs is not None:
            call.append(kwargs)
        return self._rpc("object", "execute_kw", *call)

    # ---------- partners ----------
    def create_partner(self, values: dict) -> int:
        return self.execute_kw("res.partner", "create", [values])

    def count_partners(self, domain: list) -> int:
        return self.execute_kw("res.partner", "search_count", [domain]) or 0

    def search_partners(self, domain: list, fields: list, limit=100, offset=0, order="create_date desc"):
        return self.execute_kw(
            "res.partner", "search_read", [domain],
            {"fields": fields, "limit": limit, "offset": offset, "order": order},
        ) or []

    def post_note(self, partner_id: int, body: str):
        return self.execute_kw(
            "res.partner", "message_post", [[partner_id]],
            {"body": body, "message_type": "comment", "subtype_xmlid": "mail.mt_note"},
        )

    def search_messages(self, domain: list, fields: list):
        return self.execute_kw("mail.message", "search_read", [domain], {"fields": fields}) or []

    # ---------- whatsapp ----------
    def find_template(self, name: str):
        rows = self.execute_kw(
            "whatsapp.template", "search_read", [[["name", "=", name]]],
            {"fields": ["id", "name"], "limit": 1},
        ) or []
        return rows[0]["id"] if rows else None

    def create_composer(self, partner_id: int, phone: str, template_id: int) -> int:
        return self.execute_kw("whatsapp.composer", "create", [{
            "res_model": "res.partner",
            "res_ids": [partner_id],
            "phone": phone,
            "wa_template_id": template_id,
        }])

    def send_composer(self, composer_id: int):
        return self.execute_kw("whatsapp.composer", "action_send_whatsapp_template", [[composer_id]])

    # ---------- branches ----------
    def list_branches(self):
        return self.execute_kw("company.branches", "search_read", [[]], {"fields": ["id", "name"]}) or []
