"""
Pytest fixtures for the coupon service tests.

Provides an app on an in-memory database, a test client, seeded admin/staff
accounts, auth headers, a fake delivery gateway and a fake Odoo JSON-RPC server.
"""

import json
import threading

import httpx
import pytest
from flask_jwt_extended import create_access_token

from expo_coupon import create_app
from expo_coupon.extensions import db
from expo_coupon.model import Coupon, User
from expo_coupon.services import accounts
from expo_coupon.services.delivery import ContactDeliveryGateway, DeliveryOutcome

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
    "DELIVERY_MODE": "twilio",
    "STATS_SOURCE": "local",
    "BRANCHES": "Muscat,Sohar,Salalah",
    "TWILIO_ACCOUNT_SID": None,
    "TWILIO_AUTH_TOKEN": None,
}


# =============================================================================
# FAKES
# =============================================================================

class FakeGateway(ContactDeliveryGateway):
    """Records every request and answers with a fixed outcome."""

    name = "fake"

    def __init__(self, outcome=None, on_send=None):
        self.outcome = outcome or DeliveryOutcome(success=True, message_id="SM123")
        self.on_send = on_send
        self.calls = []
        self._lock = threading.Lock()

    def send(self, request):
        with self._lock:
            self.calls.append(request)
        if self.on_send:
            self.on_send(request)
        return self.outcome


class OdooFake:
    """
    In-process stand-in for Odoo's /jsonrpc endpoint.

    `fail` maps (model, method) -> error message to answer that call with an
    RPC error; `results` maps (model, method) -> a value or callable(args).
    """

    def __init__(self, uid=7):
        self.uid = uid
        self.calls = []
        self.fail = {}
        self.results = {
            ("res.partner", "create"): 501,
            ("res.partner", "message_post"): 9001,
            ("whatsapp.template", "search_read"): [{"id": 3, "name": "idf_2026"}],
            ("whatsapp.composer", "create"): 44,
            ("whatsapp.composer", "action_send_whatsapp_template"): True,
        }

    def count(self, model, method):
        return sum(1 for c in self.calls if c[0] == model and c[1] == method)

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        params = payload["params"]
        if params["service"] == "common":
            self.calls.append(("common", params["method"], params["args"]))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": self.uid})

        _db, _uid, _key, model, method, *rest = params["args"]
        self.calls.append((model, method, rest))
        key = (model, method)
        if key in self.fail:
            error = {"code": 200, "message": "Odoo Server Error", "data": {"message": self.fail[key]}}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})

        result = self.results.get(key)
        if callable(result):
            result = result(rest)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def transport(self):
        return httpx.MockTransport(self.handler)


# =============================================================================
# APP / DB
# =============================================================================

@pytest.fixture
def app():
    app = create_app(dict(TEST_CONFIG))
    app.extensions["delivery_gateway"] = FakeGateway()

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    return app.extensions["delivery_gateway"]


@pytest.fixture
def admin(app):
    """The admin seeded on first boot."""
    return User.query.filter_by(username="admin").one()


@pytest.fixture
def staff(app):
    return accounts.create_staff("sara", "secret1", "Sara Al Balushi")


@pytest.fixture
def other_staff(app):
    return accounts.create_staff("omar", "secret2", "Omar Al Said")


def _headers(user):
    token = create_access_token(identity=str(user.id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def staff_headers(staff):
    return _headers(staff)


# =============================================================================
# DATA HELPERS
# =============================================================================

@pytest.fixture
def make_coupon(app):
    counter = {"n": 0}

    def _make(staff, customer_name="Customer", mobile_number="91234567", branch="Muscat",
              created_at=None, whatsapp_sent=False, **extra):
        counter["n"] += 1
        coupon = Coupon(
            customer_name=customer_name,
            mobile_number=mobile_number,
            mobile_local=extra.pop("mobile_local", mobile_number),
            branch=branch,
            coupon_code=extra.pop("coupon_code", f"EXPO-TEST-{counter['n']:04d}"),
            staff_id=staff.id,
            whatsapp_sent=whatsapp_sent,
            **extra,
        )
        if created_at is not None:
            coupon.created_at = created_at
        db.session.add(coupon)
        db.session.commit()
        return coupon

    return _make
