"""Campaign contacts browsed and exported from Odoo."""

from io import BytesIO

import pandas as pd
import pytest

from expo_coupon.services.contacts import ContactDirectory, contact_dict
from expo_coupon.services.export import XLSX_MIMETYPE
from expo_coupon.services.filters import Pagination
from expo_coupon.services.odoo import OdooClient

from conftest import OdooFake

PARTNERS = [
    {"id": 12, "name": "ALI HASSAN 91234567 #IDF2026", "phone": "91234567", "city": "Muscat",
     "branch_id": [3, "Muscat Grand Mall"], "create_date": "2026-02-01 09:30:00"},
    {"id": 11, "name": "MONA SAID 71234567 #IDF2026", "phone": "71234567", "city": False,
     "branch_id": False, "create_date": "2026-02-01 09:10:00"},
]


@pytest.fixture
def odoo():
    fake = OdooFake()
    fake.results[("res.partner", "search_read")] = PARTNERS
    fake.results[("res.partner", "search_count")] = 120
    return fake


@pytest.fixture
def directory(app, odoo):
    client = OdooClient("https://odoo.test", "prod", "bot", "key", transport=odoo.transport())
    directory = ContactDirectory(client, "#IDF2026")
    app.extensions["contacts"] = directory
    return directory


def _search_call(fake):
    return next(c for c in fake.calls if c[:2] == ("res.partner", "search_read"))


# =============================================================================
# DIRECTORY
# =============================================================================

class TestDirectory:

    def test_contact_dict(self):
        assert contact_dict(PARTNERS[0]) == {
            "id": 12,
            "name": "ALI HASSAN 91234567 #IDF2026",
            "phone": "91234567",
            "city": "Muscat",
            "branch_id": 3,
            "branch_name": "Muscat Grand Mall",
            "created_at": "2026-02-01 09:30:00",
        }
        empty = contact_dict(PARTNERS[1])
        assert empty["city"] is None
        assert empty["branch_id"] is None and empty["branch_name"] is None

    def test_page(self, directory, odoo):
        items, total = directory.page(Pagination(page=3, limit=50), branch_id=3)

        assert total == 120
        assert [c["id"] for c in items] == [12, 11]
        domain, options = _search_call(odoo)[2]
        assert domain[0] == [["name", "ilike", "#IDF2026"], ["branch_id", "=", 3]]
        assert options["limit"] == 50
        assert options["offset"] == 100
        assert options["order"] == "create_date desc"

    def test_export_rows(self, directory):
        rows = directory.export_rows()
        assert rows[0] == {
            "Customer Name": "ALI HASSAN 91234567 #IDF2026",
            "Phone": "91234567",
            "City": "Muscat",
            "Branch": "Muscat Grand Mall",
            "Date & Time": "2026-02-01 09:30:00",
        }
        assert rows[1]["Branch"] == ""


# =============================================================================
# ROUTES
# =============================================================================

class TestRoutes:

    def test_list(self, client, directory, staff_headers):
        resp = client.get("/api/contacts?page=2&limit=50", headers=staff_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["pagination"] == {"page": 2, "limit": 50, "total": 120, "pages": 3}
        assert body["contacts"][0]["branch_name"] == "Muscat Grand Mall"

    def test_bad_branch_id(self, client, directory, staff_headers):
        assert client.get("/api/contacts?branch_id=mall", headers=staff_headers).status_code == 400

    def test_remote_failure(self, client, directory, odoo, staff_headers):
        odoo.fail[("res.partner", "search_read")] = "Access denied"
        resp = client.get("/api/contacts", headers=staff_headers)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to fetch contacts"}

    def test_requires_odoo(self, client, staff_headers):
        resp = client.get("/api/contacts", headers=staff_headers)
        assert resp.status_code == 404

    def test_export_admin_only(self, client, directory, staff_headers):
        assert client.get("/api/contacts/export", headers=staff_headers).status_code == 403

    def test_export(self, client, directory, odoo, admin_headers):
        resp = client.get("/api/contacts/export?branch_id=3", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.mimetype == XLSX_MIMETYPE
        assert "contacts-export-" in resp.headers["Content-Disposition"]
        df = pd.read_excel(BytesIO(resp.data), sheet_name="Contacts", engine="openpyxl")
        assert list(df.columns) == ["Customer Name", "Phone", "City", "Branch", "Date & Time"]
        assert len(df) == 2
        assert _search_call(odoo)[2][1]["limit"] == 10000
