"""Dashboard statistics, local and Odoo-backed."""

from datetime import date, datetime

import pytest

from expo_coupon.services.branches import BranchDirectory, static_branches
from expo_coupon.services.odoo import OdooClient
from expo_coupon.services.stats import LocalStats, NoteAttribution, OdooStats, build_stats

from conftest import OdooFake

BRANCHES = [{"id": n, "name": f"Branch {n}"} for n in range(1, 8)]


def _client(fake):
    return OdooClient("https://odoo.test", "prod", "bot", "key", transport=fake.transport())


def _branch_counts(counts):
    """search_count answer keyed by the branch_id clause of the domain; no clause means the total."""
    def answer(rest):
        domain = rest[0][0]
        for field, _op, value in domain:
            if field == "branch_id":
                return counts.get(value, 0)
        return sum(counts.values())
    return answer


# =============================================================================
# LOCAL
# =============================================================================

class TestLocalStats:

    def test_empty(self, app):
        stats = LocalStats().collect()
        assert stats["totalCoupons"] == 0
        assert stats["whatsappSent"] == 0
        assert stats["whatsappFailed"] == 0
        assert stats["byBranch"] == []
        assert stats["byStaff"] == []
        # the seeded admin
        assert stats["activeStaff"] == 1

    def test_counts(self, staff, other_staff, make_coupon):
        make_coupon(staff, branch="Muscat", whatsapp_sent=True)
        make_coupon(staff, branch="Muscat", whatsapp_sent=True)
        make_coupon(staff, branch="Sohar")
        make_coupon(other_staff, branch="Sohar", whatsapp_sent=True)
        make_coupon(other_staff, branch="Salalah")

        stats = LocalStats().collect()

        assert stats["totalCoupons"] == 5
        assert stats["whatsappSent"] == 3
        assert stats["whatsappFailed"] == 2
        assert stats["activeStaff"] == 3
        assert stats["byBranch"] == [
            {"branch": "Muscat", "count": 2},
            {"branch": "Sohar", "count": 2},
            {"branch": "Salalah", "count": 1},
        ]
        assert stats["byStaff"] == [
            {"name": "Sara Al Balushi", "count": 3},
            {"name": "Omar Al Said", "count": 2},
        ]

    def test_single_day(self, staff, make_coupon):
        make_coupon(staff, created_at=datetime(2026, 2, 1, 10, 0), whatsapp_sent=True)
        make_coupon(staff, created_at=datetime(2026, 2, 2, 10, 0))

        stats = LocalStats().collect(date(2026, 2, 1))
        assert stats["totalCoupons"] == 1
        assert stats["whatsappSent"] == 1
        assert stats["whatsappFailed"] == 0


# =============================================================================
# NOTE ATTRIBUTION
# =============================================================================

class TestNoteAttribution:

    @pytest.fixture
    def attribution(self):
        return NoteAttribution(client=None, campaign_tag="#IDF2026")

    @pytest.mark.parametrize(
        "body,expected",
        [
            ("<p>Created by <b>Sara Al Balushi</b> #IDF2026</p>", "Sara Al Balushi"),
            ("Created by Omar #IDF2026", "Omar"),
            ("<p>Created by <b>Sara</b> #OTHER</p>", None),
            ("<p>Called the customer</p>", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, attribution, body, expected):
        assert attribution.parse(body) == expected

    def test_counts_skip_unparseable_notes(self):
        fake = OdooFake()
        fake.results[("mail.message", "search_read")] = [
            {"id": 1, "body": "<p>Created by <b>Sara</b> #IDF2026</p>"},
            {"id": 2, "body": "<p>Created by <b>Omar</b> #IDF2026</p>"},
            {"id": 3, "body": "<p>Created by <b>Sara</b> #IDF2026</p>"},
            {"id": 4, "body": "<p>Created by #IDF2026 bulk import</p>"},
        ]

        counts = NoteAttribution(_client(fake), "#IDF2026").counts(date(2026, 2, 1))

        assert counts == [{"name": "Sara", "count": 2}, {"name": "Omar", "count": 1}]
        domain = fake.calls[-1][2][0][0]
        assert ["model", "=", "res.partner"] in domain
        assert ["date", ">=", "2026-02-01 00:00:00"] in domain
        assert ["date", "<", "2026-02-02 00:00:00"] in domain


# =============================================================================
# ODOO
# =============================================================================

class TestOdooStats:

    def test_branches_capped_and_zero_counts_dropped(self, app, staff, make_coupon):
        make_coupon(staff, whatsapp_sent=True)
        make_coupon(staff)

        fake = OdooFake()
        fake.results[("company.branches", "search_read")] = BRANCHES
        fake.results[("res.partner", "search_count")] = _branch_counts({1: 4, 2: 0, 3: 9, 6: 30})
        fake.results[("mail.message", "search_read")] = [{"body": "<p>Created by <b>Sara</b> #IDF2026</p>"}]

        stats = OdooStats(_client(fake), "#IDF2026", max_branches=5).collect()

        assert stats["totalCoupons"] == 43
        # branch 6 is beyond the first five
        assert stats["byBranch"] == [{"branch": "Branch 3", "count": 9}, {"branch": "Branch 1", "count": 4}]
        assert stats["byStaff"] == [{"name": "Sara", "count": 1}]
        assert stats["whatsappSent"] == 1
        assert stats["whatsappFailed"] == 42
        assert fake.count("res.partner", "search_count") == 6

    def test_sent_and_failed_add_up_to_remote_total(self, app, staff, make_coupon):
        for _ in range(3):
            make_coupon(staff, whatsapp_sent=True)

        fake = OdooFake()
        fake.results[("company.branches", "search_read")] = []
        fake.results[("res.partner", "search_count")] = 2
        fake.results[("mail.message", "search_read")] = []

        stats = OdooStats(_client(fake), "#IDF2026").collect()

        assert stats["totalCoupons"] == 2
        assert stats["whatsappSent"] + stats["whatsappFailed"] == stats["totalCoupons"]
        assert stats["whatsappFailed"] == 0

    def test_attribution_failure_leaves_staff_empty(self, app):
        fake = OdooFake()
        fake.results[("company.branches", "search_read")] = []
        fake.results[("res.partner", "search_count")] = 0
        fake.fail[("mail.message", "search_read")] = "Access denied"

        stats = OdooStats(_client(fake), "#IDF2026").collect()
        assert stats["byStaff"] == []
        assert stats["byBranch"] == []

    def test_date_narrows_contact_domain(self, app):
        fake = OdooFake()
        fake.results[("company.branches", "search_read")] = []
        fake.results[("res.partner", "search_count")] = 0
        fake.results[("mail.message", "search_read")] = []

        OdooStats(_client(fake), "#IDF2026").collect(date(2026, 2, 1))

        domain = next(c for c in fake.calls if c[:2] == ("res.partner", "search_count"))[2][0][0]
        assert ["name", "ilike", "#IDF2026"] in domain
        assert ["create_date", ">=", "2026-02-01 00:00:00"] in domain


def test_build_stats():
    assert isinstance(build_stats({"STATS_SOURCE": "local"}), LocalStats)
    assert isinstance(build_stats({"STATS_SOURCE": "odoo"}), OdooStats)
    with pytest.raises(ValueError):
        build_stats({"STATS_SOURCE": "crystal-ball"})


# =============================================================================
# BRANCHES
# =============================================================================

class TestBranches:

    def test_static_list(self):
        assert static_branches(" Muscat, ,Sohar ") == [{"id": 1, "name": "Muscat"}, {"id": 2, "name": "Sohar"}]
        assert static_branches(None) == []

    def test_remote_list(self):
        fake = OdooFake()
        fake.results[("company.branches", "search_read")] = [{"id": 12, "name": "Muscat Grand Mall", "code": "MGM"}]
        directory = BranchDirectory(static_branches("Muscat"), _client(fake))
        assert directory.list() == [{"id": 12, "name": "Muscat Grand Mall"}]

    def test_remote_failure_falls_back(self):
        fake = OdooFake(uid=False)
        directory = BranchDirectory(static_branches("Muscat,Sohar"), _client(fake))
        assert [b["name"] for b in directory.list()] == ["Muscat", "Sohar"]

    def test_remote_only_in_odoo_mode(self):
        client = _client(OdooFake())
        assert BranchDirectory.from_config({"DELIVERY_MODE": "twilio", "BRANCHES": "A"}, client).client is None
        assert BranchDirectory.from_config({"DELIVERY_MODE": "odoo", "BRANCHES": "A"}, client).client is client
