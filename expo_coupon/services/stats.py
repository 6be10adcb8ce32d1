# expo_coupon/services/stats.py
"""
Dashboard numbers: totals, delivery success and per-branch / per-staff counts.

LocalStats reads the coupons table. OdooStats counts the campaign's contacts
in Odoo instead; Odoo has no staff column on a contact, so who created it is
recovered from the "Created by ..." notes left at delivery time. That lookup
lives in NoteAttribution so a sturdier source can replace it later.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import date, timedelta

from sqlalchemy import func

from ..extensions import db
from ..model import Coupon, User
from .filters import FilterCriteria, build
from .odoo import OdooClient, OdooError

logger = logging.getLogger(__name__)

_TAGS = re.compile(r"<[^>]+>")


def _delivery_counts(day: date | None):
    spec = build(FilterCriteria(date=day))
    total = spec.apply(db.session.query(func.count(Coupon.id))).scalar() or 0
    sent = (
        spec.apply(db.session.query(func.count(Coupon.id)))
        .filter(Coupon.whatsapp_sent.is_(True))
        .scalar()
        or 0
    )
    return total, sent


def _active_staff():
    return db.session.query(func.count(User.id)).filter(User.active.is_(True)).scalar() or 0


class LocalStats:
    source = "local"

    def collect(self, day: date | None = None) -> dict:
        spec = build(FilterCriteria(date=day))
        total, sent = _delivery_counts(day)

        count = func.count(Coupon.id).label("count")
        by_branch = (
            spec.apply(db.session.query(Coupon.branch, count))
            .group_by(Coupon.branch)
            .order_by(count.desc(), Coupon.branch)
            .all()
        )
        by_staff = (
            spec.apply(db.session.query(User.name, count).join(User, Coupon.staff_id == User.id))
            .group_by(User.id, User.name)
            .order_by(count.desc(), User.name)
            .all()
        )
        return {
            "totalCoupons": total,
            "whatsappSent": sent,
            "whatsappFailed": total - sent,
            "activeStaff": _active_staff(),
            "byBranch": [{"branch": b, "count": n} for b, n in by_branch],
            "byStaff": [{"name": s, "count": n} for s, n in by_staff],
        }


class StaffAttribution:
    def counts(self, day: date | None = None) -> list[dict]:
        raise NotImplementedError


class NoteAttribution(StaffAttribution):
    """
    Counts contacts per staff member by parsing notes shaped like
    "<p>Created by <b>NAME</b> #TAG</p>". Notes that don't match are skipped.
    """

    def __init__(self, client: OdooClient, campaign_tag: str):
        self.client = client
        self.campaign_tag = campaign_tag
        self.pattern = re.compile(r"Created by\s+([^#]+?)\s*" + re.escape(campaign_tag))

    def parse(self, body: str | None) -> str | None:
        if not body:
            return None
        match = self.pattern.search(_TAGS.sub("", body))
        if not match:
            return None
        return match.group(1).strip() or None

    def counts(self, day: date | None = None) -> list[dict]:
        domain = [
            ["body", "ilike", f"Created by%{self.campaign_tag}"],
            ["model", "=", "res.partner"],
        ]
        domain += _day_domain("date", day)
        messages = self.client.search_messages(domain, ["body"])

        tally = Counter()
        for msg in messages:
            name = self.parse(msg.get("body"))
            if name:
                tally[name] += 1
        return [{"name": name, "count": n} for name, n in sorted(tally.items(), key=lambda kv: (-kv[1], kv[0]))]


def _day_domain(field: str, day: date | None) -> list:
    if not day:
        return []
    nxt = day + timedelta(days=1)
    return [[field, ">=", f"{day.isoformat()} 00:00:00"], [field, "<", f"{nxt.isoformat()} 00:00:00"]]


class OdooStats:
    source = "odoo"

    def __init__(self, client: OdooClient, campaign_tag: str, max_branches: int = 5,
                 attribution: StaffAttribution | None = None):
        self.client = client
        self.campaign_tag = campaign_tag
        self.max_branches = max_branches
        self.attribution = attribution or NoteAttribution(client, campaign_tag)

    def _domain(self, day=None, branch_id=None):
        domain = [["name", "ilike", self.campaign_tag]]
        if branch_id:
            domain.append(["branch_id", "=", int(branch_id)])
        return domain + _day_domain("create_date", day)

    def by_branch(self, day=None) -> list[dict]:
        rows = []
        for branch in self.client.list_branches()[: self.max_branches]:
            count = self.client.count_partners(self._domain(day, branch["id"]))
            if count > 0:
                rows.append({"branch": branch["name"], "count": count})
        rows.sort(key=lambda r: r["count"], reverse=True)
        return rows

    def collect(self, day: date | None = None) -> dict:
        total = self.client.count_partners(self._domain(day))
        by_branch = self.by_branch(day)
        try:
            by_staff = self.attribution.counts(day)
        except OdooError as e:
            logger.error("Staff stats unavailable: %s", e)
            by_staff = []

        # delivery status lives only in the local table; split the remote total with it
        _, sent = _delivery_counts(day)
        sent = min(sent, total)
        return {
            "totalCoupons": total,
            "whatsappSent": sent,
            "whatsappFailed": total - sent,
            "activeStaff": _active_staff(),
            "byBranch": by_branch,
            "byStaff": by_staff,
        }


def build_stats(config, odoo_client: OdooClient | None = None):
    source = (config.get("STATS_SOURCE") or "local").lower()
    if source == "odoo":
        client = odoo_client or OdooClient.from_config(config)
        return OdooStats(client, config.get("CAMPAIGN_TAG") or "#IDF2026", config.get("STATS_MAX_BRANCHES") or 5)
    if source == "local":
        return LocalStats()
    raise ValueError(f"Unknown STATS_SOURCE: {source}")
