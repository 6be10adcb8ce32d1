# expo_coupon/services/contacts.py
"""Campaign contacts as stored in Odoo: paginated browsing and export rows."""
from __future__ import annotations

from .filters import Pagination
from .odoo import OdooClient

CONTACT_FIELDS = ["id", "name", "phone", "city", "branch_id", "create_date"]
EXPORT_LIMIT = 10000


def _text(v):
    # Odoo sends False for empty fields
    return None if v is False else v


def _many2one(v):
    """Odoo many2one values arrive as [id, display_name] or False."""
    if isinstance(v, (list, tuple)) and len(v) == 2:
        return v[0], v[1]
    return None, None


def contact_dict(row: dict) -> dict:
    branch_id, branch_name = _many2one(row.get("branch_id"))
    return {
        "id": row.get("id"),
        "name": _text(row.get("name")),
        "phone": _text(row.get("phone")),
        "city": _text(row.get("city")),
        "branch_id": branch_id,
        "branch_name": branch_name,
        "created_at": _text(row.get("create_date")),
    }


class ContactDirectory:
    def __init__(self, client: OdooClient, campaign_tag: str):
        self.client = client
        self.campaign_tag = campaign_tag

    @classmethod
    def from_config(cls, config, client: OdooClient):
        return cls(client, config.get("CAMPAIGN_TAG") or "#IDF2026")

    def _domain(self, branch_id=None) -> list:
        domain = [["name", "ilike", self.campaign_tag]]
        if branch_id:
            domain.append(["branch_id", "=", int(branch_id)])
        return domain

    def page(self, pagination: Pagination, branch_id=None):
        """One page of campaign contacts (newest first) plus the total."""
        domain = self._domain(branch_id)
        rows = self.client.search_partners(
            domain, CONTACT_FIELDS, limit=pagination.limit, offset=pagination.offset,
        )
        total = self.client.count_partners(domain)
        return [contact_dict(r) for r in rows], total

    def export_rows(self, branch_id=None, limit=EXPORT_LIMIT):
        rows = self.client.search_partners(self._domain(branch_id), CONTACT_FIELDS, limit=limit)
        out = []
        for r in rows:
            c = contact_dict(r)
            out.append({
                "Customer Name": c["name"],
                "Phone": c["phone"],
                "City": c["city"],
                "Branch": c["branch_name"] or "",
                "Date & Time": c["created_at"],
            })
        return out
