# expo_coupon/services/branches.py
import logging

from .odoo import OdooClient, OdooError

logger = logging.getLogger(__name__)


def static_branches(raw: str | None) -> list[dict]:
    """BRANCHES="Muscat, Sohar" -> [{"id": 1, "name": "Muscat"}, {"id": 2, "name": "Sohar"}]"""
    names = [b.strip() for b in (raw or "").split(",") if b.strip()]
    return [{"id": i, "name": name} for i, name in enumerate(names, start=1)]


class BranchDirectory:
    def __init__(self, fallback: list[dict], client: OdooClient | None = None):
        self.fallback = fallback
        self.client = client

    @classmethod
    def from_config(cls, config, odoo_client: OdooClient | None = None):
        remote = (config.get("DELIVERY_MODE") or "").lower() == "odoo"
        return cls(static_branches(config.get("BRANCHES")), odoo_client if remote else None)

    def list(self) -> list[dict]:
        if self.client is None:
            return list(self.fallback)
        try:
            return [{"id": b["id"], "name": b["name"]} for b in self.client.list_branches()]
        except OdooError as e:
            logger.warning("Falling back to configured branches: %s", e)
            return list(self.fallback)
