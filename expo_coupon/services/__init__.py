# expo_coupon/services/__init__.py
from .branches import BranchDirectory
from .contacts import ContactDirectory
from .delivery import build_gateway
from .odoo import OdooClient
from .phone import NumberingPlan
from .stats import build_stats


def init_services(app):
    """Build the process-wide collaborators once and park them on app.extensions."""
    cfg = app.config
    plan = NumberingPlan.from_config(cfg)

    odoo_client = None
    if cfg.get("DELIVERY_MODE") == "odoo" or cfg.get("STATS_SOURCE") == "odoo":
        odoo_client = OdooClient.from_config(cfg)

    app.extensions["numbering_plan"] = plan
    app.extensions["odoo_client"] = odoo_client
    app.extensions["delivery_gateway"] = build_gateway(cfg, plan, odoo_client)
    app.extensions["stats"] = build_stats(cfg, odoo_client)
    app.extensions["branches"] = BranchDirectory.from_config(cfg, odoo_client)
    app.extensions["contacts"] = ContactDirectory.from_config(cfg, odoo_client) if odoo_client else None
