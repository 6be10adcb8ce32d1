import os
from datetime import timedelta


def _env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # JWT
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)

    FRONTEND_URL = os.getenv("FRONTEND_URL", "*")
    FRONTEND_DIST = os.getenv("FRONTEND_DIST")

    # Accounts
    DEFAULT_ADMIN_USERNAME = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
    DEFAULT_ADMIN_NAME = os.getenv("DEFAULT_ADMIN_NAME", "Administrator")
    PASSWORD_MIN_LENGTH = _env_int("PASSWORD_MIN_LENGTH", 4)

    # Coupons
    COUPON_PREFIX = os.getenv("COUPON_PREFIX", "EXPO")
    COUPON_INSERT_RETRIES = _env_int("COUPON_INSERT_RETRIES", 3)
    BRANCHES = os.getenv("BRANCHES", "")

    # Oman numbering plan: 8 digits starting with 7 or 9
    PHONE_COUNTRY_CODE = os.getenv("PHONE_COUNTRY_CODE", "968")
    PHONE_LOCAL_PATTERN = os.getenv("PHONE_LOCAL_PATTERN", r"^[79]\d{7}$")
    PHONE_LOCAL_LENGTH = _env_int("PHONE_LOCAL_LENGTH", 8)

    # Delivery: "twilio" sends directly, "odoo" goes through the ERP
    DELIVERY_MODE = os.getenv("DELIVERY_MODE", "twilio").strip().lower()
    STATS_SOURCE = os.getenv("STATS_SOURCE", "").strip().lower() or (
        "odoo" if DELIVERY_MODE == "odoo" else "local"
    )
    OUTBOUND_TIMEOUT = _env_float("OUTBOUND_TIMEOUT", 15.0)

    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_WHATSAPP_NUMBER = os.getenv("TWILIO_WHATSAPP_NUMBER")
    TWILIO_API_URL = os.getenv("TWILIO_API_URL", "https://api.twilio.com/2010-04-01")
    COUPON_MESSAGE_TEMPLATE = os.getenv(
        "COUPON_MESSAGE_TEMPLATE",
        "Welcome! Here is your 15% discount coupon code: *{code}*. "
        "Valid for 4 months at our showroom. Thank you for visiting our expo stall!",
    )

    ODOO_URL = os.getenv("ODOO_URL", "https://test.bellastore.in")
    ODOO_DATABASE = os.getenv("ODOO_DATABASE")
    ODOO_USERNAME = os.getenv("ODOO_USERNAME")
    ODOO_API_KEY = os.getenv("ODOO_API_KEY")
    ODOO_SESSION_MAX_AGE = _env_int("ODOO_SESSION_MAX_AGE", 0)
    WHATSAPP_TEMPLATE_NAME = os.getenv("WHATSAPP_TEMPLATE_NAME", "idf_2026")
    CAMPAIGN_TAG = os.getenv("CAMPAIGN_TAG", "#IDF2026")
    STATS_MAX_BRANCHES = _env_int("STATS_MAX_BRANCHES", 5)

    @staticmethod
    def init_app(app):
        if app.config.get("SQLALCHEMY_DATABASE_URI"):
            return
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'coupon.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")
