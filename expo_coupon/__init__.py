import logging
import os
from datetime import datetime, timezone

from flask import Flask, abort, jsonify, send_from_directory
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import CouponError
from .extensions import db, jwt, cors, migrate
from .utils.api import api_error


def create_app(overrides=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    Config.init_app(app)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config["FRONTEND_URL"]}})
    migrate.init_app(app, db)
    _register_jwt_handlers()

    from .services import init_services
    init_services(app)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .staff import bp as staff_bp; app.register_blueprint(staff_bp)
    from .stats import bp as stats_bp; app.register_blueprint(stats_bp)
    from .branch import bp as branch_bp; app.register_blueprint(branch_bp)
    from .contacts import bp as contacts_bp; app.register_blueprint(contacts_bp)

    from .cli import register_cli
    register_cli(app)

    _register_error_handlers(app)

    @app.get("/api/health")
    def health():
        return jsonify(status="ok", timestamp=datetime.now(timezone.utc).isoformat())

    _serve_frontend(app)

    with app.app_context():
        from .services.accounts import ensure_default_admin
        db.create_all()
        ensure_default_admin()

    return app


def _register_jwt_handlers():
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify(api_error("Access token required")), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify(api_error("Invalid or expired token")), 403

    @jwt.expired_token_loader
    def expired_token(header, payload):
        return jsonify(api_error("Invalid or expired token")), 403


def _register_error_handlers(app):
    @app.errorhandler(CouponError)
    def coupon_error(e):
        return jsonify(api_error(e.message)), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify(api_error(e.description)), e.code

    @app.errorhandler(Exception)
    def unhandled(e):
        app.logger.exception("Unhandled error")
        return jsonify(api_error("Internal server error")), 500


def _serve_frontend(app):
    """Serve a built single-page frontend from FRONTEND_DIST, if present."""
    dist = app.config.get("FRONTEND_DIST")
    if not dist or not os.path.isdir(dist):
        return

    @app.get("/")
    @app.get("/<path:path>")
    def frontend(path="index.html"):
        if path.startswith("api/"):
            abort(404)
        if os.path.isfile(os.path.join(dist, path)):
            return send_from_directory(dist, path)
        return send_from_directory(dist, "index.html")
