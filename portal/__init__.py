# portal/__init__.py
from __future__ import annotations

from flask import Flask, jsonify

from .settings import Config
from .extensions import broker, db, migrate, login_manager, limiter


def _json_error(message: str, code: int):
    return jsonify({"error": message}), code


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    broker.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # Global template context (Studio identity)
    # ======================
    from .config.studio import studio_context

    @app.context_processor
    def inject_studio():
        return studio_context()

    # ======================
    # Register Blueprints
    # ======================
    from .auth import auth
    from .client import client
    from .admin import admin_bp
    from .functions import functions

    app.register_blueprint(auth)
    app.register_blueprint(client)
    app.register_blueprint(admin_bp)
    app.register_blueprint(functions)

    # ======================
    # JSON error handlers
    # ======================
    @app.errorhandler(400)
    def bad_request(e):
        return _json_error("Bad request", 400)

    @app.errorhandler(403)
    def forbidden(e):
        return _json_error("Forbidden", 403)

    @app.errorhandler(404)
    def not_found(e):
        return _json_error("Not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _json_error("Method not allowed", 405)

    @app.errorhandler(413)
    def too_large(e):
        return _json_error("Upload too large", 413)

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return _json_error("Too many requests. Please try again later.", 429)

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        return _json_error("Internal server error", 500)

    return app
