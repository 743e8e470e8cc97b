# backend/bizledger/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, hub
from .logging_config import configure_logging


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app creates the engine
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    hub.install_session_hooks()

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.admin import admin_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.timekeeping import timekeeping_bp
    from .routes.investments import investments_bp
    from .routes.debts import debts_bp
    from .routes.cash import cash_bp
    from .routes.entries import entries_bp, unplanned_expenses_bp
    from .routes.reports import reports_bp
    from .routes.collections import collections_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(timekeeping_bp)
    app.register_blueprint(investments_bp)
    app.register_blueprint(debts_bp)
    app.register_blueprint(cash_bp)
    app.register_blueprint(entries_bp)
    app.register_blueprint(unplanned_expenses_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(collections_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
