# backend/backoffice/__init__.py
import logging
import os

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("backoffice").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrations_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")
    migrate.init_app(app, db, directory=migrations_dir, render_as_batch=True)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.materials import materials_bp
    from .routes.orders import orders_bp
    from .routes.fulfillment import fulfillment_bp
    from .routes.invoices import invoices_bp
    from .routes.payments import payments_bp
    from .routes.rejections import rejections_bp
    from .routes.returns import returns_bp
    from .routes.inspections import inspections_bp
    from .routes.supplier_history import supplier_history_bp
    from .routes.recap import recap_bp
    from .routes.analytics import analytics_bp
    from .routes.workflows import workflows_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(materials_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(fulfillment_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(rejections_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(inspections_bp)
    app.register_blueprint(supplier_history_bp)
    app.register_blueprint(recap_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(workflows_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", set()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
