# backend/tradedesk/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _register_blueprints(app: Flask) -> None:
    from .routes.auth import auth_bp
    from .routes.catalog import catalog_bp
    from .routes.customers import customers_bp
    from .routes.orders import orders_bp
    from .routes.stock import stock_bp
    from .routes.system import system_bp

    for bp in (system_bp, auth_bp, catalog_bp, customers_bp, stock_bp, orders_bp):
        app.register_blueprint(bp)


def _install_cors(app: Flask) -> None:
    allowed = set(app.config.get("CORS_ORIGINS") or ())

    @app.after_request
    def cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
            response.headers["Vary"] = "Origin"
        return response


def create_app(config_overrides: dict | None = None) -> Flask:
    """Application factory. Overrides win over Config and are applied before extensions bind."""
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    app.config.update(config_overrides or {})

    db.init_app(app)
    migrate.init_app(app, db)

    # Alembic autogenerate needs every table on db.metadata
    from . import models  # noqa: F401

    _register_blueprints(app)
    _install_cors(app)

    from .cli import register_commands
    register_commands(app)

    app.logger.info("tradedesk started (stock mode %s)", app.config["STOCK_AVAILABILITY_MODE"])
    return app
