# backend/motocare/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db



def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)

    # Import models so create_all sees the kv table
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()
        if not app.config.get("TESTING"):
            # Persist the defaults once instead of rebuilding them on every load
            from .services.state_service import initialize
            initialize()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.parts import parts_bp
    from .routes.inventory import inventory_bp
    from .routes.sales import sales_bp
    from .routes.work_orders import work_orders_bp
    from .routes.contacts import customers_bp, suppliers_bp
    from .routes.cashflow import cashflow_bp
    from .routes.users import users_bp, departments_bp
    from .routes.settings import settings_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(parts_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(work_orders_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(cashflow_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(departments_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(reports_bp)

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
