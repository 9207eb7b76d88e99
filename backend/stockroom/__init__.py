# backend/stockroom/__init__.py
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import StockroomError
from .extensions import db, migrate
from .validation import ValidationError, ConflictError


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.stock import stock_bp
    from .routes.cart import cart_bp
    from .routes.categories import categories_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(dashboard_bp)

    @app.errorhandler(StockroomError)
    def handle_stockroom_error(e: StockroomError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(ConflictError)
    def handle_conflict_error(e: ConflictError):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        # Aborts and routing errors keep their own status and body
        if isinstance(e, HTTPException):
            return e
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
