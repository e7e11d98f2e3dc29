"""Flask application factory for Mr Modpack."""

__version__ = "0.1.0"

from flask import Flask
from flask_cors import CORS

from .dashboard.blueprint import bundle_bp, dashboard_bp
from .services.bundle_service import BundleAssembler
from .services.catalog_index import CatalogIndex
from .services.catalog_service import CatalogService
from .services.modrinth_service import ModrinthClient
from .utils.config import get_config


def create_app(overrides=None, start_scheduler=True):
    """Create and configure Flask application."""
    app = Flask(__name__)

    # Enable CORS for all routes
    CORS(app)

    # Load configuration
    config = get_config()
    config.update(overrides or {})
    app.config.update(config)

    # Shared catalog state and bundle storage
    client = ModrinthClient.from_config(config)
    catalog = CatalogService(client, CatalogIndex())
    assembler = BundleAssembler(
        config["bundle_dir"],
        route=config["bundle_route"],
        retention_seconds=config["bundle_retention_seconds"],
    )
    app.extensions["mrmodpack"] = {"catalog": catalog, "assembler": assembler}
    if start_scheduler:
        assembler.start_scheduler()

    # Register blueprints
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(bundle_bp, url_prefix=f"/{assembler.route}")

    # Register error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {"error": "Not found"}, 404

    @app.errorhandler(500)
    def internal_error(error):
        return {"error": "Internal server error"}, 500

    return app
