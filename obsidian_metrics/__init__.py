"""Flask application factory."""

from flask_cors import CORS

from obsidian_metrics.app import App
from obsidian_metrics.config import Settings


def create_app(settings: "Settings | None" = None) -> App:
    """Create and configure the metrics exporter application.

    The application serves the registry at the configured metrics path and a
    health check at /health. Built-in vault and shutdown metrics are
    registered here when enabled; the background updater starts on the
    lifecycle STARTUP event.
    """
    app = App(__name__)

    # Load configuration
    if settings is None:
        settings = Settings.load()

    # Validate configuration before proceeding
    settings.validate_config()

    app.config.update(DEBUG=settings.debug, TESTING=settings.is_testing)

    # Initialize service container
    from obsidian_metrics.services.container import ServiceContainer

    container = ServiceContainer()
    container.config.override(settings)

    # Wire container to all API modules via package scanning
    container.wire(packages=["obsidian_metrics.api"])

    app.container = container

    # Scrapers and dashboards may live on any origin
    CORS(app, origins=settings.cors_origins, methods=["GET", "OPTIONS"])

    from obsidian_metrics.utils.flask_error_handlers import register_error_handlers

    register_error_handlers(app, settings.metrics_path)

    from obsidian_metrics.api.health import health_bp
    from obsidian_metrics.api.metrics import metrics_bp

    app.register_blueprint(metrics_bp, url_prefix=settings.metrics_path)
    app.register_blueprint(health_bp)

    if settings.enable_builtin_metrics:
        container.vault_metrics_service()
        container.lifecycle_coordinator().instrument(container.metrics_registry())
        app.logger.info("Built-in metrics registered")

    return app
