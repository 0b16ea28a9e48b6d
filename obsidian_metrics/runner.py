"""Exporter runner with graceful shutdown support."""

import logging
import os
import threading

from paste.translogger import TransLogger  # type: ignore[import-untyped]
from waitress import serve

from obsidian_metrics import create_app
from obsidian_metrics.config import Settings
from obsidian_metrics.utils.lifecycle_coordinator import LifecycleEvent

logger = logging.getLogger(__name__)


def run() -> None:
    """Run the metrics exporter until SIGTERM/SIGINT.

    Uses the Flask development server in development and testing, and
    Waitress otherwise. If the port is taken the server stays down and the
    process shuts down cleanly instead of crashing.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = Settings.load()
    if not settings.metrics_server_enabled:
        logger.info("Metrics server disabled in settings, not starting")
        return

    app = create_app(settings)
    lifecycle_coordinator = app.container.lifecycle_coordinator()

    debug_mode = settings.flask_env in ("development", "testing")

    if debug_mode:
        app.logger.info("Running in debug mode")

        # Only initialize signal handling in the actual Flask worker process
        if os.environ.get("WERKZEUG_RUN_MAIN") == "true":
            lifecycle_coordinator.initialize()
            lifecycle_coordinator.fire_startup()

        def signal_shutdown(lifecycle_event: LifecycleEvent) -> None:
            if lifecycle_event == LifecycleEvent.AFTER_SHUTDOWN:
                # sys.exit doesn't work with the reloader
                os._exit(0)

        lifecycle_coordinator.register_lifecycle_notification(signal_shutdown)
        app.run(host=settings.host, port=settings.port, debug=True)
    else:
        lifecycle_coordinator.initialize()
        lifecycle_coordinator.fire_startup()

        def runner() -> None:
            wsgi = TransLogger(app, setup_console_handler=False)
            logger.info(
                f"Serving metrics on http://{settings.host}:{settings.port}"
                f"{settings.metrics_path} with {settings.waitress_threads} threads"
            )
            try:
                serve(
                    wsgi,
                    host=settings.host,
                    port=settings.port,
                    threads=settings.waitress_threads,
                )
            except OSError as e:
                logger.error(
                    f"Metrics server disabled - port {settings.port} not available: {e}"
                )
                lifecycle_coordinator.shutdown()

        event = threading.Event()

        def signal_shutdown_prod(lifecycle_event: LifecycleEvent) -> None:
            if lifecycle_event == LifecycleEvent.AFTER_SHUTDOWN:
                event.set()

        lifecycle_coordinator.register_lifecycle_notification(signal_shutdown_prod)

        # Run server in daemon thread so the lifecycle coordinator controls exit
        thread = threading.Thread(target=runner, daemon=True)
        thread.start()

        event.wait()
