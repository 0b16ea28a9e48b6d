"""Metrics service: render entry point and periodic metric refresh."""

import logging
import threading
from collections.abc import Callable

from obsidian_metrics.metrics.registry import MetricsRegistry
from obsidian_metrics.utils.lifecycle_coordinator import (
    LifecycleCoordinatorProtocol,
    LifecycleEvent,
)

logger = logging.getLogger(__name__)


class MetricsService:
    """Serves the rendered registry and refreshes polled metrics.

    Services whose gauges must be sampled rather than updated on events
    register a polling callback. A daemon thread calls every callback once
    per interval, starting as soon as the updater starts, and stops when
    the application shuts down.

    Example usage:
        metrics_service.register_for_polling("vault", vault_service.update_vault_stats)
        metrics_service.start_background_updater(30)
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        lifecycle_coordinator: LifecycleCoordinatorProtocol,
        update_interval: int = 30,
    ):
        """Initialize metrics service.

        Args:
            registry: Registry rendered on every scrape
            lifecycle_coordinator: Coordinator for startup and graceful shutdown
            update_interval: Default seconds between polling cycles
        """
        self.registry = registry
        self._update_interval = update_interval
        self._polling_callbacks: dict[str, Callable[[], None]] = {}
        self._lock = threading.Lock()

        self._stop_event = threading.Event()
        self._updater_thread: threading.Thread | None = None

        lifecycle_coordinator.register_lifecycle_notification(self._on_lifecycle_event)
        lifecycle_coordinator.register_shutdown_waiter(
            "MetricsService", self._wait_for_updater
        )

    def get_metrics_text(self) -> str:
        """Render all metrics in the Prometheus text format."""
        return self.registry.render()

    def register_for_polling(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback refreshing sampled metrics.

        Args:
            name: Unique name; registering the same name again replaces it
            callback: Called once per polling cycle
        """
        with self._lock:
            self._polling_callbacks[name] = callback
        logger.debug("Registered metrics polling callback", extra={"callback": name})

    def unregister_polling(self, name: str) -> None:
        with self._lock:
            if self._polling_callbacks.pop(name, None) is not None:
                logger.debug(
                    "Unregistered metrics polling callback", extra={"callback": name}
                )

    def run_polling_callbacks(self) -> None:
        """Run every registered callback once, isolating failures."""
        with self._lock:
            callbacks = list(self._polling_callbacks.items())

        for name, callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(
                    "Metrics polling callback failed",
                    exc_info=True,
                    extra={"callback": name, "error": str(e)},
                )

    def start_background_updater(self, interval_seconds: int | None = None) -> None:
        """Start the background polling thread if it is not running."""
        if self._updater_thread is not None and self._updater_thread.is_alive():
            return

        interval = interval_seconds or self._update_interval
        self._stop_event.clear()
        self._updater_thread = threading.Thread(
            target=self._background_update_loop,
            args=(interval,),
            daemon=True,
            name="MetricsUpdater",
        )
        self._updater_thread.start()
        logger.info(
            "Started metrics background updater",
            extra={"interval_seconds": interval},
        )

    def _background_update_loop(self, interval_seconds: int) -> None:
        while not self._stop_event.is_set():
            self.run_polling_callbacks()
            self._stop_event.wait(interval_seconds)

    def _wait_for_updater(self, timeout: float) -> bool:
        self._stop_event.set()
        if self._updater_thread is None:
            return True
        self._updater_thread.join(timeout=min(timeout, 5))
        return not self._updater_thread.is_alive()

    def _on_lifecycle_event(self, event: LifecycleEvent) -> None:
        match event:
            case LifecycleEvent.STARTUP:
                self.start_background_updater()
            case LifecycleEvent.SHUTDOWN:
                self.shutdown()

    def shutdown(self) -> None:
        """Stop the background updater."""
        self._stop_event.set()
        if self._updater_thread is not None:
            self._updater_thread.join(timeout=5)
            self._updater_thread = None
            logger.info("Stopped metrics background updater")
