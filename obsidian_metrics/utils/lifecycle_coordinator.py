"""Lifecycle coordinator for exporter startup and graceful shutdown."""

import logging
import signal
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from obsidian_metrics.schemas.metric_options import GaugeOptions, HistogramOptions

if TYPE_CHECKING:
    from obsidian_metrics.metrics.handles import MetricHandle
    from obsidian_metrics.metrics.registry import MetricsRegistry

logger = logging.getLogger(__name__)

SHUTDOWN_DURATION_BUCKETS = [0.1, 0.5, 1, 2.5, 5, 10, 30, 60]


class LifecycleEvent(str, Enum):
    STARTUP = "startup"
    PREPARE_SHUTDOWN = "prepare-shutdown"
    SHUTDOWN = "shutdown"
    AFTER_SHUTDOWN = "after-shutdown"


class LifecycleCoordinatorProtocol(ABC):
    """Protocol for lifecycle coordinator implementations."""

    @abstractmethod
    def initialize(self) -> None: ...

    @abstractmethod
    def register_lifecycle_notification(self, callback: Callable[[LifecycleEvent], None]) -> None: ...

    @abstractmethod
    def register_shutdown_waiter(self, name: str, handler: Callable[[float], bool]) -> None: ...

    @abstractmethod
    def is_shutting_down(self) -> bool: ...

    @abstractmethod
    def shutdown(self) -> None: ...

    @abstractmethod
    def fire_startup(self) -> None: ...


class LifecycleCoordinator(LifecycleCoordinatorProtocol):
    """Coordinates startup notification and graceful shutdown of the exporter.

    SIGTERM and SIGINT start the shutdown sequence: listeners receive
    PREPARE_SHUTDOWN, each registered waiter gets what is left of the
    graceful timeout to wind down, then SHUTDOWN and AFTER_SHUTDOWN follow.

    Once ``instrument`` has been called, the coordinator reports its own
    state through the exporter's registry, so the final scrapes of a
    stopping exporter show that it is going away.
    """

    def __init__(self, graceful_shutdown_timeout: int):
        self._graceful_shutdown_timeout = graceful_shutdown_timeout
        self._shutting_down = False
        self._started = False
        self._lock = threading.RLock()
        self._listeners: list[Callable[[LifecycleEvent], None]] = []
        self._waiters: dict[str, Callable[[float], bool]] = {}

        self._shutting_down_gauge: "MetricHandle | None" = None
        self._shutdown_duration: "MetricHandle | None" = None

    def instrument(self, registry: "MetricsRegistry") -> None:
        """Create the shutdown metrics in ``registry``."""
        self._shutting_down_gauge = registry.create_gauge(
            GaugeOptions(
                name="application_shutting_down",
                help="Whether the exporter is shutting down (1=yes, 0=no)",
            )
        )
        self._shutdown_duration = registry.create_histogram(
            HistogramOptions(
                name="graceful_shutdown_duration_seconds",
                help="Time spent waiting for services during graceful shutdown",
                buckets=SHUTDOWN_DURATION_BUCKETS,
            )
        )

    def initialize(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

    def register_lifecycle_notification(self, callback: Callable[[LifecycleEvent], None]) -> None:
        with self._lock:
            self._listeners.append(callback)

    def register_shutdown_waiter(self, name: str, handler: Callable[[float], bool]) -> None:
        with self._lock:
            self._waiters[name] = handler

    def is_shutting_down(self) -> bool:
        with self._lock:
            return self._shutting_down

    def fire_startup(self) -> None:
        with self._lock:
            if self._started:
                return
            self._started = True
        self._notify(LifecycleEvent.STARTUP)

    def _handle_signal(self, signum: int, frame: object) -> None:
        logger.info("Received shutdown signal", extra={"signal": signum})
        self.shutdown()

    def shutdown(self) -> None:
        with self._lock:
            if self._shutting_down:
                logger.warning("Shutdown already in progress, ignoring request")
                return
            self._shutting_down = True
            started_at = time.perf_counter()
            if self._shutting_down_gauge is not None:
                self._shutting_down_gauge.set(1)
            self._notify(LifecycleEvent.PREPARE_SHUTDOWN)

        if not self._wait_for_services(started_at):
            logger.error(
                "Graceful shutdown timed out, forcing shutdown",
                extra={"timeout_seconds": self._graceful_shutdown_timeout},
            )

        if self._shutdown_duration is not None:
            self._shutdown_duration.observe(time.perf_counter() - started_at)

        self._notify(LifecycleEvent.SHUTDOWN)
        self._notify(LifecycleEvent.AFTER_SHUTDOWN)

    def _wait_for_services(self, started_at: float) -> bool:
        """Run the shutdown waiters in registration order.

        Returns:
            True if every waiter reported ready within the timeout
        """
        with self._lock:
            waiters = list(self._waiters.items())

        all_ready = True
        for name, waiter in waiters:
            remaining = self._graceful_shutdown_timeout - (time.perf_counter() - started_at)
            if remaining <= 0:
                logger.error("No time left for shutdown waiter", extra={"waiter": name})
                return False
            try:
                if not waiter(remaining):
                    logger.warning("Service not ready within timeout", extra={"waiter": name})
                    all_ready = False
            except Exception as e:
                logger.error(
                    "Shutdown waiter failed",
                    exc_info=True,
                    extra={"waiter": name, "error": str(e)},
                )
                all_ready = False
        return all_ready

    def _notify(self, event: LifecycleEvent) -> None:
        logger.info("Raising lifecycle event", extra={"event": event.value})

        with self._lock:
            listeners = list(self._listeners)

        for callback in listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    "Lifecycle listener failed",
                    exc_info=True,
                    extra={"event": event.value, "error": str(e)},
                )
