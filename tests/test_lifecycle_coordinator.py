"""Tests for the lifecycle coordinator."""

import signal
import threading
import time
from unittest.mock import MagicMock

from obsidian_metrics.metrics.registry import MetricsRegistry
from obsidian_metrics.services.metrics_service import MetricsService
from obsidian_metrics.utils.lifecycle_coordinator import LifecycleCoordinator, LifecycleEvent


class TestLifecycleCoordinator:
    """Startup and shutdown sequencing."""

    def test_signal_runs_shutdown_sequence(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        callback = MagicMock()
        coordinator.register_lifecycle_notification(callback)

        coordinator._handle_signal(signal.SIGTERM, None)

        assert [c.args[0] for c in callback.call_args_list] == [
            LifecycleEvent.PREPARE_SHUTDOWN,
            LifecycleEvent.SHUTDOWN,
            LifecycleEvent.AFTER_SHUTDOWN,
        ]
        assert coordinator.is_shutting_down()

    def test_second_shutdown_is_ignored(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        callback = MagicMock()
        coordinator.register_lifecycle_notification(callback)

        coordinator.shutdown()
        coordinator.shutdown()

        assert callback.call_count == 3

    def test_waiters_run_after_prepare_with_shrinking_timeout(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        sequence: list[str] = []
        timeouts: list[float] = []

        coordinator.register_lifecycle_notification(lambda e: sequence.append(e.value))

        def slow_waiter(timeout: float) -> bool:
            timeouts.append(timeout)
            sequence.append("slow")
            time.sleep(0.2)
            return True

        def fast_waiter(timeout: float) -> bool:
            timeouts.append(timeout)
            sequence.append("fast")
            return True

        coordinator.register_shutdown_waiter("Slow", slow_waiter)
        coordinator.register_shutdown_waiter("Fast", fast_waiter)

        coordinator.shutdown()

        assert sequence == ["prepare-shutdown", "slow", "fast", "shutdown", "after-shutdown"]
        assert timeouts[1] < timeouts[0] <= 10

    def test_failing_waiter_and_callback_do_not_block_shutdown(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        events: list[LifecycleEvent] = []

        def bad_callback(event: LifecycleEvent) -> None:
            raise RuntimeError("listener failed")

        def bad_waiter(timeout: float) -> bool:
            raise RuntimeError("waiter failed")

        good_waiter = MagicMock(return_value=True)
        coordinator.register_lifecycle_notification(bad_callback)
        coordinator.register_lifecycle_notification(events.append)
        coordinator.register_shutdown_waiter("Bad", bad_waiter)
        coordinator.register_shutdown_waiter("Good", good_waiter)

        coordinator.shutdown()

        good_waiter.assert_called_once()
        assert events[-1] == LifecycleEvent.AFTER_SHUTDOWN

    def test_state_visible_during_notifications(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        states: list[bool] = []
        coordinator.register_lifecycle_notification(
            lambda e: states.append(coordinator.is_shutting_down())
        )

        thread = threading.Thread(target=coordinator.shutdown)
        thread.start()
        thread.join(timeout=5)

        assert states == [True, True, True]

    def test_fire_startup_once(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        callback = MagicMock()
        coordinator.register_lifecycle_notification(callback)

        coordinator.fire_startup()
        coordinator.fire_startup()

        callback.assert_called_once_with(LifecycleEvent.STARTUP)


class TestShutdownMetrics:
    """Shutdown state reported through the registry."""

    def test_shutdown_is_recorded(self):
        registry = MetricsRegistry(prefix="obsidian_")
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        coordinator.instrument(registry)
        scraped_during_prepare: list[str] = []

        def on_event(event: LifecycleEvent) -> None:
            if event == LifecycleEvent.PREPARE_SHUTDOWN:
                scraped_during_prepare.append(registry.render())

        coordinator.register_lifecycle_notification(on_event)

        assert "obsidian_application_shutting_down 0\n" in registry.render()

        coordinator.shutdown()

        assert "obsidian_application_shutting_down 1\n" in scraped_during_prepare[0]
        text = registry.render()
        assert "obsidian_graceful_shutdown_duration_seconds_count 1\n" in text
        assert 'obsidian_graceful_shutdown_duration_seconds_bucket{le="60"} 1\n' in text

    def test_uninstrumented_coordinator_creates_no_metrics(self):
        registry = MetricsRegistry()
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)

        coordinator.shutdown()

        assert registry.render() == ""


class TestMetricsServiceIntegration:
    """The real coordinator driving the metrics updater."""

    def test_startup_and_shutdown_drive_updater(self):
        coordinator = LifecycleCoordinator(graceful_shutdown_timeout=10)
        service = MetricsService(MetricsRegistry(), coordinator, update_interval=60)
        polled = threading.Event()
        service.register_for_polling("sampler", polled.set)

        coordinator.fire_startup()
        assert polled.wait(timeout=5)
        thread = service._updater_thread

        coordinator.shutdown()

        assert thread is not None
        assert not thread.is_alive()
