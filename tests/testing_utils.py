"""Shared testing utilities: lifecycle coordinator stubs and a manual clock."""

from collections.abc import Callable

from obsidian_metrics.utils.lifecycle_coordinator import (
    LifecycleCoordinatorProtocol,
    LifecycleEvent,
)


class StubLifecycleCoordinator(LifecycleCoordinatorProtocol):
    """Basic lifecycle coordinator stub for testing.

    This stub only stores registrations and maintains state. Use
    ``simulate_*`` to drive registered callbacks explicitly.
    """

    def __init__(self):
        self._shutting_down = False
        self._notifications: list[Callable[[LifecycleEvent], None]] = []
        self._waiters: dict[str, Callable[[float], bool]] = {}

    def initialize(self) -> None:
        pass

    def register_lifecycle_notification(self, callback: Callable[[LifecycleEvent], None]) -> None:
        self._notifications.append(callback)

    def register_shutdown_waiter(self, name: str, handler: Callable[[float], bool]) -> None:
        self._waiters[name] = handler

    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def shutdown(self) -> None:
        pass

    def fire_startup(self) -> None:
        pass

    def simulate_event(self, event: LifecycleEvent) -> None:
        for callback in self._notifications:
            callback(event)

    def simulate_shutdown(self) -> None:
        self._shutting_down = True
        self.simulate_event(LifecycleEvent.PREPARE_SHUTDOWN)
        for waiter in self._waiters.values():
            waiter(5.0)
        self.simulate_event(LifecycleEvent.SHUTDOWN)
        self.simulate_event(LifecycleEvent.AFTER_SHUTDOWN)


class ManualClock:
    """Monotonic clock that only moves when told to.

    With a non-zero ``step`` every read also moves the clock forward, so two
    consecutive reads never see the same time.
    """

    def __init__(self, start: float = 1000.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        now = self.now
        self.now += self.step
        return now

    def advance(self, seconds: float) -> None:
        self.now += seconds
