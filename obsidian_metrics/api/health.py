"""Health check endpoint."""

from datetime import UTC, datetime
from typing import Any

from dependency_injector.wiring import Provide, inject
from flask import Blueprint

from obsidian_metrics.config import HEALTH_PATH, Settings
from obsidian_metrics.schemas.health_schema import HealthResponse
from obsidian_metrics.services.container import ServiceContainer
from obsidian_metrics.utils.lifecycle_coordinator import LifecycleCoordinatorProtocol

health_bp = Blueprint("health", __name__, url_prefix=HEALTH_PATH)


@health_bp.route("", methods=["GET"])
@inject
def get_health(
    settings: Settings = Provide[ServiceContainer.config],
    lifecycle_coordinator: LifecycleCoordinatorProtocol = Provide[
        ServiceContainer.lifecycle_coordinator
    ],
) -> Any:
    """Report exporter status and where metrics are served.

    Returns 503 once graceful shutdown has started.
    """
    shutting_down = lifecycle_coordinator.is_shutting_down()
    response = HealthResponse(
        status="shutting down" if shutting_down else "ok",
        timestamp=datetime.now(UTC),
        metrics_endpoint=settings.metrics_path,
    )
    return response.model_dump(mode="json"), 503 if shutting_down else 200
