"""Metrics endpoint for Prometheus scraping."""

from typing import Any

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, Response

from obsidian_metrics.metrics.exposition import CONTENT_TYPE_LATEST
from obsidian_metrics.services.container import ServiceContainer
from obsidian_metrics.services.metrics_service import MetricsService

# Mounted at the configured METRICS_PATH by create_app()
metrics_bp = Blueprint("metrics", __name__)


@metrics_bp.route("", methods=["GET"])
@inject
def get_metrics(
    metrics_service: MetricsService = Provide[ServiceContainer.metrics_service],
) -> Any:
    """Return metrics in Prometheus text format.

    Returns:
        Response with metrics data in Prometheus exposition format
    """
    metrics_text = metrics_service.get_metrics_text()

    return Response(metrics_text, content_type=CONTENT_TYPE_LATEST)
