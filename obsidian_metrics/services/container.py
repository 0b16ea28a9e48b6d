"""Dependency injection container for services."""

from dependency_injector import containers, providers

from obsidian_metrics.config import Settings
from obsidian_metrics.metrics.registry import MetricsRegistry
from obsidian_metrics.services.metrics_api import MetricsApi
from obsidian_metrics.services.metrics_service import MetricsService
from obsidian_metrics.services.vault_metrics_service import VaultMetricsService
from obsidian_metrics.utils.lifecycle_coordinator import LifecycleCoordinator


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection.

    The registry is a single instance shared by the transport layer and the
    host event adapters; nothing looks it up globally.
    """

    # Configuration - must be overridden by create_app()
    config = providers.Dependency(instance_of=Settings)

    lifecycle_coordinator = providers.Singleton(
        LifecycleCoordinator,
        graceful_shutdown_timeout=config.provided.graceful_shutdown_timeout,
    )

    metrics_registry = providers.Singleton(
        MetricsRegistry,
        prefix=config.provided.metrics_prefix,
        default_labels=config.provided.metrics_default_labels,
    )

    metrics_api = providers.Singleton(MetricsApi, registry=metrics_registry)

    metrics_service = providers.Singleton(
        MetricsService,
        registry=metrics_registry,
        lifecycle_coordinator=lifecycle_coordinator,
        update_interval=config.provided.metrics_update_interval,
    )

    vault_metrics_service = providers.Singleton(
        VaultMetricsService,
        metrics_api=metrics_api,
        metrics_service=metrics_service,
        vault_path=config.provided.vault_path,
    )
