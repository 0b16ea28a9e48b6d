"""Custom Flask application class with container reference."""

from typing import TYPE_CHECKING

from flask import Flask

if TYPE_CHECKING:
    from obsidian_metrics.services.container import ServiceContainer


class App(Flask):
    """Flask application with typed access to the dependency injection container."""

    container: "ServiceContainer"
