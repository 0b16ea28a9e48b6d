"""Built-in vault metrics fed by host application events."""

import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath

import psutil

from obsidian_metrics.metrics.values import Timer
from obsidian_metrics.schemas.metric_options import (
    CounterOptions,
    GaugeOptions,
    HistogramOptions,
)
from obsidian_metrics.services.metrics_api import MetricsApi
from obsidian_metrics.services.metrics_service import MetricsService

logger = logging.getLogger(__name__)

NOTE_VIEW_BUCKETS = [1, 5, 10, 30, 60, 300, 1800]
APP_PERFORMANCE_BUCKETS = [0.001, 0.01, 0.1, 0.5, 1, 2, 5]


def file_type(path: str) -> str:
    """Extension of ``path`` without the dot, or ``unknown``."""
    return PurePosixPath(path).suffix.lstrip(".") or "unknown"


class VaultMetricsService:
    """Built-in metrics describing vault activity.

    The host calls the ``record_*``/``set_*`` methods from its event hooks.
    Vault statistics and process memory are sampled by the metrics polling
    loop instead. Metrics are created once at construction; after all metrics
    are cleared they stay gone until the service is constructed again.
    """

    def __init__(
        self,
        metrics_api: MetricsApi,
        metrics_service: MetricsService,
        vault_path: str | None = None,
    ):
        """Initialize vault metrics.

        Args:
            metrics_api: API used to create the built-in metrics
            metrics_service: Service whose polling loop samples vault stats
            vault_path: Vault root directory; stats are skipped when unset
        """
        self._vault_path = Path(vault_path) if vault_path else None
        self._process = psutil.Process()
        self._view_lock = threading.Lock()
        self._current_view_timer: Timer | None = None

        self._initialize_metrics(metrics_api)

        metrics_service.register_for_polling("vault_metrics", self.update_metrics)

    def _initialize_metrics(self, api: MetricsApi) -> None:
        self.file_operations_total = api.create_counter(
            CounterOptions(
                name="file_operations_total",
                help="Total number of file operations in the vault",
                label_names=["operation", "file_type"],
            )
        )

        # Vault statistics
        self.vault_files_total = api.create_gauge(
            GaugeOptions(name="vault_files_total", help="Total number of files in the vault")
        )
        self.vault_notes_total = api.create_gauge(
            GaugeOptions(
                name="vault_notes_total",
                help="Total number of markdown notes in the vault",
            )
        )
        self.vault_size_bytes = api.create_gauge(
            GaugeOptions(
                name="vault_size_bytes",
                help="Total size of all files in the vault (bytes)",
            )
        )

        # Workspace state
        self.active_notes_count = api.create_gauge(
            GaugeOptions(name="active_notes_count", help="Number of currently open notes")
        )
        self.plugins_enabled_total = api.create_gauge(
            GaugeOptions(name="plugins_enabled_total", help="Number of enabled plugins")
        )
        self.process_memory_usage_bytes = api.create_gauge(
            GaugeOptions(
                name="process_memory_usage_bytes",
                help="Resident memory of the exporter process (bytes)",
            )
        )

        # Timings
        self.note_view_duration_seconds = api.create_histogram(
            HistogramOptions(
                name="note_view_duration_seconds",
                help="Time spent viewing individual notes",
                buckets=NOTE_VIEW_BUCKETS,
            )
        )
        self.app_performance_timing_seconds = api.create_histogram(
            HistogramOptions(
                name="app_performance_timing_seconds",
                help="Various app performance timings",
                label_names=["operation"],
                buckets=APP_PERFORMANCE_BUCKETS,
            )
        )

    def record_file_operation(self, operation: str, path: str) -> None:
        """Record a file event (open, create, delete, modify or rename).

        Args:
            operation: Event name
            path: Path of the affected file; for renames, the new path
        """
        try:
            self.file_operations_total.inc(
                1, {"operation": operation, "file_type": file_type(path)}
            )
        except Exception as e:
            logger.error(
                "Error recording file operation metric",
                exc_info=True,
                extra={"operation": operation, "path": path, "error": str(e)},
            )

    def set_active_notes(self, count: int) -> None:
        self.active_notes_count.set(count)

    def set_enabled_plugins(self, count: int) -> None:
        self.plugins_enabled_total.set(count)

    def note_activated(self, is_markdown: bool) -> None:
        """Handle a change of the active view.

        Stops the view timer of the previous note, then starts a new one if
        the newly active view shows a markdown note.
        """
        with self._view_lock:
            previous = self._current_view_timer
            self._current_view_timer = (
                self.note_view_duration_seconds.start_timer() if is_markdown else None
            )
        if previous is not None:
            previous()

    @contextmanager
    def time_operation(self, operation: str) -> Iterator[None]:
        """Observe the duration of the enclosed block, even if it raises."""
        stop = self.app_performance_timing_seconds.start_timer({"operation": operation})
        try:
            yield
        finally:
            stop()

    def update_metrics(self) -> None:
        """Sample vault statistics and process memory."""
        self.update_vault_stats()
        self.process_memory_usage_bytes.set(self._process.memory_info().rss)

    def update_vault_stats(self) -> None:
        """Walk the vault and refresh file, note and size gauges.

        Hidden directories (such as the host's configuration folder) are not
        part of the vault. Files that cannot be read are skipped.
        """
        if self._vault_path is None:
            return
        if not self._vault_path.is_dir():
            logger.warning(
                "Vault path is not a directory",
                extra={"vault_path": str(self._vault_path)},
            )
            return

        files = 0
        notes = 0
        total_size = 0

        for root, dirs, filenames in os.walk(self._vault_path):
            dirs[:] = [d for d in dirs if not d.startswith(".")]
            for filename in filenames:
                try:
                    size = os.stat(os.path.join(root, filename)).st_size
                except OSError:
                    continue
                files += 1
                total_size += size
                if filename.endswith(".md"):
                    notes += 1

        self.vault_files_total.set(files)
        self.vault_notes_total.set(notes)
        self.vault_size_bytes.set(total_size)
