"""Metrics engine exceptions with user-ready messages."""


class ConfigurationError(Exception):
    """Raised when application configuration is invalid."""

    pass


class MetricsException(Exception):
    """Base exception class for metric usage errors."""

    def __init__(self, message: str, error_code: str) -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class UnsupportedOperationException(MetricsException):
    """Exception raised when an operation is foreign to a metric's kind."""

    def __init__(self, kind: str, operation: str) -> None:
        self.kind = kind
        self.operation = operation
        message = f"{kind.capitalize()} does not support {operation}"
        super().__init__(message, error_code="UNSUPPORTED_OPERATION")


class InvalidOperationException(MetricsException):
    """Exception raised when a supported operation receives an invalid value."""

    def __init__(self, operation: str, cause: str) -> None:
        self.operation = operation
        self.cause = cause
        message = f"Cannot {operation} because {cause}"
        super().__init__(message, error_code="INVALID_OPERATION")


class LabelMismatchException(MetricsException):
    """Exception raised when a label assignment does not match a family's label names."""

    def __init__(
        self, metric_name: str, expected: tuple[str, ...], actual: tuple[str, ...]
    ) -> None:
        self.metric_name = metric_name
        self.expected = expected
        self.actual = actual
        message = (
            f"Metric {metric_name} expects labels [{', '.join(expected)}] "
            f"but got [{', '.join(actual)}]"
        )
        super().__init__(message, error_code="LABEL_MISMATCH")


class LabelSchemaConflictException(MetricsException):
    """Exception raised when re-creating a metric with different label names."""

    def __init__(
        self, metric_name: str, existing: tuple[str, ...], requested: tuple[str, ...]
    ) -> None:
        self.metric_name = metric_name
        self.existing = existing
        self.requested = requested
        message = (
            f"Metric {metric_name} already exists with labels [{', '.join(existing)}], "
            f"cannot re-create it with labels [{', '.join(requested)}]"
        )
        super().__init__(message, error_code="LABEL_SCHEMA_CONFLICT")


class MetricKindConflictException(MetricsException):
    """Exception raised when re-creating a metric as a different kind."""

    def __init__(self, metric_name: str, existing: str, requested: str) -> None:
        self.metric_name = metric_name
        message = f"Metric {metric_name} already exists as a {existing}, not a {requested}"
        super().__init__(message, error_code="METRIC_KIND_CONFLICT")


class MetricNotFoundException(MetricsException):
    """Exception raised when a helper needs a metric that does not exist."""

    def __init__(self, metric_name: str) -> None:
        self.metric_name = metric_name
        message = f"Metric {metric_name} not found"
        super().__init__(message, error_code="METRIC_NOT_FOUND")
