"""HTTP transport for the metrics registry."""
