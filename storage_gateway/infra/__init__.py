"""Infrastructure: logging, metrics, tracing and object storage."""
