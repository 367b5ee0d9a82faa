"""OpenTelemetry tracing helpers.

Only the OpenTelemetry API is used here. Spans are no-ops until an SDK
tracer provider is installed by the deployment (e.g. via
``opentelemetry-instrument``).
"""

from __future__ import annotations

from opentelemetry import trace


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for creating custom spans.

    Args:
        name: Tracer name, typically __name__ of the module.

    Returns:
        Tracer instance for creating spans.

    Example:
        tracer = get_tracer(__name__)

        async def teardown(bucket: str):
            with tracer.start_as_current_span("teardown") as span:
                span.set_attribute("storage.bucket", bucket)
    """
    return trace.get_tracer(name)
