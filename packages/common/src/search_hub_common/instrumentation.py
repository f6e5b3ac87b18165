"""OpenTelemetry instrumentation helpers.

Provides:
- Tracer access for spans
- Function decorator for automatic span creation

Until init_telemetry() is called the global no-op tracer provider is used,
so decorated functions cost almost nothing in tests and libraries.
"""

import inspect
from functools import wraps
from typing import Any, Callable, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)


_tracer_provider: Optional[TracerProvider] = None


def init_telemetry(
    service_name: str = "search-hub",
    exporter: Optional[SpanExporter] = None,
) -> None:
    """Install the SDK tracer provider.

    Call this once at application startup.

    Args:
        service_name: Name of the service for traces (default: "search-hub")
        exporter: Span exporter (default: console exporter for development)

    Example:
        >>> from search_hub_common import init_telemetry
        >>> init_telemetry(service_name="search-hub-api")
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return

    _tracer_provider = TracerProvider(
        resource=Resource.create({"service.name": service_name})
    )
    _tracer_provider.add_span_processor(
        BatchSpanProcessor(exporter or ConsoleSpanExporter())
    )
    trace.set_tracer_provider(_tracer_provider)


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for creating spans.

    Args:
        name: Tracer name (typically module name like "search_hub_search.fusion")

    Returns:
        Tracer instance (no-op until init_telemetry() runs)
    """
    return trace.get_tracer(name)


def instrument_function(span_name: Optional[str] = None) -> Callable:
    """Decorator to automatically create a span for a function.

    Args:
        span_name: Name for the span (default: function name)

    Returns:
        Decorator function

    Example:
        >>> @instrument_function("hybrid_search")
        ... async def hybrid_search(self, query: SearchQuery) -> SearchResponse:
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        actual_span_name = span_name or func.__name__

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(actual_span_name):
                return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(actual_span_name):
                return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
