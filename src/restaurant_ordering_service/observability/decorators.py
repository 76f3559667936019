"""OpenTelemetry tracing decorators."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

F = TypeVar("F", bound=Callable[..., Any])


def _record_failure(span: Span, error: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


def _caller_id(args: tuple[Any, ...], kwargs: dict[str, Any]) -> str | None:
    # service methods take the caller as first argument after self
    caller = kwargs.get("caller")
    if caller is None and len(args) > 1:
        caller = args[1]
    user_id = getattr(caller, "user_id", None)
    return user_id if isinstance(user_id, str) else None


def traced(span_name: str | None = None, service_name: str = "ordering-svc") -> Callable[[F], F]:
    """Decorator to wrap a function in an OpenTelemetry span.

    Failures are recorded on the span and re-raised. When the wrapped method
    receives a caller, its user id is attached as the `enduser.id` attribute.
    Async functions are supported.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Service name for span attributes

    Returns:
        Decorated function with tracing

    Example:
        @traced("place_order", service_name="ordering-svc")
        async def place_order(self, caller: Caller, request: OrderCreate) -> PlacedOrder:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)

        def start(span: Span, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
            span.set_attribute("service.name", service_name)
            if span_name:
                span.set_attribute("function.name", func.__name__)
            user_id = _caller_id(args, kwargs)
            if user_id:
                span.set_attribute("enduser.id", user_id)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                start(span, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                start(span, args, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
