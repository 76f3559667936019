"""Logging, tracing and metrics for the ordering service."""

from restaurant_ordering_service.observability.config import configure_logging, setup_observability
from restaurant_ordering_service.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
