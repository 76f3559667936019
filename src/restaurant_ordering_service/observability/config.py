"""Logging and OpenTelemetry setup."""

import logging
import os
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.botocore import BotocoreInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger

logger = logging.getLogger(__name__)


def get_service_resource() -> Resource:
    """Create the OpenTelemetry resource identifying this service.

    Returns:
        Resource with service name and environment attributes
    """
    return Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", "ordering-svc"),
            "deployment.environment": os.getenv("ENVIRONMENT", "development"),
        }
    )


def setup_tracing(resource: Resource) -> None:
    """Configure tracing with an OTLP/HTTP exporter.

    Args:
        resource: Service resource for trace identification
    """
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{otlp_endpoint}/v1/traces"))
    )
    trace.set_tracer_provider(provider)

    logger.info(f"OpenTelemetry tracing configured with endpoint: {otlp_endpoint}")


def setup_metrics(resource: Resource) -> None:
    """Configure metrics with a periodic OTLP/HTTP exporter.

    Args:
        resource: Service resource for metric identification
    """
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")
    interval = int(os.getenv("OTEL_METRIC_EXPORT_INTERVAL", "60000"))
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{otlp_endpoint}/v1/metrics"),
        export_interval_millis=interval,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info(f"OpenTelemetry metrics configured with endpoint: {otlp_endpoint}")


def setup_auto_instrumentation() -> None:
    """Instrument outgoing DynamoDB (botocore) and httpx calls."""
    BotocoreInstrumentor().instrument()
    HTTPXClientInstrumentor().instrument()

    logger.info("Auto-instrumentation enabled for botocore and httpx")


def setup_observability(app: Any = None, enable_exporters: bool = True) -> None:
    """Initialize tracing, metrics and auto-instrumentation.

    Args:
        app: Optional FastAPI application to instrument
        enable_exporters: Whether to export over OTLP (always off when ENVIRONMENT=test)
    """
    if os.getenv("ENVIRONMENT", "development") == "test":
        enable_exporters = False

    resource = get_service_resource()

    if enable_exporters:
        setup_tracing(resource)
        setup_metrics(resource)
    else:
        # Providers without exporters keep spans and instruments working locally
        trace.set_tracer_provider(TracerProvider(resource=resource))
        metrics.set_meter_provider(MeterProvider(resource=resource))

    setup_auto_instrumentation()

    if app is not None:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI application instrumented")

    logger.info("OpenTelemetry observability fully configured")


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            the LOG_LEVEL environment variable takes precedence
    """
    level_str = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, level_str, logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        timestamp=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # boto is chatty at DEBUG
    for noisy in ("botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))

    logger.info(f"Structured JSON logging configured at {level_str} level")
