"""
Observability instrumentation for the JWT Inspector.

This module configures observability for the FastAPI application:

1. **Structured Logging**
   - JSON logs via python-json-logger, including all ``extra={...}`` fields
   - Trace context correlation (trace_id, span_id)
   - Test mode support for clean pytest output

2. **OpenTelemetry Distributed Tracing**
   - Automatic request tracing with span context
   - Export via OTLP gRPC only when an endpoint is configured

3. **Prometheus Metrics**
   - HTTP request counters, duration histograms, active request gauge
   - Token decode failure and verification outcome counters
   - Exposed at /metrics endpoint for Prometheus scraping

Environment Variables:
    OTEL_SERVICE_NAME: Service name for traces and logs (default: "jwt-inspector")
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint; tracing export is disabled when unset
    TESTING: Set to "true" to use plain-text logs

Tokens and key material are never logged: log calls carry algorithm names,
key IDs and error codes only.
"""

import logging
import os
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from pythonjsonlogger import jsonlogger

# =============================================================================
# Configuration
# =============================================================================

SERVICE_NAME_VAL = os.getenv("OTEL_SERVICE_NAME", "jwt-inspector")

# Empty = spans are created but not exported
OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")

# Health checks are frequent and add noise without value
EXCLUDED_TRACE_ENDPOINTS = frozenset({
    "/api/v1/health",
    "/api/v1/ready",
    "/metrics",
})


# =============================================================================
# Logging Configuration
# =============================================================================

# Standard LogRecord attributes plus our trace fields; never copied as extras
RESERVED_LOG_ATTRS = frozenset({
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module", "msecs",
    "message", "msg", "name", "pathname", "process", "processName",
    "relativeCreated", "stack_info", "thread", "threadName", "taskName",
    "trace_id", "span_id", "service",
})


class StructuredJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that includes OpenTelemetry trace context and extra fields.

    Example output:
        {"timestamp": "2025-01-15T10:30:00Z", "level": "INFO",
         "logger": "jwt_inspector.services.signature_verifier",
         "message": "Signature verified", "service": "jwt-inspector",
         "algorithm": "RS256", "kid": "key-1", "candidates": 1}
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs, timestamp=True)
        self.service_name = SERVICE_NAME_VAL

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """Add level, logger, service, trace context and extra fields."""
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service_name

        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            log_record["trace_id"] = format(ctx.trace_id, '032x')
            log_record["span_id"] = format(ctx.span_id, '016x')

        for key, value in record.__dict__.items():
            if key not in RESERVED_LOG_ATTRS and not key.startswith('_'):
                if key not in log_record:
                    log_record[key] = value


def _configure_logging() -> None:
    """
    Configure JSON logging, or plain text when TESTING=true.
    """
    is_testing = os.getenv("TESTING", "false").lower() == "true"

    if is_testing:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True
        )
    else:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        handler.setFormatter(StructuredJsonFormatter())

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.INFO)
        root_logger.handlers.clear()
        root_logger.addHandler(handler)


_configure_logging()


# =============================================================================
# OpenTelemetry Tracing Setup
# =============================================================================

def _create_trace_provider() -> TracerProvider:
    """
    Create the TracerProvider, attaching an OTLP exporter if configured.

    BatchSpanProcessor exports asynchronously; if the collector is
    unavailable spans are dropped without affecting requests.
    """
    resource = Resource(attributes={
        SERVICE_NAME: SERVICE_NAME_VAL
    })
    provider = TracerProvider(resource=resource)

    if OTLP_ENDPOINT:
        # Imported lazily: pulls in grpc
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(BatchSpanProcessor(
            OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True)
        ))

    return provider


trace.set_tracer_provider(_create_trace_provider())

tracer = trace.get_tracer(__name__)


# =============================================================================
# Prometheus Metrics Definitions
# =============================================================================

http_requests_total = Counter(
    name="http_requests_total",
    documentation="Total number of HTTP requests processed",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    name="http_request_duration_seconds",
    documentation="HTTP request duration in seconds",
    labelnames=["method", "endpoint"]
)

active_requests = Gauge(
    name="active_requests",
    documentation="Number of HTTP requests currently being processed"
)

# result: "verified" or a VerificationError value
jwt_verifications_total = Counter(
    name="jwt_verifications_total",
    documentation="Signature verification attempts by outcome",
    labelnames=["result"]
)

# code: malformed_token, invalid_encoding, invalid_json
jwt_decode_failures_total = Counter(
    name="jwt_decode_failures_total",
    documentation="Token decode failures by error code",
    labelnames=["code"]
)


# =============================================================================
# Setup Function
# =============================================================================

def setup_observability(app: FastAPI) -> FastAPI:
    """
    Setup observability instrumentation for a FastAPI application.

    1. Instruments FastAPI with OpenTelemetry for automatic request tracing
    2. Adds HTTP middleware for Prometheus metrics collection
    3. Registers the /metrics endpoint for Prometheus scraping

    Args:
        app: FastAPI application instance to instrument

    Returns:
        The instrumented FastAPI application (same instance, for chaining)
    """
    logger = logging.getLogger(__name__)

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=",".join(EXCLUDED_TRACE_ENDPOINTS)
    )

    @app.middleware("http")
    async def metrics_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Record active requests, duration and status for every request."""
        active_requests.inc()

        method = request.method
        path = request.url.path

        try:
            with http_request_duration_seconds.labels(
                method=method,
                endpoint=path
            ).time():
                response = await call_next(request)

            http_requests_total.labels(
                method=method,
                endpoint=path,
                status=response.status_code
            ).inc()

            return response
        finally:
            active_requests.dec()

    @app.get(
        "/metrics",
        include_in_schema=False,
        tags=["monitoring"]
    )
    async def get_metrics() -> Response:
        """Prometheus metrics in text exposition format."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    logger.info(
        f"Observability configured for service '{SERVICE_NAME_VAL}' "
        f"(OTLP endpoint: {OTLP_ENDPOINT or 'disabled'})"
    )

    return app
