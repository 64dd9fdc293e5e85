"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry
import structlog

from .config import settings

SERVICE_NAME = "playzone-booking-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings created',
    ['package_type'],
    registry=REGISTRY
)

BOOKING_REJECTIONS = Counter(
    'booking_rejections_total',
    'Booking requests rejected at admission',
    ['reason'],
    registry=REGISTRY
)

BOOKING_TRANSITIONS = Counter(
    'booking_status_transitions_total',
    'Booking status transitions applied',
    ['from_status', 'to_status'],
    registry=REGISTRY
)

VOUCHER_REDEMPTIONS = Counter(
    'voucher_redemptions_total',
    'Successful voucher redemptions',
    ['code'],
    registry=REGISTRY
)

VOUCHER_REJECTIONS = Counter(
    'voucher_rejections_total',
    'Voucher redemptions or quotes rejected',
    ['reason'],
    registry=REGISTRY
)

OTP_SENT = Counter(
    'otp_codes_sent_total',
    'One-time codes issued',
    ['delivered'],
    registry=REGISTRY
)

NOTIFICATIONS = Counter(
    'notifications_total',
    'Outbound notifications by kind and outcome',
    ['kind', 'outcome'],
    registry=REGISTRY
)

SLOT_UTILIZATION = Gauge(
    'slot_capacity_utilization',
    'Occupied share of a slot after the last admission, in percent',
    ['time_slot_id'],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    logging.basicConfig(level=getattr(logging, settings.log_level), format="%(message)s")

    # request_id arrives through structlog.contextvars, bound by the middleware
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())
    trace.set_tracer_provider(provider)

    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    return trace.get_tracer(app_name)


def setup_metrics(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(app_name)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def instrument_sqlalchemy(engine):
    """Instrument the async engine's sync core with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_booking_created(package_type: str):
        BOOKINGS_CREATED.labels(package_type=package_type).inc()

    @staticmethod
    def record_booking_rejected(reason: str):
        """Record an admission rejection (capacity, holiday, voucher...)."""
        BOOKING_REJECTIONS.labels(reason=reason).inc()

    @staticmethod
    def record_transition(from_status: str, to_status: str):
        BOOKING_TRANSITIONS.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_voucher_redeemed(code: str):
        VOUCHER_REDEMPTIONS.labels(code=code).inc()

    @staticmethod
    def record_voucher_rejected(reason: str):
        VOUCHER_REJECTIONS.labels(reason=reason).inc()

    @staticmethod
    def record_otp_sent(delivered: bool):
        OTP_SENT.labels(delivered=str(delivered).lower()).inc()

    @staticmethod
    def record_notification(kind: str, delivered: bool):
        NOTIFICATIONS.labels(kind=kind, outcome="sent" if delivered else "failed").inc()

    @staticmethod
    def set_slot_utilization(time_slot_id: int, booked: int, capacity: int):
        """Set occupied percentage for a slot."""
        utilization = (booked / capacity * 100) if capacity else 0.0
        SLOT_UTILIZATION.labels(time_slot_id=str(time_slot_id)).set(utilization)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
