"""OpenTelemetry setup and span helpers for transaction dispatch."""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from paydispatch.common.config import settings


tracer = trace.get_tracer("paydispatch")


def setup_tracing(service_name: str) -> None:
    """Register a tracer provider exporting over OTLP HTTP."""

    resource = Resource.create({"service.name": service_name, "service.namespace": "paydispatch"})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)


def instrument_app(app: FastAPI) -> None:
    """Request spans for callback traffic; probes and scrapes are left out."""

    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def annotate_transaction(span, action: str, category: str) -> None:
    span.set_attribute("transaction.action", action)
    span.set_attribute("transaction.category", category)


def annotate_outcome(span, outcome: str, reason: str | None = None) -> None:
    """Record the lifecycle outcome; skipped transitions are not span errors."""

    span.set_attribute("transaction.outcome", outcome)
    if reason is not None:
        span.set_attribute("transaction.skip_reason", reason)
    span.set_status(Status(StatusCode.OK))
