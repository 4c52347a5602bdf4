"""OpenTelemetry tracing configuration."""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from diagnosis.config import settings


def service_resource() -> Resource:
    return Resource.create(
        {
            "service.name": settings.service_name,
            "service.version": settings.service_version,
        }
    )


def setup_tracing(otlp_endpoint: str | None = None) -> TracerProvider:
    provider = TracerProvider(resource=service_resource())

    otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint or settings.otlp_endpoint, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(provider)
    return provider
