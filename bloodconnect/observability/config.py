"""
OpenTelemetry Configuration

Sets up distributed tracing and logging for the BloodConnect API.
"""

import os
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'bloodconnect-api'

SAMPLING_RATIOS = {
    'production': 0.1,
    'staging': 0.5
}

LOG_LEVELS = {
    'production': logging.WARNING,
    'staging': logging.INFO,
    'development': logging.DEBUG,
    'testing': logging.WARNING
}


def setup_observability(environment: str = None, service_version: str = None) -> bool:
    """
    Initialize OpenTelemetry tracing based on environment configuration.

    Returns:
        True if a tracer provider was installed
    """
    environment = environment or os.getenv('ENVIRONMENT', 'development')
    service_version = service_version or os.getenv('SERVICE_VERSION', '1.0.0')
    otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    setup_structured_logging(environment)

    if not otel_enabled:
        # No provider means the global no-op tracer is used
        return False

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=TraceIdRatioBased(SAMPLING_RATIOS.get(environment, 1.0)),
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = {}
        if os.getenv('OTEL_API_KEY'):
            headers["Authorization"] = f"Bearer {os.getenv('OTEL_API_KEY')}"
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers or None))
        )
    elif environment == 'development':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    return True


def setup_structured_logging(environment: str):
    """Configure root logging for the environment."""
    log_level = LOG_LEVELS.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Reduce driver noise
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)
    elif environment == 'development':
        logging.getLogger('bloodconnect.domain').setLevel(logging.DEBUG)
        logging.getLogger('bloodconnect.services').setLevel(logging.DEBUG)
