"""
Observability Middleware

Flask middleware for adding OpenTelemetry instrumentation and structured logging
to all HTTP requests.
"""

import time
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor


def add_observability_middleware(app: Flask):
    """Add OpenTelemetry instrumentation and request logging to Flask app."""

    # Auto-instrument Flask
    FlaskInstrumentor().instrument_app(app)

    logger = logging.getLogger(__name__)

    @app.before_request
    def before_request():
        """Set up request context and start timing."""
        g.start_time = time.time()
        g.trace_id = None

        # Get current span for trace correlation
        span = trace.get_current_span()
        if span.is_recording():
            span_context = span.get_span_context()
            g.trace_id = format(span_context.trace_id, "032x")

            span.set_attributes({
                "http.method": request.method,
                "http.target": request.path,
                "http.user_agent": request.headers.get("User-Agent", "")
            })

    @app.after_request
    def after_request(response):
        """Log request completion and add response attributes to span."""
        duration_ms = round((time.time() - g.get('start_time', time.time())) * 1000, 2)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attributes({
                "http.status_code": response.status_code,
                "http.duration_ms": duration_ms
            })

        logger.info(
            "HTTP request completed",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "trace_id": g.get('trace_id')
            }
        )

        # Trace ID for client-side correlation
        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
