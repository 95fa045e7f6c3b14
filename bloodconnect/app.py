"""
BloodConnect API - Flask Application Factory

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the blood request service to its
repository.
"""

import os
from typing import Any, Dict, Optional
from flask_openapi3 import OpenAPI, Info, Tag

from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.cors import configure_cors
from .middleware.security_headers import configure_security_headers
from .middleware.error_handler import ErrorHandlerMiddleware, validation_error_callback
from .services.blood_requests import BloodRequestService
from .services.health import HealthCheckService
from .services.mongodb import MongoDBService, BloodRequestRepository
from .domain.history import DEFAULT_HISTORY_LIMIT
from .routes.blood_requests import blood_requests_bp
from .utils.response import respond

# OpenAPI info
info = Info(
    title="BloodConnect API",
    version="1.0.0",
    description="Blood request matching and lifecycle API"
)

health_tag = Tag(name="Health", description="System health and status")


def load_config() -> Dict[str, Any]:
    """Read configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/blood-donation'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'blood-donation'),
        'STATUS_HISTORY_LIMIT': int(os.getenv('STATUS_HISTORY_LIMIT', str(DEFAULT_HISTORY_LIMIT))),
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'SERVICE_VERSION': os.getenv('SERVICE_VERSION', '1.0.0')
    }


def create_app(config: Optional[Dict[str, Any]] = None, repository=None) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Overrides applied on top of the environment configuration
        repository: Blood request repository to use instead of MongoDB

    Returns:
        Configured application
    """
    settings = load_config()
    settings.update(config or {})

    if settings['OTEL_ENABLED']:
        setup_observability(settings['ENVIRONMENT'], settings['SERVICE_VERSION'])

    app = OpenAPI(
        __name__,
        info=info,
        validation_error_status=400,
        validation_error_callback=validation_error_callback
    )
    app.config.update(settings)

    add_observability_middleware(app)

    mongodb_service = None
    if repository is None:
        mongodb_service = MongoDBService(app.config['MONGODB_URI'], app.config['MONGODB_DATABASE'])
        repository = BloodRequestRepository(mongodb_service)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.blood_request_service = BloodRequestService(
        repository,
        history_limit=app.config['STATUS_HISTORY_LIMIT']
    )
    health_service = HealthCheckService(mongodb_service, app.config['SERVICE_VERSION'])

    configure_cors(app, allow_credentials=True)
    configure_security_headers(app)
    ErrorHandlerMiddleware(app)

    app.register_api(blood_requests_bp)

    @app.route('/')
    def index():
        """Liveness text."""
        return "Server is running"

    @app.get('/healthz', tags=[health_tag])
    def health_check():
        """Health check endpoint with dependency monitoring."""
        health_data = health_service.get_health()
        status_code = 200 if health_data["status"] == "healthy" else 503
        return respond(status_code, f"Service is {health_data['status']}", health_data)

    return app
