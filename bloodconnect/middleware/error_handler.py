# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with the standard response envelope.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, make_response
from werkzeug.exceptions import HTTPException
from pydantic import ValidationError
from typing import Dict, Any, List, Optional
from opentelemetry import trace
import logging

from ..models.enums import RejectionKind
from ..utils.response import build_envelope, respond

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

REJECTION_STATUS_CODES: Dict[RejectionKind, int] = {
    RejectionKind.VALIDATION: 400,
    RejectionKind.MISSING_SELECTOR: 400,
    RejectionKind.UNSUPPORTED_ACTION: 400,
    RejectionKind.INVALID_TRANSITION: 400,
    RejectionKind.INVALID_STATE: 400,
    RejectionKind.SELF_REFERENTIAL: 403,
    RejectionKind.FORBIDDEN: 403,
    RejectionKind.NOT_FOUND: 404,
    RejectionKind.DUPLICATE_PAIRING: 409,
    RejectionKind.DONOR_UNAVAILABLE: 409
}

VALIDATION_MESSAGES = {
    "BloodRequestPath": "Invalid ID format"
}


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class RequestRejectedException(CustomException):
    """A blood request operation refused by a business rule."""

    def __init__(self, kind: RejectionKind, message: str, status_code: Optional[int] = None):
        kind = RejectionKind(kind)
        super().__init__(message, status_code or REJECTION_STATUS_CODES[kind], kind.value)
        self.kind = kind

    @classmethod
    def from_rejection(cls, rejection, status_code: Optional[int] = None) -> "RequestRejectedException":
        """Build from a domain ``Rejection``."""
        return cls(rejection.kind, rejection.message, status_code)


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return errors


def validation_message(validation_error: ValidationError, errors: List[Dict[str, Any]]) -> str:
    """Pick a human-readable summary for a validation failure."""
    if validation_error.title in VALIDATION_MESSAGES:
        return VALIDATION_MESSAGES[validation_error.title]

    missing = [error["field"] for error in errors if error["type"] == "missing"]
    if missing and len(missing) == len(errors):
        return f"Missing required fields: {', '.join(missing)}"

    return "Request validation failed"


def validation_error_callback(validation_error: ValidationError):
    """Render request-model validation failures with the standard envelope."""
    errors = format_validation_errors(validation_error)
    message = validation_message(validation_error, errors)

    logger.warning(
        "Request validation failed",
        extra={
            "model": validation_error.title,
            "path": request.path,
            "method": request.method,
            "validation_errors": errors
        }
    )

    body = build_envelope(400, message, {"type": RejectionKind.VALIDATION.value, "errors": errors})
    return make_response(body, 400)


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with envelope formatting."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(CustomException)
        def handle_custom_exception(error: CustomException):
            return self.handle_custom_exception(error)

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            return self.handle_http_exception(error)

        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_custom_exception(self, error: CustomException):
        """Render an application exception."""
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Request rejected: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            return respond(error.status_code, error.message, {"type": error.error_type})

    def handle_http_exception(self, error: HTTPException):
        """Render werkzeug HTTP errors (unknown routes, wrong methods...)."""
        status_code = error.code or 500
        detail = str(error.description) if error.description else error.name

        if status_code >= 500:
            logger.error(
                f"Server error: {error.name}",
                extra={"status_code": status_code, "path": request.path, "method": request.method}
            )
        else:
            logger.warning(
                f"Client error: {error.name}",
                extra={"status_code": status_code, "path": request.path, "method": request.method}
            )

        return respond(status_code, detail, {"type": error.name.lower().replace(" ", "-")})

    def handle_unexpected_error(self, error: Exception):
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (response, status code)
        """
        if isinstance(error, HTTPException):
            return self.handle_http_exception(error)

        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            # Don't expose internal error details
            message = "Server error"
            if self.app.config.get('ENVIRONMENT') != 'production':
                message = f"Server error: {error.__class__.__name__}: {error}"

            return respond(500, message, {"type": "Unexpected"})
