# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware functionality.
"""

import pytest
from unittest.mock import Mock
from flask import Flask

from bloodconnect.domain.matching import Rejection
from bloodconnect.middleware.cors import CORSMiddleware
from bloodconnect.middleware.error_handler import (
    ErrorHandlerMiddleware,
    RequestRejectedException,
    format_validation_errors,
    validation_message
)
from bloodconnect.middleware.security_headers import DEFAULT_CSP_DIRECTIVES, build_csp, configure_security_headers
from bloodconnect.models.enums import RejectionKind
from bloodconnect.utils.response import build_envelope


def _validation_error(title, errors):
    error = Mock()
    error.title = title
    error.errors.return_value = errors
    return error


class TestEnvelope:
    """Test the response envelope."""

    def test_success_derived_from_status(self):
        assert build_envelope(201, "ok")["success"] is True
        assert build_envelope(404, "missing")["success"] is False

    def test_empty_list_kept(self):
        assert build_envelope(200, "none", [])["data"] == []

    def test_none_data_and_empty_meta_omitted(self):
        body = build_envelope(200, "ok", None, {})

        assert body == {"success": True, "message": "ok"}


class TestRequestRejectedException:
    """Test rejection to status mapping."""

    @pytest.mark.parametrize("kind,status", [
        (RejectionKind.VALIDATION, 400),
        (RejectionKind.MISSING_SELECTOR, 400),
        (RejectionKind.INVALID_TRANSITION, 400),
        (RejectionKind.SELF_REFERENTIAL, 403),
        (RejectionKind.FORBIDDEN, 403),
        (RejectionKind.NOT_FOUND, 404),
        (RejectionKind.DUPLICATE_PAIRING, 409),
        (RejectionKind.DONOR_UNAVAILABLE, 409),
    ])
    def test_status_codes(self, kind, status):
        assert RequestRejectedException(kind, "nope").status_code == status

    def test_status_override(self):
        error = RequestRejectedException.from_rejection(
            Rejection(RejectionKind.INVALID_STATE, "Only pending or cancelled requests can be deleted"),
            status_code=403
        )

        assert error.status_code == 403
        assert error.error_type == "InvalidState"


class TestValidationFormatting:
    """Test validation error summaries."""

    def test_format(self):
        error = _validation_error("Model", [{"loc": ("donationInfo", "bloodGroup"), "msg": "bad", "type": "enum"}])

        assert format_validation_errors(error) == [
            {"field": "donationInfo.bloodGroup", "message": "bad", "type": "enum"}
        ]

    def test_missing_fields_message(self):
        errors = [
            {"field": "recipient", "message": "Field required", "type": "missing"},
            {"field": "location", "message": "Field required", "type": "missing"}
        ]

        message = validation_message(_validation_error("CreateBloodRequestRequest", []), errors)

        assert message == "Missing required fields: recipient, location"

    def test_mixed_errors_message(self):
        errors = [
            {"field": "recipient", "message": "Field required", "type": "missing"},
            {"field": "metadata", "message": "Extra inputs are not permitted", "type": "extra_forbidden"}
        ]

        message = validation_message(_validation_error("CreateBloodRequestRequest", []), errors)

        assert message == "Request validation failed"

    def test_path_message(self):
        errors = [{"field": "request_id", "message": "Value error", "type": "value_error"}]

        assert validation_message(_validation_error("BloodRequestPath", []), errors) == "Invalid ID format"


class TestErrorHandlerMiddleware:
    """Test exception rendering."""

    def setup_method(self):
        self.app = Flask(__name__)
        self.app.config['ENVIRONMENT'] = 'production'
        ErrorHandlerMiddleware(self.app)

        @self.app.route('/rejected')
        def rejected():
            raise RequestRejectedException(RejectionKind.DUPLICATE_PAIRING, "You already have an active request with this donor")

        @self.app.route('/invalid')
        def invalid():
            raise RequestRejectedException(RejectionKind.VALIDATION, "Nothing to update")

        @self.app.route('/boom')
        def boom():
            raise RuntimeError("database password is hunter2")

        self.client = self.app.test_client()

    def test_rejection(self):
        response = self.client.get('/rejected')

        assert response.status_code == 409
        assert response.get_json() == {
            "success": False,
            "message": "You already have an active request with this donor",
            "data": {"type": "DuplicatePairing"}
        }

    def test_domain_validation_rejection(self):
        response = self.client.get('/invalid')

        assert response.status_code == 400
        assert response.get_json() == {
            "success": False,
            "message": "Nothing to update",
            "data": {"type": "Validation"}
        }

    def test_unexpected_error_hides_details_in_production(self):
        response = self.client.get('/boom')

        assert response.status_code == 500
        assert response.get_json()["message"] == "Server error"
        assert response.get_json()["data"] == {"type": "Unexpected"}

    def test_method_not_allowed(self):
        response = self.client.post('/rejected')

        assert response.status_code == 405
        assert response.get_json()["data"]["type"] == "method-not-allowed"


class TestCORSMiddleware:
    """Test CORS handling."""

    def setup_method(self):
        self.app = Flask(__name__)

        @self.app.route('/ping')
        def ping():
            return "pong"

    def test_default_origins_include_frontend(self, monkeypatch):
        monkeypatch.setenv('FRONTEND_URL', 'https://donate.example.org')
        monkeypatch.delenv('CORS_ALLOWED_ORIGINS', raising=False)

        cors = CORSMiddleware(self.app, allow_all_origins=False)

        assert cors.is_origin_allowed('http://localhost:5173')
        assert cors.is_origin_allowed('https://donate.example.org')
        assert not cors.is_origin_allowed('https://evil.example')

    def test_wildcard_pattern(self):
        cors = CORSMiddleware(self.app, allowed_origins=['https://preview-*'], allow_all_origins=False)

        assert cors.is_origin_allowed('https://preview-42.example')

    def test_preflight(self):
        CORSMiddleware(self.app, allow_all_origins=False)
        client = self.app.test_client()

        allowed = client.options('/ping', headers={'Origin': 'http://localhost:5173'})
        rejected = client.options('/ping', headers={'Origin': 'https://evil.example'})

        assert allowed.status_code == 204
        assert 'PATCH' in allowed.headers['Access-Control-Allow-Methods']
        assert rejected.status_code == 403

    def test_allow_all_origins(self):
        CORSMiddleware(self.app, allow_all_origins=True)

        response = self.app.test_client().get('/ping', headers={'Origin': 'https://anything.example'})

        assert response.headers['Access-Control-Allow-Origin'] == 'https://anything.example'


class TestSecurityHeaders:
    """Test security headers."""

    def test_csp_rendering(self):
        csp = build_csp(DEFAULT_CSP_DIRECTIVES)

        assert csp.startswith("default-src 'self'; ")
        assert "object-src 'none'" in csp
        assert csp.endswith("upgrade-insecure-requests")

    def test_headers_added_without_overwriting(self):
        app = Flask(__name__)
        configure_security_headers(app)

        @app.route('/framed')
        def framed():
            return "ok", 200, {'X-Frame-Options': 'DENY'}

        response = app.test_client().get('/framed')

        assert response.headers['X-Frame-Options'] == 'DENY'
        assert response.headers['Referrer-Policy'] == 'no-referrer'
