# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Security headers middleware.

Adds a Content-Security-Policy and related hardening headers to every response.
"""

from flask import Flask
from typing import Dict, List, Optional

DEFAULT_CSP_DIRECTIVES: Dict[str, List[str]] = {
    "default-src": ["'self'"],
    "style-src": ["'self'", "https://fonts.googleapis.com"],
    "font-src": ["'self'", "https://fonts.gstatic.com"],
    "script-src": ["'self'", "'unsafe-inline'", "'unsafe-eval'"],
    "connect-src": ["'self'", "*"],
    "img-src": ["'self'", "data:", "blob:"],
    "object-src": ["'none'"],
    "frame-src": ["'self'"],
    "upgrade-insecure-requests": []
}


def build_csp(directives: Dict[str, List[str]]) -> str:
    """Render CSP directives as a header value."""
    return "; ".join(
        " ".join([name] + list(sources)) for name, sources in directives.items()
    )


class SecurityHeadersMiddleware:
    """Attach security headers to every response."""

    def __init__(self, app: Flask, csp_directives: Optional[Dict[str, List[str]]] = None):
        self.app = app
        self.headers = {
            'Content-Security-Policy': build_csp(csp_directives or DEFAULT_CSP_DIRECTIVES),
            'X-Content-Type-Options': 'nosniff',
            'X-Frame-Options': 'SAMEORIGIN',
            'Referrer-Policy': 'no-referrer'
        }
        self.register_handlers()

    def register_handlers(self):
        """Register the after-request hook."""

        @self.app.after_request
        def add_security_headers(response):
            for name, value in self.headers.items():
                response.headers.setdefault(name, value)
            return response


def configure_security_headers(app: Flask, **kwargs) -> SecurityHeadersMiddleware:
    """Configure security headers for a Flask application."""
    return SecurityHeadersMiddleware(app, **kwargs)
