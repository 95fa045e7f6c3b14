# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Standard JSON response envelope.

Every endpoint answers with ``{success, message, data?, meta?}`` where
``success`` is derived from the HTTP status code.
"""

from typing import Any, Dict, Optional, Tuple
from flask import jsonify, Response


def build_envelope(
    status: int,
    message: str,
    data: Any = None,
    meta: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build the response body.

    Args:
        status: HTTP status code
        message: Human-readable message
        data: Payload; lists are always included, even when empty
        meta: Pagination or other metadata; omitted when empty

    Returns:
        Envelope dictionary
    """
    body: Dict[str, Any] = {
        "success": 200 <= status < 300,
        "message": message
    }

    if isinstance(data, list) or data is not None:
        body["data"] = data

    if meta:
        body["meta"] = meta

    return body


def respond(
    status: int,
    message: str,
    data: Any = None,
    meta: Optional[Dict[str, Any]] = None
) -> Tuple[Response, int]:
    """Build a Flask ``(response, status)`` pair with the standard envelope."""
    return jsonify(build_envelope(status, message, data, meta)), status
