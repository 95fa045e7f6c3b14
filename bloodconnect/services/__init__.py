# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, lifecycle orchestration and health checks.
"""

from .mongodb import (
    MongoDBService,
    BloodRequestRepository,
    PaginationResult,
    get_mongodb_service,
    close_mongodb_connection
)
from .blood_requests import BloodRequestService
from .health import HealthCheckService

__all__ = [
    "MongoDBService",
    "BloodRequestRepository",
    "PaginationResult",
    "get_mongodb_service",
    "close_mongodb_connection",
    "BloodRequestService",
    "HealthCheckService"
]
