# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Pagination metadata attached to list responses."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    totalPages: int = Field(..., description="Total number of pages")
    hasNext: bool = Field(..., description="Whether a next page exists")
    hasPrev: bool = Field(..., description="Whether a previous page exists")


class ApiResponse(BaseModel):
    """Standard response envelope."""

    success: bool = Field(..., description="True for 2xx responses")
    message: str = Field(..., description="Human-readable message")
    data: Optional[Any] = Field(None, description="Response payload")
    meta: Optional[PaginationMeta] = Field(None, description="Pagination metadata")


class InsertedIdData(BaseModel):
    """Payload returned after creating a blood request."""

    insertedId: str = Field(..., description="Identifier of the new blood request")


class InsertedIdResponse(ApiResponse):
    """Envelope returned by POST /blood-requests."""

    data: InsertedIdData
