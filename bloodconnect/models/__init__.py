# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the BloodConnect platform.
"""

# Base models
from .base import CamelModel, StrictCamelModel

# Enumerations
from .enums import (
    RequestStatus,
    ActorRole,
    RequestAction,
    Urgency,
    BloodGroup,
    RejectionKind
)

# Core entities
from .entities import (
    PersonRef,
    Recipient,
    DonationInfo,
    Location,
    ChangedBy,
    HistoryEntry,
    RequestStatusBlock,
    BloodRequest,
    ActorContext
)

# Request models
from .requests import (
    PersonRefInput,
    RecipientInput,
    DonationInfoInput,
    LocationInput,
    BloodRequestPath,
    CreateBloodRequestRequest,
    StatusChange,
    ApplyActionRequest,
    UpdateEditableFieldsRequest,
    ListBloodRequestsQuery,
    DeleteBloodRequestQuery
)

# Response models
from .responses import PaginationMeta, ApiResponse, InsertedIdData, InsertedIdResponse

__all__ = [
    # Base models
    "CamelModel",
    "StrictCamelModel",

    # Enumerations
    "RequestStatus",
    "ActorRole",
    "RequestAction",
    "Urgency",
    "BloodGroup",
    "RejectionKind",

    # Core entities
    "PersonRef",
    "Recipient",
    "DonationInfo",
    "Location",
    "ChangedBy",
    "HistoryEntry",
    "RequestStatusBlock",
    "BloodRequest",
    "ActorContext",

    # Request models
    "PersonRefInput",
    "RecipientInput",
    "DonationInfoInput",
    "LocationInput",
    "BloodRequestPath",
    "CreateBloodRequestRequest",
    "StatusChange",
    "ApplyActionRequest",
    "UpdateEditableFieldsRequest",
    "ListBloodRequestsQuery",
    "DeleteBloodRequestQuery",

    # Response models
    "PaginationMeta",
    "ApiResponse",
    "InsertedIdData",
    "InsertedIdResponse"
]
