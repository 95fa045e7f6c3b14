# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from bson import ObjectId
from .base import StrictCamelModel, normalize_email
from .entities import PersonRef, Recipient, DonationInfo, Location, ActorContext
from .enums import RequestStatus, ActorRole, Urgency

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
SORTABLE_FIELDS = ["createdAt", "updatedAt", "donationInfo.requiredDate", "status.current"]
DEFAULT_SORT_FIELD = "createdAt"


class PersonRefInput(PersonRef):
    """Requester or donor reference as sent by clients."""

    model_config = ConfigDict(extra='forbid')


class RecipientInput(Recipient):
    """Recipient as sent by clients."""

    model_config = ConfigDict(extra='forbid')


class DonationInfoInput(DonationInfo):
    """Donation details as sent by clients."""

    model_config = ConfigDict(extra='forbid')


class LocationInput(Location):
    """Location as sent by clients."""

    model_config = ConfigDict(extra='forbid')


def _coerce_int(value, default: int) -> int:
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


class BloodRequestPath(BaseModel):
    """Path parameters addressing a single blood request."""

    request_id: str = Field(..., description="Blood request ObjectId")

    @field_validator('request_id')
    @classmethod
    def validate_request_id(cls, v):
        if not ObjectId.is_valid(v):
            raise ValueError('Invalid ID format')
        return v


class CreateBloodRequestRequest(StrictCamelModel):
    """Request model for opening a blood request."""

    requester: PersonRefInput = Field(..., description="Who is asking for blood")
    donor: Optional[PersonRefInput] = Field(None, description="Donor addressed directly, if any")
    recipient: RecipientInput = Field(..., description="Patient receiving blood")
    donation_info: DonationInfoInput = Field(..., description="Blood group, date and urgency")
    location: LocationInput = Field(..., description="Where the donation takes place")


class StatusChange(StrictCamelModel):
    """Requested status change."""

    current: RequestStatus = Field(..., description="Target status")


class ApplyActionRequest(StrictCamelModel):
    """Request model for PATCH /blood-requests/<id>."""

    role: ActorRole = Field(..., description="Role of the acting user")
    email: str = Field(..., description="Email of the acting user")
    name: Optional[str] = Field(None, description="Name of the acting user")
    user_id: Optional[str] = Field(None, description="ID of the acting user")
    action: str = Field(..., min_length=1, description="update, complete or cancel")
    status: Optional[StatusChange] = Field(None, description="Target status for update")
    donor: Optional[PersonRefInput] = Field(None, description="Donor to bind on update")
    recipient: Optional[RecipientInput] = None
    donation_info: Optional[DonationInfoInput] = None
    location: Optional[LocationInput] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    def to_actor(self) -> ActorContext:
        return ActorContext(id=self.user_id, email=self.email, name=self.name, role=self.role)


class UpdateEditableFieldsRequest(StrictCamelModel):
    """Request model for the requester's own field edits."""

    email: str = Field(..., description="Requester email")
    name: Optional[str] = Field(None, description="Requester name")
    user_id: Optional[str] = Field(None, description="Requester ID")
    recipient: Optional[RecipientInput] = None
    donation_info: Optional[DonationInfoInput] = None
    location: Optional[LocationInput] = None
    status: Optional[StatusChange] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    def to_actor(self) -> ActorContext:
        return ActorContext(id=self.user_id, email=self.email, name=self.name, role=ActorRole.REQUESTER)


class ListBloodRequestsQuery(BaseModel):
    """Query parameters for listing blood requests."""

    email: Optional[str] = Field(None, description="Caller email (requester or donor)")
    role: Optional[ActorRole] = Field(None, description="Caller role")
    page: int = Field(default=DEFAULT_PAGE, description="Page number")
    limit: int = Field(default=DEFAULT_LIMIT, description="Items per page")
    status: Optional[RequestStatus] = Field(None, description="Filter by current status")
    blood_group: Optional[str] = Field(None, description="Filter by blood group")
    urgency: Optional[Urgency] = Field(None, description="Filter by urgency")
    sort_by: str = Field(default=DEFAULT_SORT_FIELD, description="Sort field")
    sort_order: str = Field(default="desc", description="asc or desc")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None or not v.strip():
            return None
        return normalize_email(v)

    @field_validator('page', mode='before')
    @classmethod
    def clamp_page(cls, v):
        return max(1, _coerce_int(v, DEFAULT_PAGE))

    @field_validator('limit', mode='before')
    @classmethod
    def clamp_limit(cls, v):
        return max(1, min(_coerce_int(v, DEFAULT_LIMIT), MAX_LIMIT))

    @field_validator('sort_by', mode='before')
    @classmethod
    def validate_sort_by(cls, v):
        return v if v in SORTABLE_FIELDS else DEFAULT_SORT_FIELD

    @field_validator('sort_order', mode='before')
    @classmethod
    def validate_sort_order(cls, v):
        v = str(v or '').lower()
        return v if v in ('asc', 'desc') else 'desc'

    def to_actor(self) -> ActorContext:
        return ActorContext(email=self.email, role=self.role or ActorRole.REQUESTER)


class DeleteBloodRequestQuery(BaseModel):
    """Query parameters identifying who deletes a blood request."""

    email: str = Field(..., description="Caller email")
    role: ActorRole = Field(default=ActorRole.REQUESTER, description="Caller role")
    name: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    def to_actor(self) -> ActorContext:
        return ActorContext(id=self.user_id, email=self.email, name=self.name, role=self.role)
