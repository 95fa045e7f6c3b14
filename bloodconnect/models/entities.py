# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the BloodConnect platform.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import Field, field_validator
from .base import (
    CamelModel,
    normalize_email,
    normalize_blood_group,
    validate_iso_date,
    validate_clock_time
)
from .enums import (
    RequestStatus,
    ActorRole,
    Urgency,
    BloodGroup,
    TERMINAL_STATUSES,
    PRIVILEGED_ROLES
)


class PersonRef(CamelModel):
    """Reference to a requester or donor identity."""

    id: str = Field(..., min_length=1, description="User identifier")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: str = Field(..., description="Email address")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate and normalize email."""
        return normalize_email(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate name."""
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class Recipient(CamelModel):
    """Patient receiving the blood."""

    name: str = Field(..., min_length=1, max_length=200, description="Patient name")
    hospital: str = Field(..., min_length=1, max_length=300, description="Hospital name")


class DonationInfo(CamelModel):
    """What is needed and when."""

    blood_group: BloodGroup = Field(..., description="Required blood group")
    required_date: str = Field(..., description="Date blood is needed (YYYY-MM-DD)")
    required_time: str = Field(..., description="Time blood is needed (HH:MM)")
    urgency: Urgency = Field(default=Urgency.MEDIUM, description="Urgency level")
    additional_info: Optional[str] = Field(None, max_length=1000, description="Free-form notes")

    @field_validator('blood_group', mode='before')
    @classmethod
    def clean_blood_group(cls, v):
        if isinstance(v, str):
            return normalize_blood_group(v)
        return v

    @field_validator('required_date')
    @classmethod
    def validate_required_date(cls, v):
        return validate_iso_date(v)

    @field_validator('required_time')
    @classmethod
    def validate_required_time(cls, v):
        return validate_clock_time(v)


class Location(CamelModel):
    """Where the donation takes place."""

    division: str = Field(..., min_length=1, max_length=100)
    district: str = Field(..., min_length=1, max_length=100)
    upazila: str = Field(..., min_length=1, max_length=100)
    full_address: str = Field(..., min_length=1, max_length=500)


class ChangedBy(CamelModel):
    """Identity recorded on a history entry."""

    id: str
    name: str
    email: str
    role: ActorRole


class HistoryEntry(CamelModel):
    """One recorded status change."""

    status: RequestStatus
    changed_at: datetime
    changed_by: ChangedBy


class RequestStatusBlock(CamelModel):
    """Current status plus bounded change history."""

    current: RequestStatus = Field(default=RequestStatus.PENDING)
    history: List[HistoryEntry] = Field(default_factory=list)

    def is_terminal(self) -> bool:
        return self.current in TERMINAL_STATUSES


class BloodRequest(CamelModel):
    """Blood request as stored and returned by the API."""

    id: Optional[str] = Field(None, description="Unique identifier")
    requester: PersonRef = Field(..., description="Who is asking for blood")
    donor: Optional[PersonRef] = Field(None, description="Who is expected to donate")
    recipient: Recipient
    donation_info: DonationInfo
    location: Location
    status: RequestStatusBlock = Field(default_factory=RequestStatusBlock)
    donation_status: RequestStatus = Field(
        default=RequestStatus.PENDING,
        description="Mirror of status.current kept for reporting"
    )
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BloodRequest":
        """Build an entity from a MongoDB document."""
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def is_requester(self, email: Optional[str]) -> bool:
        return bool(email) and email.strip().lower() == self.requester.email

    def is_donor(self, email: Optional[str]) -> bool:
        return bool(email) and self.donor is not None and email.strip().lower() == self.donor.email


class ActorContext(CamelModel):
    """Identity performing an operation, supplied by the caller."""

    id: Optional[str] = Field(None, description="Acting user ID")
    email: Optional[str] = Field(None, description="Acting user email")
    name: Optional[str] = Field(None, description="Acting user display name")
    role: ActorRole = Field(default=ActorRole.REQUESTER, description="Acting role")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None:
            return v
        return normalize_email(v)

    def has_role(self, *roles: ActorRole) -> bool:
        """Check if the actor carries any of the given roles."""
        return self.role in roles

    def is_privileged(self) -> bool:
        """Admins and volunteers may act on any request."""
        return self.has_role(*PRIVILEGED_ROLES)
