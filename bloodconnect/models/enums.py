# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the BloodConnect platform.
"""

from enum import Enum


class RequestStatus(str, Enum):
    """Blood request lifecycle status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    """Roles an acting identity can carry."""
    REQUESTER = "requester"
    DONOR = "donor"
    ADMIN = "admin"
    VOLUNTEER = "volunteer"
    SYSTEM = "system"


class RequestAction(str, Enum):
    """Actions accepted by the transition engine."""
    UPDATE = "update"
    COMPLETE = "complete"
    CANCEL = "cancel"


class Urgency(str, Enum):
    """How soon the blood is needed."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BloodGroup(str, Enum):
    """ABO/Rh blood groups."""
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class RejectionKind(str, Enum):
    """Reasons the core refuses an operation."""
    VALIDATION = "Validation"
    SELF_REFERENTIAL = "SelfReferential"
    DUPLICATE_PAIRING = "DuplicatePairing"
    DONOR_UNAVAILABLE = "DonorUnavailable"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INVALID_TRANSITION = "InvalidTransition"
    INVALID_STATE = "InvalidState"
    UNSUPPORTED_ACTION = "UnsupportedAction"
    MISSING_SELECTOR = "MissingSelector"


ACTIVE_STATUSES = (RequestStatus.PENDING, RequestStatus.IN_PROGRESS)
TERMINAL_STATUSES = (RequestStatus.COMPLETED, RequestStatus.CANCELLED)
DELETABLE_STATUSES = (RequestStatus.PENDING, RequestStatus.CANCELLED)
PRIVILEGED_ROLES = (ActorRole.ADMIN, ActorRole.VOLUNTEER)
