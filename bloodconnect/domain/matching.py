# SPDX-License-Identifier: Apache-2.0

"""
Matching rules for requester/donor pairings.

Decides whether a blood request may be created, or a donor bound to an
existing request, without breaking the pairing invariants:

1. requester and donor are different people;
2. a requester/donor pair has at most one active (pending or in progress) request;
3. a donor has at most one in-progress request.

The checks only read through the repository. They run as separate queries
before the write, with no lock or unique index behind them, so two concurrent
callers can both pass and both write.
"""

from dataclasses import dataclass
from typing import Optional

from ..models.enums import RejectionKind
from ..models.requests import CreateBloodRequestRequest


@dataclass
class Rejection:
    """Reason an operation was refused."""
    kind: RejectionKind
    message: str


@dataclass
class MatchResult:
    """Result of pairing validation."""
    ok: bool
    rejection: Optional[Rejection] = None


def check_self_request(requester_email: str, donor_email: Optional[str]) -> Optional[Rejection]:
    """Reject a request addressed to its own requester."""
    if donor_email and requester_email == donor_email:
        return Rejection(
            RejectionKind.SELF_REFERENTIAL,
            "You cannot request blood from yourself"
        )
    return None


def validate_pairing(
    requester_email: str,
    donor_email: Optional[str],
    repository,
    exclude_id: Optional[str] = None
) -> MatchResult:
    """
    Validate a requester/donor pairing against the stored requests.

    Args:
        requester_email: Normalized requester email
        donor_email: Normalized donor email, or None for an open request
        repository: Object exposing ``find_active_pairing`` and
            ``find_in_progress_for_donor``
        exclude_id: Request to ignore in lookups (the one being updated)

    Returns:
        MatchResult; the first violated rule wins
    """
    if not requester_email:
        return MatchResult(ok=False, rejection=Rejection(
            RejectionKind.VALIDATION, "Requester email is required"
        ))

    rejection = check_self_request(requester_email, donor_email)
    if rejection:
        return MatchResult(ok=False, rejection=rejection)

    if not donor_email:
        return MatchResult(ok=True)

    if repository.find_active_pairing(requester_email, donor_email, exclude_id=exclude_id):
        return MatchResult(ok=False, rejection=Rejection(
            RejectionKind.DUPLICATE_PAIRING,
            "You already have an active request with this donor"
        ))

    if repository.find_in_progress_for_donor(donor_email, exclude_id=exclude_id):
        return MatchResult(ok=False, rejection=Rejection(
            RejectionKind.DONOR_UNAVAILABLE,
            "This donor is already committed to another request"
        ))

    return MatchResult(ok=True)


def validate_creation(candidate: CreateBloodRequestRequest, repository) -> MatchResult:
    """
    Validate a new blood request before it is inserted.

    Args:
        candidate: Validated creation payload
        repository: Request repository used for the lookups

    Returns:
        MatchResult
    """
    donor_email = candidate.donor.email if candidate.donor else None
    return validate_pairing(candidate.requester.email, donor_email, repository)
