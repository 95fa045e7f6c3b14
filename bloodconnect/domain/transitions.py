# SPDX-License-Identifier: Apache-2.0

"""
Blood request state machine.

This module contains pure functions that decide whether an action may be
applied to a request and compute the resulting update. Nothing here touches
the database; the lifecycle service persists the returned plan.

States and edges::

    pending    -> inprogress | cancelled
    inprogress -> completed  | cancelled
    completed, cancelled: terminal
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, Tuple, Union

from ..models.entities import (
    BloodRequest, ActorContext, PersonRef, Recipient, DonationInfo, Location
)
from ..models.enums import RequestStatus, RequestAction, RejectionKind, ActorRole, ACTIVE_STATUSES
from .history import make_entry
from .matching import Rejection, check_self_request

VALID_TRANSITIONS: Dict[RequestStatus, Tuple[RequestStatus, ...]] = {
    RequestStatus.PENDING: (RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED),
    RequestStatus.IN_PROGRESS: (RequestStatus.COMPLETED, RequestStatus.CANCELLED),
    RequestStatus.COMPLETED: (),  # Terminal state
    RequestStatus.CANCELLED: ()  # Terminal state
}


@dataclass(frozen=True)
class UpdateAction:
    """Generic overwrite of status and/or request fields."""
    status: Optional[RequestStatus] = None
    donor: Optional[PersonRef] = None
    recipient: Optional[Recipient] = None
    donation_info: Optional[DonationInfo] = None
    location: Optional[Location] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.status, self.donor, self.recipient, self.donation_info, self.location)
        )


@dataclass(frozen=True)
class CompleteAction:
    """Donation took place."""


@dataclass(frozen=True)
class CancelAction:
    """Request withdrawn."""


Action = Union[UpdateAction, CompleteAction, CancelAction]


@dataclass
class TransitionPlan:
    """Computed update ready to be persisted in a single write."""
    set_fields: Dict[str, Any] = field(default_factory=dict)
    history_entry: Optional[Dict[str, Any]] = None
    new_status: Optional[RequestStatus] = None
    donor_email: Optional[str] = None
    needs_pairing_check: bool = False


@dataclass
class TransitionResult:
    """Result of planning an action."""
    success: bool
    plan: Optional[TransitionPlan] = None
    rejection: Optional[Rejection] = None


def _rejected(kind: RejectionKind, message: str) -> TransitionResult:
    return TransitionResult(success=False, rejection=Rejection(kind, message))


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    """Check whether ``target`` is reachable from ``current`` in one step."""
    return RequestStatus(target) in VALID_TRANSITIONS.get(RequestStatus(current), ())


def validate_status_transition(
    current: RequestStatus,
    target: RequestStatus
) -> Optional[Rejection]:
    """
    Validate a status transition.

    Args:
        current: Current status
        target: Desired new status

    Returns:
        Rejection if the edge does not exist, otherwise None
    """
    if can_transition(current, target):
        return None

    return Rejection(
        RejectionKind.INVALID_TRANSITION,
        f"Invalid status transition from {RequestStatus(current).value} to {RequestStatus(target).value}"
    )


def parse_action(
    name: str,
    status: Optional[RequestStatus] = None,
    donor: Optional[PersonRef] = None,
    recipient: Optional[Recipient] = None,
    donation_info: Optional[DonationInfo] = None,
    location: Optional[Location] = None
) -> Optional[Action]:
    """
    Build an action variant from its name and payload.

    Returns:
        The action, or None for an unknown action name
    """
    try:
        action_name = RequestAction((name or "").strip().lower())
    except ValueError:
        return None

    if action_name == RequestAction.UPDATE:
        return UpdateAction(
            status=RequestStatus(status) if status else None,
            donor=donor,
            recipient=recipient,
            donation_info=donation_info,
            location=location
        )
    if action_name == RequestAction.COMPLETE:
        return CompleteAction()
    return CancelAction()


def _status_change(
    plan: TransitionPlan,
    target: RequestStatus,
    actor: Optional[ActorContext],
    now: datetime
) -> None:
    plan.new_status = RequestStatus(target)
    plan.set_fields["status.current"] = plan.new_status.value
    plan.set_fields["donationStatus"] = plan.new_status.value
    plan.history_entry = make_entry(plan.new_status, now, actor)


def _set_editable_fields(
    plan: TransitionPlan,
    recipient: Optional[Recipient],
    donation_info: Optional[DonationInfo],
    location: Optional[Location]
) -> None:
    if recipient is not None:
        plan.set_fields["recipient"] = recipient.to_document()
    if donation_info is not None:
        plan.set_fields["donationInfo"] = donation_info.to_document()
    if location is not None:
        plan.set_fields["location"] = location.to_document()


def _plan_update(
    request: BloodRequest,
    action: UpdateAction,
    actor: ActorContext,
    now: datetime
) -> TransitionResult:
    current = RequestStatus(request.status.current)

    if action.is_empty():
        return _rejected(RejectionKind.VALIDATION, "Nothing to update")

    if request.status.is_terminal():
        return _rejected(
            RejectionKind.INVALID_TRANSITION,
            f"Request is {current.value} and can no longer be updated"
        )

    target = action.status
    if target is not None and target != current:
        rejection = validate_status_transition(current, target)
        if rejection:
            return TransitionResult(success=False, rejection=rejection)

    if not (actor.is_privileged() or request.is_requester(actor.email)):
        return _rejected(
            RejectionKind.FORBIDDEN,
            "Only the requester, an admin or a volunteer can update this request"
        )

    plan = TransitionPlan(set_fields={"updatedAt": now})
    donor = request.donor

    if action.donor is not None and not request.is_donor(action.donor.email):
        if donor is not None:
            return _rejected(
                RejectionKind.INVALID_TRANSITION,
                "A different donor is already bound to this request"
            )
        if current != RequestStatus.PENDING:
            return _rejected(
                RejectionKind.INVALID_TRANSITION,
                "A donor can only be bound while the request is pending"
            )
        rejection = check_self_request(request.requester.email, action.donor.email)
        if rejection:
            return TransitionResult(success=False, rejection=rejection)

        donor = action.donor
        plan.set_fields["donor"] = donor.to_document()
        plan.needs_pairing_check = True

    if target is not None and target != current:
        if target == RequestStatus.IN_PROGRESS:
            if donor is None:
                return _rejected(
                    RejectionKind.INVALID_TRANSITION,
                    "A donor must be bound before the request can move in progress"
                )
            plan.needs_pairing_check = True
        _status_change(plan, target, actor, now)

    _set_editable_fields(plan, action.recipient, action.donation_info, action.location)
    plan.donor_email = donor.email if donor else None

    return TransitionResult(success=True, plan=plan)


def _plan_complete(
    request: BloodRequest,
    actor: ActorContext,
    now: datetime
) -> TransitionResult:
    current = RequestStatus(request.status.current)
    if current != RequestStatus.IN_PROGRESS:
        return _rejected(
            RejectionKind.INVALID_TRANSITION,
            f"Only in-progress requests can be completed (current status: {current.value})"
        )

    allowed = (
        actor.is_privileged()
        or request.is_requester(actor.email)
        or request.is_donor(actor.email)
    )
    if not allowed:
        return _rejected(
            RejectionKind.FORBIDDEN,
            "Only the requester, the bound donor, an admin or a volunteer can complete this request"
        )

    plan = TransitionPlan(set_fields={"updatedAt": now})
    _status_change(plan, RequestStatus.COMPLETED, actor, now)
    return TransitionResult(success=True, plan=plan)


def _plan_cancel(
    request: BloodRequest,
    actor: ActorContext,
    now: datetime
) -> TransitionResult:
    current = RequestStatus(request.status.current)
    if current not in ACTIVE_STATUSES:
        return _rejected(
            RejectionKind.INVALID_TRANSITION,
            f"Request is {current.value} and cannot be cancelled"
        )

    if not (actor.has_role(ActorRole.ADMIN) or request.is_requester(actor.email)):
        return _rejected(
            RejectionKind.FORBIDDEN,
            "Only the requester or an admin can cancel this request"
        )

    plan = TransitionPlan(set_fields={"updatedAt": now})
    _status_change(plan, RequestStatus.CANCELLED, actor, now)
    return TransitionResult(success=True, plan=plan)


def plan_action(
    request: BloodRequest,
    action: Action,
    actor: ActorContext,
    now: datetime
) -> TransitionResult:
    """
    Decide whether ``action`` may be applied and compute the update.

    State legality is checked before authorization, so an illegal edge is
    reported as InvalidTransition whoever asks.

    Args:
        request: Current request snapshot
        action: Parsed action variant
        actor: Acting identity
        now: Timestamp for updatedAt and the history entry

    Returns:
        TransitionResult with a plan or a rejection
    """
    if isinstance(action, UpdateAction):
        return _plan_update(request, action, actor, now)
    if isinstance(action, CompleteAction):
        return _plan_complete(request, actor, now)
    if isinstance(action, CancelAction):
        return _plan_cancel(request, actor, now)
    return _rejected(RejectionKind.UNSUPPORTED_ACTION, f"Unsupported action: {action!r}")


def plan_field_edit(
    request: BloodRequest,
    actor: ActorContext,
    now: datetime,
    recipient: Optional[Recipient] = None,
    donation_info: Optional[DonationInfo] = None,
    location: Optional[Location] = None,
    status: Optional[RequestStatus] = None
) -> TransitionResult:
    """
    Plan the requester's own edit of recipient, donation info and location.

    Args:
        request: Current request snapshot
        actor: Acting identity; must be the requester
        now: Timestamp for updatedAt and the history entry
        recipient: New recipient, if changed
        donation_info: New donation info, if changed
        location: New location, if changed
        status: Optional status change folded into the same write

    Returns:
        TransitionResult with a plan or a rejection
    """
    if not request.is_requester(actor.email):
        return _rejected(RejectionKind.FORBIDDEN, "Only the requester can edit this request")

    current = RequestStatus(request.status.current)
    if request.status.is_terminal():
        return _rejected(
            RejectionKind.INVALID_STATE,
            f"Request is {current.value} and can no longer be edited"
        )

    if all(value is None for value in (recipient, donation_info, location, status)):
        return _rejected(RejectionKind.VALIDATION, "Nothing to update")

    plan = TransitionPlan(set_fields={"updatedAt": now})
    plan.donor_email = request.donor.email if request.donor else None

    if status is not None and RequestStatus(status) != current:
        rejection = validate_status_transition(current, status)
        if rejection:
            return TransitionResult(success=False, rejection=rejection)
        if RequestStatus(status) == RequestStatus.IN_PROGRESS:
            if request.donor is None:
                return _rejected(
                    RejectionKind.INVALID_TRANSITION,
                    "A donor must be bound before the request can move in progress"
                )
            plan.needs_pairing_check = True
        _status_change(plan, status, actor, now)

    _set_editable_fields(plan, recipient, donation_info, location)
    return TransitionResult(success=True, plan=plan)
