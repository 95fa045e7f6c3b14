# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Blood request lifecycle service.

Orchestrates the pure domain rules (matching, transitions, history) with the
repository. Each mutating operation performs one read-validate-write cycle:
the checks read the current state, then a single document write persists the
result. Nothing serializes concurrent callers.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, Any, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain.history import DEFAULT_HISTORY_LIMIT, make_entry
from ..domain.matching import Rejection, validate_creation, validate_pairing
from ..domain.transitions import TransitionResult, parse_action, plan_action, plan_field_edit
from ..middleware.error_handler import RequestRejectedException
from ..models.entities import (
    ActorContext, BloodRequest, DonationInfo, Location, PersonRef, Recipient
)
from ..models.enums import (
    ActorRole, RejectionKind, RequestStatus, Urgency, DELETABLE_STATUSES
)
from ..models.base import normalize_blood_group
from ..models.requests import CreateBloodRequestRequest, DEFAULT_SORT_FIELD
from .mongodb import PaginationResult

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def utc_now() -> datetime:
    """Current UTC time."""
    return datetime.now(timezone.utc)


def blood_group_query(blood_group: Optional[str]) -> Dict[str, Any]:
    """
    Build a lenient blood group filter.

    ``"a"``, ``"A+"`` and ``" a - "`` all match both A+ and A-; input with no
    group letters yields no filter.
    """
    if not blood_group:
        return {}

    base_group = re.sub(r'[+-]', '', normalize_blood_group(blood_group))
    if not base_group:
        return {}

    return {
        "donationInfo.bloodGroup": {
            "$regex": f"^{re.escape(base_group)}[+-]?$",
            "$options": "i"
        }
    }


def visibility_query(actor: ActorContext) -> Dict[str, Any]:
    """
    Scope a listing to what ``actor`` may see.

    Admins and volunteers see every request; anyone else sees the requests
    where they are the requester or the donor.

    Raises:
        RequestRejectedException: MissingSelector when neither a privileged
            role nor an email is given
    """
    if actor.is_privileged():
        return {}

    if actor.email:
        return {"$or": [{"requester.email": actor.email}, {"donor.email": actor.email}]}

    raise RequestRejectedException(
        RejectionKind.MISSING_SELECTOR,
        "Email or a privileged role is required to list blood requests"
    )


class BloodRequestService:
    """Create, read, list, transition and delete blood requests."""

    def __init__(
        self,
        repository,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = utc_now
    ):
        if history_limit < 1:
            raise ValueError("History limit must be at least 1")
        self.repository = repository
        self.history_limit = history_limit
        self.clock = clock

    @staticmethod
    def _reject(rejection: Rejection, span=None, status_code: Optional[int] = None):
        if span is not None:
            span.set_status(Status(StatusCode.ERROR, rejection.message))
            span.set_attribute("rejection.kind", rejection.kind.value)
        raise RequestRejectedException.from_rejection(rejection, status_code)

    def _load(self, request_id: str) -> BloodRequest:
        document = self.repository.find_by_id(request_id)
        if document is None:
            raise RequestRejectedException(RejectionKind.NOT_FOUND, "Blood request not found")
        return BloodRequest.from_document(document)

    def _persist(self, request_id: str, result: TransitionResult, span) -> BloodRequest:
        if not result.success:
            self._reject(result.rejection, span)

        plan = result.plan
        document = self.repository.apply_update(
            request_id,
            plan.set_fields,
            history_entry=plan.history_entry,
            history_limit=self.history_limit
        )
        if document is None:
            # Deleted between the read and the write
            raise RequestRejectedException(RejectionKind.NOT_FOUND, "Blood request not found")

        span.set_status(Status(StatusCode.OK))
        return BloodRequest.from_document(document)

    def _check_pairing(self, request: BloodRequest, result: TransitionResult, span) -> None:
        if not (result.success and result.plan.needs_pairing_check):
            return

        match = validate_pairing(
            request.requester.email,
            result.plan.donor_email,
            self.repository,
            exclude_id=request.id
        )
        if not match.ok:
            self._reject(match.rejection, span)

    def create(self, candidate: CreateBloodRequestRequest) -> str:
        """
        Open a new blood request in the pending state.

        Args:
            candidate: Validated creation payload

        Returns:
            The new request id

        Raises:
            RequestRejectedException: if a pairing rule is violated
        """
        with tracer.start_as_current_span("blood_request.create") as span:
            span.set_attributes({
                "requester.email": candidate.requester.email,
                "donor.present": candidate.donor is not None
            })

            match = validate_creation(candidate, self.repository)
            if not match.ok:
                logger.info(
                    "Blood request creation rejected",
                    extra={
                        "requester_email": candidate.requester.email,
                        "rejection": match.rejection.kind.value
                    }
                )
                self._reject(match.rejection, span)

            now = self.clock()
            requester = ActorContext(
                id=candidate.requester.id,
                email=candidate.requester.email,
                name=candidate.requester.name,
                role=ActorRole.REQUESTER
            )

            document = candidate.to_document()
            document.update({
                "status": {
                    "current": RequestStatus.PENDING.value,
                    "history": [make_entry(RequestStatus.PENDING, now, requester)]
                },
                "donationStatus": RequestStatus.PENDING.value,
                "createdAt": now,
                "updatedAt": now
            })

            request_id = self.repository.insert(document)
            span.set_attribute("blood_request.id", request_id)
            span.set_status(Status(StatusCode.OK))

            logger.info(
                "Blood request created",
                extra={
                    "request_id": request_id,
                    "requester_email": candidate.requester.email,
                    "donor_email": candidate.donor.email if candidate.donor else None
                }
            )
            return request_id

    def get(self, request_id: str) -> BloodRequest:
        """Fetch one request or raise NotFound."""
        with tracer.start_as_current_span("blood_request.get") as span:
            span.set_attribute("blood_request.id", request_id)
            return self._load(request_id)

    def list(
        self,
        actor: ActorContext,
        page: int = 1,
        limit: int = 10,
        status: Optional[RequestStatus] = None,
        blood_group: Optional[str] = None,
        urgency: Optional[Urgency] = None,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = "desc"
    ) -> PaginationResult:
        """
        List the requests visible to ``actor``.

        Args:
            actor: Caller identity; selects the visibility scope
            page: 1-based page number
            limit: Page size
            status: Optional current-status filter
            blood_group: Optional lenient blood group filter
            urgency: Optional urgency filter
            sort_by: Sort field
            sort_order: ``asc`` or ``desc``

        Returns:
            PaginationResult of serialized documents
        """
        with tracer.start_as_current_span("blood_request.list") as span:
            query = visibility_query(actor)
            if status:
                query["status.current"] = RequestStatus(status).value
            if urgency:
                query["donationInfo.urgency"] = Urgency(urgency).value
            query.update(blood_group_query(blood_group))

            span.set_attributes({
                "actor.role": ActorRole(actor.role).value,
                "pagination.page": page,
                "pagination.limit": limit
            })

            result = self.repository.paginate(
                query,
                page=page,
                limit=limit,
                sort_by=sort_by,
                sort_order=1 if sort_order == "asc" else -1
            )
            span.set_attribute("result.total", result.total)
            return result

    def apply_action(
        self,
        request_id: str,
        action_name: str,
        actor: ActorContext,
        status: Optional[RequestStatus] = None,
        donor: Optional[PersonRef] = None,
        recipient: Optional[Recipient] = None,
        donation_info: Optional[DonationInfo] = None,
        location: Optional[Location] = None
    ) -> BloodRequest:
        """
        Apply an update, complete or cancel action.

        Returns:
            The request as stored after the write

        Raises:
            RequestRejectedException: for unknown actions, missing requests,
                illegal transitions, authorization and pairing failures
        """
        with tracer.start_as_current_span("blood_request.apply_action") as span:
            span.set_attributes({
                "blood_request.id": request_id,
                "action": str(action_name),
                "actor.role": ActorRole(actor.role).value
            })

            action = parse_action(action_name, status, donor, recipient, donation_info, location)
            if action is None:
                self._reject(
                    Rejection(RejectionKind.UNSUPPORTED_ACTION, f"Unsupported action: {action_name}"),
                    span
                )

            request = self._load(request_id)
            result = plan_action(request, action, actor, self.clock())
            self._check_pairing(request, result, span)
            updated = self._persist(request_id, result, span)

            logger.info(
                "Blood request action applied",
                extra={
                    "request_id": request_id,
                    "action": action_name,
                    "actor_email": actor.email,
                    "actor_role": ActorRole(actor.role).value,
                    "from_status": request.status.current,
                    "to_status": updated.status.current
                }
            )
            return updated

    def update_editable_fields(
        self,
        request_id: str,
        actor: ActorContext,
        recipient: Optional[Recipient] = None,
        donation_info: Optional[DonationInfo] = None,
        location: Optional[Location] = None,
        status: Optional[RequestStatus] = None
    ) -> BloodRequest:
        """Let the requester edit recipient, donation info or location."""
        with tracer.start_as_current_span("blood_request.update_fields") as span:
            span.set_attribute("blood_request.id", request_id)

            request = self._load(request_id)
            result = plan_field_edit(
                request,
                actor,
                self.clock(),
                recipient=recipient,
                donation_info=donation_info,
                location=location,
                status=status
            )
            self._check_pairing(request, result, span)
            updated = self._persist(request_id, result, span)

            logger.info(
                "Blood request fields updated",
                extra={
                    "request_id": request_id,
                    "actor_email": actor.email,
                    "fields": sorted(result.plan.set_fields)
                }
            )
            return updated

    def delete(self, request_id: str, actor: ActorContext) -> None:
        """
        Delete a pending or cancelled request.

        Only the requester or an admin may delete; in-progress and completed
        requests are kept.
        """
        with tracer.start_as_current_span("blood_request.delete") as span:
            span.set_attribute("blood_request.id", request_id)

            request = self._load(request_id)

            if not (actor.has_role(ActorRole.ADMIN) or request.is_requester(actor.email)):
                self._reject(
                    Rejection(RejectionKind.FORBIDDEN, "Only the requester or an admin can delete this request"),
                    span
                )

            if request.status.current not in DELETABLE_STATUSES:
                self._reject(
                    Rejection(
                        RejectionKind.INVALID_STATE,
                        f"Cannot delete a request that is {request.status.current}"
                    ),
                    span,
                    status_code=403
                )

            if not self.repository.delete(request_id, DELETABLE_STATUSES):
                # Removed or moved out of a deletable state since the read
                raise RequestRejectedException(
                    RejectionKind.NOT_FOUND,
                    "Blood request not found or no longer deletable"
                )

            span.set_status(Status(StatusCode.OK))
            logger.warning(
                "Blood request deleted",
                extra={"request_id": request_id, "actor_email": actor.email}
            )
