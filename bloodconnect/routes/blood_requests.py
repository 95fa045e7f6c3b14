# SPDX-License-Identifier: Apache-2.0

"""
Blood request endpoints.

Create, list, fetch, transition, edit and delete blood requests. Request
parsing is declared through pydantic models so flask-openapi3 validates
paths, query strings and bodies before the handlers run; business rule
failures surface as ``RequestRejectedException`` and are rendered by the
error handler.
"""

from flask import current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..models.entities import BloodRequest
from ..models.requests import (
    BloodRequestPath,
    CreateBloodRequestRequest,
    ApplyActionRequest,
    UpdateEditableFieldsRequest,
    ListBloodRequestsQuery,
    DeleteBloodRequestQuery
)
from ..models.responses import ApiResponse, InsertedIdResponse
from ..utils.response import respond

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

blood_requests_tag = Tag(name="Blood Requests", description="Blood request matching and lifecycle")
blood_requests_bp = APIBlueprint(
    'blood_requests',
    __name__,
    url_prefix='/blood-requests',
    abp_tags=[blood_requests_tag]
)

MUTATION_RESPONSES = {200: ApiResponse, 400: ApiResponse, 403: ApiResponse, 404: ApiResponse, 409: ApiResponse}


def _service():
    return current_app.blood_request_service


def _render(request: BloodRequest) -> dict:
    """Serialize a request with camelCase keys and ISO timestamps."""
    return request.model_dump(mode='json', by_alias=True)


@blood_requests_bp.post('', responses={201: InsertedIdResponse, 400: ApiResponse, 403: ApiResponse, 409: ApiResponse})
def create_blood_request(body: CreateBloodRequestRequest):
    """
    Create a blood request.

    The request starts pending. A donor may be addressed directly; the pairing
    rules are checked before the insert.
    """
    with tracer.start_as_current_span("http.blood_request.create"):
        request_id = _service().create(body)
        return respond(201, "Blood request saved successfully", {"insertedId": request_id})


@blood_requests_bp.get('', responses={200: ApiResponse, 400: ApiResponse})
def list_blood_requests(query: ListBloodRequestsQuery):
    """
    List blood requests visible to the caller.

    Admins and volunteers see everything; other callers see the requests where
    their email is the requester or the donor.
    """
    with tracer.start_as_current_span("http.blood_request.list") as span:
        result = _service().list(
            query.to_actor(),
            page=query.page,
            limit=query.limit,
            status=query.status,
            blood_group=query.blood_group,
            urgency=query.urgency,
            sort_by=query.sort_by,
            sort_order=query.sort_order
        )
        items = [_render(BloodRequest.from_document(item)) for item in result.items]
        span.set_attribute("result.count", len(items))

        message = "Blood requests retrieved successfully" if items else "No blood requests found"
        return respond(200, message, items, result.to_meta())


@blood_requests_bp.get('/<request_id>', responses={200: ApiResponse, 404: ApiResponse})
def get_blood_request(path: BloodRequestPath):
    """Get a single blood request."""
    with tracer.start_as_current_span("http.blood_request.get"):
        request = _service().get(path.request_id)
        return respond(200, "Blood request retrieved successfully", _render(request))


@blood_requests_bp.patch('/<request_id>', responses=MUTATION_RESPONSES)
def apply_blood_request_action(path: BloodRequestPath, body: ApplyActionRequest):
    """
    Apply an action to a blood request.

    ``update`` overwrites status and fields, ``complete`` marks the donation as
    done and ``cancel`` withdraws the request.
    """
    with tracer.start_as_current_span("http.blood_request.apply_action"):
        request = _service().apply_action(
            path.request_id,
            body.action,
            body.to_actor(),
            status=body.status.current if body.status else None,
            donor=body.donor,
            recipient=body.recipient,
            donation_info=body.donation_info,
            location=body.location
        )
        return respond(200, "Request updated successfully", _render(request))


@blood_requests_bp.put('/<request_id>', responses=MUTATION_RESPONSES)
def update_blood_request_fields(path: BloodRequestPath, body: UpdateEditableFieldsRequest):
    """Let the requester edit recipient, donation info and location."""
    with tracer.start_as_current_span("http.blood_request.update_fields"):
        request = _service().update_editable_fields(
            path.request_id,
            body.to_actor(),
            recipient=body.recipient,
            donation_info=body.donation_info,
            location=body.location,
            status=body.status.current if body.status else None
        )
        return respond(200, "Request updated successfully", _render(request))


@blood_requests_bp.delete('/<request_id>', responses=MUTATION_RESPONSES)
def delete_blood_request(path: BloodRequestPath, query: DeleteBloodRequestQuery):
    """Delete a pending or cancelled blood request."""
    with tracer.start_as_current_span("http.blood_request.delete"):
        _service().delete(path.request_id, query.to_actor())
        return respond(200, "Blood request deleted successfully", {"deletedId": path.request_id})
