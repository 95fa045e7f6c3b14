# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
In-memory blood request repository for tests.

Mirrors ``BloodRequestRepository`` closely enough for the service and the
HTTP layer. ``before_insert`` and ``before_update`` are one-shot hooks run
just before a write lands, which lets tests interleave a second caller
between another caller's checks and its write.
"""

import copy
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from bson import ObjectId

from bloodconnect.domain.history import DEFAULT_HISTORY_LIMIT, append_entry
from bloodconnect.models.enums import ACTIVE_STATUSES, RequestStatus
from bloodconnect.services.mongodb import PaginationResult


def get_path(document: Dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split('.')
    target = document
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    target[parts[-1]] = value


def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate the subset of MongoDB query syntax the service emits."""
    for key, condition in query.items():
        if key == '$or':
            if not any(matches(document, clause) for clause in condition):
                return False
            continue

        value = get_path(document, key)
        if isinstance(condition, dict):
            if '$in' in condition and value not in condition['$in']:
                return False
            if '$ne' in condition and value == condition['$ne']:
                return False
            if '$regex' in condition:
                flags = re.IGNORECASE if 'i' in condition.get('$options', '') else 0
                if not isinstance(value, str) or not re.search(condition['$regex'], value, flags):
                    return False
        elif value != condition:
            return False
    return True


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeBloodRequestRepository:
    """Dictionary-backed stand-in for the MongoDB repository."""

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.before_insert: Optional[Callable[[Dict[str, Any]], None]] = None
        self.before_update: Optional[Callable[[str, Dict[str, Any]], None]] = None
        self.update_calls: List[Dict[str, Any]] = []

    @staticmethod
    def _check_id(request_id: str) -> None:
        if not ObjectId.is_valid(request_id):
            raise ValueError(f"Invalid ObjectId format: {request_id}")

    def _serialize(self, request_id: str) -> Dict[str, Any]:
        document = copy.deepcopy(self.documents[request_id])
        document['id'] = request_id
        return document

    def _find_one(self, query: Dict[str, Any], exclude_id: Optional[str]) -> Optional[Dict[str, Any]]:
        for request_id, document in self.documents.items():
            if request_id != exclude_id and matches(document, query):
                return self._serialize(request_id)
        return None

    def seed(self, document: Dict[str, Any]) -> str:
        """Store a document directly, bypassing hooks."""
        request_id = str(ObjectId())
        stored = copy.deepcopy(document)
        stored.pop('id', None)
        self.documents[request_id] = stored
        return request_id

    def insert(self, document: Dict[str, Any]) -> str:
        hook, self.before_insert = self.before_insert, None
        if hook:
            hook(document)
        return self.seed(document)

    def find_by_id(self, request_id: str) -> Optional[Dict[str, Any]]:
        self._check_id(request_id)
        if request_id not in self.documents:
            return None
        return self._serialize(request_id)

    def find_active_pairing(self, requester_email, donor_email, exclude_id=None):
        return self._find_one({
            'requester.email': requester_email,
            'donor.email': donor_email,
            'status.current': {'$in': [status.value for status in ACTIVE_STATUSES]}
        }, exclude_id)

    def find_in_progress_for_donor(self, donor_email, exclude_id=None):
        return self._find_one({
            'donor.email': donor_email,
            'status.current': RequestStatus.IN_PROGRESS.value
        }, exclude_id)

    def apply_update(
        self,
        request_id: str,
        set_fields: Dict[str, Any],
        history_entry: Optional[Dict[str, Any]] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Optional[Dict[str, Any]]:
        self._check_id(request_id)
        self.update_calls.append({
            'request_id': request_id,
            'set_fields': set_fields,
            'history_entry': history_entry,
            'history_limit': history_limit
        })

        hook, self.before_update = self.before_update, None
        if hook:
            hook(request_id, set_fields)

        document = self.documents.get(request_id)
        if document is None:
            return None

        for path, value in set_fields.items():
            set_path(document, path, copy.deepcopy(value))
        if history_entry is not None:
            history = get_path(document, 'status.history') or []
            set_path(document, 'status.history', append_entry(history, copy.deepcopy(history_entry), history_limit))

        return self._serialize(request_id)

    def delete(self, request_id: str, allowed_statuses: Iterable[str]) -> bool:
        self._check_id(request_id)
        document = self.documents.get(request_id)
        allowed = [RequestStatus(status).value for status in allowed_statuses]
        if document is None or get_path(document, 'status.current') not in allowed:
            return False
        del self.documents[request_id]
        return True

    def paginate(self, query, page=1, limit=10, sort_by='createdAt', sort_order=-1) -> PaginationResult:
        found = [
            (request_id, document)
            for request_id, document in self.documents.items()
            if matches(document, query)
        ]
        # ObjectIds grow with insertion order, which breaks ties like _id does
        found.sort(
            key=lambda item: (get_path(item[1], sort_by) is None, get_path(item[1], sort_by), item[0]),
            reverse=sort_order == -1
        )
        skip = (page - 1) * limit
        items = [self._serialize(request_id) for request_id, _ in found[skip:skip + limit]]
        return PaginationResult(items, len(found), page, limit)
