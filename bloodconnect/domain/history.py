# SPDX-License-Identifier: Apache-2.0

"""
Status history ledger.

Pure functions that build and append history entries. A request's history is
an ordered list, newest last, holding at most ``limit`` entries; the oldest
entries are evicted first.
"""

from datetime import datetime
from typing import List, Dict, Any, Optional

from ..models.entities import ActorContext
from ..models.enums import ActorRole, RequestStatus

DEFAULT_HISTORY_LIMIT = 10

SYSTEM_ACTOR: Dict[str, str] = {
    "id": "system",
    "name": "system",
    "email": "system",
    "role": ActorRole.SYSTEM.value
}


def build_changed_by(actor: Optional[ActorContext]) -> Dict[str, str]:
    """
    Build the ``changedBy`` record for an acting identity.

    Args:
        actor: Acting identity, or None when unavailable

    Returns:
        Dictionary with id, name, email and role
    """
    if actor is None or not actor.email:
        return dict(SYSTEM_ACTOR)

    return {
        "id": actor.id or "system",
        "name": actor.name or "system",
        "email": actor.email,
        "role": ActorRole(actor.role).value
    }


def make_entry(
    status: RequestStatus,
    changed_at: datetime,
    actor: Optional[ActorContext]
) -> Dict[str, Any]:
    """Create a history entry document."""
    return {
        "status": RequestStatus(status).value,
        "changedAt": changed_at,
        "changedBy": build_changed_by(actor)
    }


def append_entry(
    history: List[Dict[str, Any]],
    entry: Dict[str, Any],
    limit: int = DEFAULT_HISTORY_LIMIT
) -> List[Dict[str, Any]]:
    """
    Append an entry and evict the oldest ones beyond ``limit``.

    The input list is not modified.

    Args:
        history: Current history, oldest first
        entry: Entry to append
        limit: Maximum retained entries

    Returns:
        New history list
    """
    if limit < 1:
        raise ValueError("History limit must be at least 1")

    updated = list(history or [])
    updated.append(entry)
    if len(updated) > limit:
        updated = updated[len(updated) - limit:]
    return updated
