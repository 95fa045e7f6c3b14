# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the status history ledger.
"""

import pytest
from datetime import datetime, timezone

from bloodconnect.domain.history import (
    SYSTEM_ACTOR, append_entry, build_changed_by, make_entry
)
from bloodconnect.models.entities import ActorContext
from bloodconnect.models.enums import RequestStatus


def _entry(index: int) -> dict:
    return {"status": "pending", "changedAt": index, "changedBy": dict(SYSTEM_ACTOR)}


class TestAppendEntry:
    """Test bounded history appends."""

    def test_appends_newest_last(self):
        history = [_entry(1)]
        result = append_entry(history, _entry(2), limit=10)

        assert [e["changedAt"] for e in result] == [1, 2]

    def test_does_not_modify_input(self):
        history = [_entry(1)]
        append_entry(history, _entry(2), limit=10)

        assert len(history) == 1

    def test_keeps_last_k_after_k_plus_one_appends(self):
        history = []
        for index in range(11):
            history = append_entry(history, _entry(index), limit=10)

        assert len(history) == 10
        assert [e["changedAt"] for e in history] == list(range(1, 11))

    def test_never_exceeds_limit(self):
        history = []
        for index in range(25):
            history = append_entry(history, _entry(index), limit=5)
            assert len(history) <= 5

        assert [e["changedAt"] for e in history] == [20, 21, 22, 23, 24]

    def test_handles_missing_history(self):
        assert append_entry(None, _entry(1)) == [_entry(1)]

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            append_entry([], _entry(1), limit=0)


class TestChangedBy:
    """Test changedBy construction."""

    def test_system_actor_without_identity(self):
        assert build_changed_by(None) == {
            "id": "system", "name": "system", "email": "system", "role": "system"
        }

    def test_system_actor_without_email(self):
        assert build_changed_by(ActorContext(role="admin")) == SYSTEM_ACTOR

    def test_actor_fields_are_copied(self):
        actor = ActorContext(id="u1", email="B@X.com", name="Bilal", role="donor")

        assert build_changed_by(actor) == {
            "id": "u1", "name": "Bilal", "email": "b@x.com", "role": "donor"
        }

    def test_missing_id_and_name_fall_back_to_system(self):
        changed_by = build_changed_by(ActorContext(email="a@x.com", role="admin"))

        assert changed_by["id"] == "system"
        assert changed_by["name"] == "system"
        assert changed_by["role"] == "admin"

    def test_make_entry(self):
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        entry = make_entry(RequestStatus.COMPLETED, at, None)

        assert entry == {"status": "completed", "changedAt": at, "changedBy": SYSTEM_ACTOR}
