# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for requester/donor pairing validation.
"""

from unittest.mock import MagicMock

from bloodconnect.domain.matching import check_self_request, validate_creation, validate_pairing
from bloodconnect.models.enums import RejectionKind
from bloodconnect.tests.factories import DONOR, REQUESTER, build_candidate


def _repository(active=None, in_progress=None) -> MagicMock:
    repository = MagicMock()
    repository.find_active_pairing.return_value = active
    repository.find_in_progress_for_donor.return_value = in_progress
    return repository


class TestValidatePairing:
    """Test pairing rules and their order."""

    def test_open_request_is_accepted_without_lookups(self):
        repository = _repository()

        result = validate_pairing("a@x.com", None, repository)

        assert result.ok
        repository.find_active_pairing.assert_not_called()

    def test_self_request_is_rejected(self):
        result = validate_pairing("a@x.com", "a@x.com", _repository())

        assert not result.ok
        assert result.rejection.kind == RejectionKind.SELF_REFERENTIAL

    def test_self_request_wins_over_other_rules(self):
        repository = _repository(active={"id": "1"}, in_progress={"id": "2"})

        result = validate_pairing("a@x.com", "a@x.com", repository)

        assert result.rejection.kind == RejectionKind.SELF_REFERENTIAL
        repository.find_active_pairing.assert_not_called()

    def test_duplicate_pairing(self):
        result = validate_pairing("a@x.com", "b@x.com", _repository(active={"id": "1"}))

        assert result.rejection.kind == RejectionKind.DUPLICATE_PAIRING
        assert result.rejection.message == "You already have an active request with this donor"

    def test_duplicate_pairing_reported_before_busy_donor(self):
        result = validate_pairing(
            "a@x.com", "b@x.com", _repository(active={"id": "1"}, in_progress={"id": "2"})
        )

        assert result.rejection.kind == RejectionKind.DUPLICATE_PAIRING

    def test_busy_donor(self):
        result = validate_pairing("a@x.com", "b@x.com", _repository(in_progress={"id": "2"}))

        assert result.rejection.kind == RejectionKind.DONOR_UNAVAILABLE

    def test_missing_requester_email(self):
        result = validate_pairing("", "b@x.com", _repository())

        assert result.rejection.kind == RejectionKind.VALIDATION

    def test_exclude_id_is_forwarded(self):
        repository = _repository()

        validate_pairing("a@x.com", "b@x.com", repository, exclude_id="abc")

        repository.find_active_pairing.assert_called_once_with("a@x.com", "b@x.com", exclude_id="abc")
        repository.find_in_progress_for_donor.assert_called_once_with("b@x.com", exclude_id="abc")


class TestValidateCreation:
    """Test creation checks against a candidate."""

    def test_valid_candidate(self):
        assert validate_creation(build_candidate(donor=DONOR), _repository()).ok

    def test_candidate_addressed_to_requester(self):
        result = validate_creation(build_candidate(donor=REQUESTER), _repository())

        assert result.rejection.kind == RejectionKind.SELF_REFERENTIAL

    def test_self_request_detected_case_insensitively(self):
        donor = dict(REQUESTER, email="A@X.COM")

        result = validate_creation(build_candidate(donor=donor), _repository())

        assert result.rejection.kind == RejectionKind.SELF_REFERENTIAL


def test_check_self_request_ignores_missing_donor():
    assert check_self_request("a@x.com", None) is None
