# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest

from bloodconnect.app import create_app
from bloodconnect.services.blood_requests import BloodRequestService
from bloodconnect.tests.factories import DONOR, build_candidate
from bloodconnect.tests.fakes import FakeBloodRequestRepository, TickingClock

# Set test environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['OTEL_ENABLED'] = 'false'


@pytest.fixture
def repository():
    """Empty in-memory repository."""
    return FakeBloodRequestRepository()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def service(repository, clock):
    """Lifecycle service over the in-memory repository."""
    return BloodRequestService(repository, history_limit=10, clock=clock)


@pytest.fixture
def app(repository):
    """Flask application wired to the in-memory repository."""
    return create_app(
        config={'ENVIRONMENT': 'testing', 'OTEL_ENABLED': False, 'TESTING': True},
        repository=repository
    )


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def pending_request(service):
    """Id of a pending request from REQUESTER addressed to DONOR."""
    return service.create(build_candidate(donor=DONOR))
