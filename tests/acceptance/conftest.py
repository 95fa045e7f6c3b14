# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Acceptance test fixtures: the full application over an in-memory repository.
"""

import os
import pytest

from bloodconnect.app import create_app
from bloodconnect.tests.fakes import FakeBloodRequestRepository

os.environ.setdefault('ENVIRONMENT', 'testing')
os.environ.setdefault('OTEL_ENABLED', 'false')


def build_client(repository, history_limit: int = 10):
    app = create_app(
        config={
            'ENVIRONMENT': 'testing',
            'OTEL_ENABLED': False,
            'TESTING': True,
            'STATUS_HISTORY_LIMIT': history_limit
        },
        repository=repository
    )
    return app.test_client()


@pytest.fixture
def test_db():
    """In-memory blood request store."""
    return FakeBloodRequestRepository()


@pytest.fixture
def test_client(test_db):
    """Client for an application with the default history cap."""
    return build_client(test_db)


@pytest.fixture
def capped_client(test_db):
    """Client keeping only the last two history entries."""
    return build_client(test_db, history_limit=2)
