"""
Shared pytest fixtures.
"""

import os

# Test-only defaults, set before any gratias import reads Settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from gratias.services.claims import ClaimsSynchronizer
from tests.fakes import FakeIdentityProvider, FakeSiteRepository, FakeUserRepository


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def site_repo():
    return FakeSiteRepository()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def claims_sync(identity_provider):
    return ClaimsSynchronizer(identity_provider, capacity=20)
