"""
Shared fixtures: a directory, a store and a ready console wired to them.
"""

import asyncio

import pytest

from fakes import SAMPLE_ITEMS, SAMPLE_USERS, FakeDirectory, FakeStore
from saferoute.services.console import ReportsConsole
from saferoute.services.identity_cache import IdentityCache
from saferoute.settings import AdminSession, BARANGAY_ADMIN, SUPER_ADMIN


@pytest.fixture
def directory():
    return FakeDirectory(users=SAMPLE_USERS, admins=[{"email": "captain@example.com", "name": "Kap. Reyes"}])


@pytest.fixture
def store():
    return FakeStore(SAMPLE_ITEMS)


@pytest.fixture
def super_session():
    return AdminSession(role=SUPER_ADMIN, barangay="Carig Sur", admin_name="Ana Santos")


@pytest.fixture
def barangay_session():
    return AdminSession(role=BARANGAY_ADMIN, barangay="Carig Sur")


@pytest.fixture
def console(super_session, directory, store):
    c = ReportsConsole(super_session, directory, store, cache=IdentityCache())
    asyncio.run(c.refresh())
    return c
