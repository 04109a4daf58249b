"""Pytest configuration and fixtures."""

import os

# Keep settings independent from a developer's .env
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from tests.fakes import FakeSupabase, invitation_handler, seed_catalog, seed_project

PROJECT_ID = "project-1"
OWNER_ID = "owner-1"


@pytest.fixture
def store():
    """Fake store with the module catalog, one project and a working invitation RPC."""
    fake = FakeSupabase()
    seed_catalog(fake)
    seed_project(fake, PROJECT_ID, OWNER_ID)
    fake.rpc_handlers["send_project_invitation"] = invitation_handler()
    return fake


@pytest.fixture(autouse=True)
def _reset_auth_cache():
    from app.modules.auth.service import clear_auth_cache
    clear_auth_cache()
    yield
    clear_auth_cache()
