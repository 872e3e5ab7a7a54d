"""Pytest bootstrap for backend test runs.

Configures the environment before any ``tailauth`` module reads settings,
so the module-level engine points at the test SQLite file.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_tailauth.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["APP_ENV"] = "test"

import pytest

from tailauth.core.config import settings


@pytest.fixture(scope="session", autouse=True)
def force_testing_mode():
    """Force TESTING=True early in the test session."""
    settings.TESTING = True


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"
