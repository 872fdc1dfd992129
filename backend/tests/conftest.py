"""Shared test fixtures and configuration."""
import os

import pytest

# Required settings for modules that read configuration on import
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:5173")

from projecthub.auth.permission_table import reset_permission_table


@pytest.fixture(autouse=True)
def _default_permission_table():
    """Every test starts and ends on the compiled-in permission table."""
    reset_permission_table()
    yield
    reset_permission_table()
