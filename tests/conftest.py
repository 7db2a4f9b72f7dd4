"""
Root conftest.py - sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without database connections or Azure credentials.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables to prevent import crashes.

    Standalone mode keeps every repository in memory, so no PostGIS or
    Service Bus is needed.
    """
    defaults = {
        "APP_MODE": "standalone",
        "ENVIRONMENT": "dev",
        "ATON_AREA_OF_INTEREST": "POLYGON ((-10 45, 10 45, 10 65, -10 65, -10 45))",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def memory_repos():
    """Fresh in-memory repositories sharing one store."""
    from infrastructure.factory import RepositoryFactory
    return RepositoryFactory.create_memory_repositories()
