"""
Config test fixtures - clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    env_vars_to_clear = [
        "APP_MODE", "ENVIRONMENT", "DEBUG_MODE", "LOG_LEVEL", "UNLOCODE_FILE",
        "POSTGIS_HOST", "POSTGIS_PORT", "POSTGIS_USER", "POSTGIS_PASSWORD",
        "POSTGIS_DATABASE", "APP_SCHEMA", "POSTGIS_SSLMODE",
        "ATON_AREA_OF_INTEREST", "SERVICE_BUS_CONNECTION_STRING", "SERVICE_BUS_NAMESPACE",
        "ATON_EVENTS_TOPIC", "ATON_EVENTS_SUBSCRIPTION", "ATON_RECEIVER_COUNT",
        "NOTIFICATION_WORKERS", "NOTIFICATION_QUEUE_SIZE", "SUBSCRIBER_DIRECTORY_URL",
        "SUBSCRIBER_ENDPOINTS", "PAYLOAD_SIGNING_KEY",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def fresh_config_singleton():
    """Every test sees a config re-read from its own environment."""
    from config import reset_config
    reset_config()
    yield
    reset_config()
