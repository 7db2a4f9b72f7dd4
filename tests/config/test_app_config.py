"""
AppConfig and domain config tests - environment loading, validation,
secret masking.
"""

import pytest
from pydantic import ValidationError

from config import AppConfig, DatabaseConfig, ListenerConfig, NotificationConfig, debug_config, get_config


class TestAppConfig:

    def test_defaults(self, clean_env):
        config = AppConfig.from_environment()
        assert config.app_mode == "standalone"
        assert config.database is None
        assert not config.uses_postgres
        assert config.listener.area_of_interest == "POLYGON EMPTY"

    def test_postgres_mode_loads_database(self, clean_env):
        clean_env.setenv("APP_MODE", "postgres")
        clean_env.setenv("POSTGIS_HOST", "db.test")
        clean_env.setenv("POSTGIS_DATABASE", "aton")
        clean_env.setenv("POSTGIS_USER", "svc")
        config = AppConfig.from_environment()
        assert config.uses_postgres
        assert config.database.host == "db.test"
        assert "dbname=aton" in config.database.connection_string

    def test_invalid_mode(self, clean_env):
        with pytest.raises(ValidationError):
            AppConfig(app_mode="cloud")

    def test_log_level_normalized(self, clean_env):
        assert AppConfig(log_level="debug").log_level == "DEBUG"

    def test_singleton(self, clean_env):
        assert get_config() is get_config()

    def test_debug_config_masks_secrets(self, clean_env):
        clean_env.setenv("SERVICE_BUS_CONNECTION_STRING", "Endpoint=sb://secret/")
        clean_env.setenv("PAYLOAD_SIGNING_KEY", "hunter2")
        info = debug_config()
        assert info["listener"]["connection"] == "***MASKED***"
        assert info["notification"]["signing_key"] == "***MASKED***"
        assert "hunter2" not in str(info)


class TestListenerConfig:

    def test_blank_area_becomes_empty_polygon(self):
        assert ListenerConfig(area_of_interest="  ").area_of_interest == "POLYGON EMPTY"

    def test_service_bus_detection(self):
        assert not ListenerConfig().has_service_bus
        assert ListenerConfig(namespace="ns.servicebus.windows.net").has_service_bus

    def test_receiver_count_bounds(self):
        with pytest.raises(ValidationError):
            ListenerConfig(receiver_count=0)


class TestNotificationConfig:

    def test_static_endpoints_parsed(self, clean_env):
        clean_env.setenv("SUBSCRIBER_ENDPOINTS", "urn:a=https://a.test; urn:b=https://b.test;junk")
        config = NotificationConfig.from_environment()
        assert config.static_endpoints == {"urn:a": "https://a.test", "urn:b": "https://b.test"}

    def test_queue_size_positive(self):
        with pytest.raises(ValidationError):
            NotificationConfig(queue_size=0)


class TestDatabaseConfig:

    def test_user_required_for_connection_string(self):
        with pytest.raises(ValueError):
            DatabaseConfig(host="h", database="d").connection_string

    def test_password_masked(self):
        config = DatabaseConfig(host="h", database="d", user="u", password="p")
        assert config.debug_dict()["password"] == "***MASKED***"
        assert "password=p" in config.connection_string
