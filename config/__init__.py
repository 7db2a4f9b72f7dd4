"""
Configuration Package - Domain-Specific Configuration Modules

Structure:
    config/
    ├── __init__.py              # This file - exports and singleton
    ├── app_config.py            # Main config (composes domain configs)
    ├── database_config.py       # PostgreSQL/PostGIS
    ├── listener_config.py       # Area of interest, Service Bus topic
    ├── notification_config.py   # Subscriber notification pool
    └── defaults.py              # Default values

Usage:
    # Singleton pattern (preferred)
    from config import get_config
    config = get_config()
    aoi = config.listener.area_of_interest

    # Debug output
    from config import debug_config
    info = debug_config()  # Secrets masked
"""

import threading
from typing import Optional

from .database_config import DatabaseConfig
from .listener_config import ListenerConfig
from .notification_config import NotificationConfig
from .app_config import AppConfig
from .defaults import AppModeDefaults


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[AppConfig] = None
_config_lock = threading.Lock()


def get_config() -> AppConfig:
    """
    Get global configuration singleton.

    Returns:
        AppConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig.from_environment()
    return _config_instance


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None


def debug_config() -> dict:
    """
    Get sanitized configuration for debugging (masks sensitive values).

    Returns:
        Dictionary with configuration values, secrets masked
    """
    try:
        config = get_config()
        return {
            'app_mode': config.app_mode,
            'database': config.database.debug_dict() if config.database else None,
            'listener': config.listener.debug_dict(),
            'notification': config.notification.debug_dict(),
            'unlocode_file': config.unlocode_file,
            'debug_mode': config.debug_mode,
            'environment': config.environment,
            'log_level': config.log_level,
        }
    except Exception as e:
        return {'error': f'Configuration validation failed: {e}'}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    'AppConfig',
    'get_config',
    'reset_config',
    'debug_config',
    'AppModeDefaults',
    'DatabaseConfig',
    'ListenerConfig',
    'NotificationConfig',
]
