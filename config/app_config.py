"""
Main Application Configuration.

Composes domain-specific configuration modules:
    - DatabaseConfig (PostgreSQL/PostGIS, postgres mode only)
    - ListenerConfig (area of interest, Service Bus subscription)
    - NotificationConfig (subscriber notification pool and delivery)

Exports:
    AppConfig: Main configuration class

Dependencies:
    pydantic: BaseModel for configuration validation
    config.defaults: Default value constants

Pattern:
    Composition over inheritance - domain configs are composed, not inherited.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .database_config import DatabaseConfig
from .listener_config import ListenerConfig
from .notification_config import NotificationConfig
from .defaults import AppDefaults, AppModeDefaults


# ============================================================================
# APPLICATION CONFIGURATION
# ============================================================================

class AppConfig(BaseModel):
    """
    Application configuration - composition of domain configs.
    """

    # ========================================================================
    # Core Application Settings
    # ========================================================================

    app_mode: str = Field(
        default=AppModeDefaults.DEFAULT_MODE,
        description="Store selection: 'standalone' (in-memory) or 'postgres' (PostGIS)"
    )

    debug_mode: bool = Field(
        default=AppDefaults.DEBUG_MODE,
        description="Enable debug mode for verbose diagnostics"
    )

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Environment name (dev, qa, prod)",
        examples=["dev", "qa", "prod"]
    )

    log_level: str = Field(
        default=AppDefaults.LOG_LEVEL,
        description="Logging level for application diagnostics",
        examples=["DEBUG", "INFO", "WARNING", "ERROR"]
    )

    unlocode_file: Optional[str] = Field(
        default=None,
        description="Path to the UN/LOCODE JSON map used to derive subscription geometries"
    )

    # ========================================================================
    # Domain Configurations
    # ========================================================================

    database: Optional[DatabaseConfig] = Field(
        default=None,
        description="PostgreSQL/PostGIS configuration (required in postgres mode)"
    )

    listener: ListenerConfig = Field(default_factory=ListenerConfig)

    notification: NotificationConfig = Field(default_factory=NotificationConfig)

    @field_validator('app_mode')
    @classmethod
    def validate_app_mode(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in AppModeDefaults.VALID_MODES:
            raise ValueError(f"APP_MODE must be one of {AppModeDefaults.VALID_MODES}, got '{v}'")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = (v or AppDefaults.LOG_LEVEL).upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return v

    @property
    def uses_postgres(self) -> bool:
        return self.app_mode == AppModeDefaults.POSTGRES

    @classmethod
    def from_environment(cls):
        """Load all configs from environment."""
        app_mode = os.environ.get("APP_MODE", AppModeDefaults.DEFAULT_MODE)
        return cls(
            app_mode=app_mode,
            debug_mode=os.environ.get("DEBUG_MODE", str(AppDefaults.DEBUG_MODE).lower()).lower() == "true",
            environment=os.environ.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            log_level=os.environ.get("LOG_LEVEL", AppDefaults.LOG_LEVEL),
            unlocode_file=os.environ.get("UNLOCODE_FILE"),
            # Database: only instantiate when the postgres store is selected
            database=DatabaseConfig.from_environment()
                if app_mode.strip().lower() == AppModeDefaults.POSTGRES
                else None,
            listener=ListenerConfig.from_environment(),
            notification=NotificationConfig.from_environment(),
        )
