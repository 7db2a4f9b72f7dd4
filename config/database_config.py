"""
PostgreSQL/PostGIS Database Configuration.

Holds connection settings for the record/content/subscription store.
PostGIS is required for the spatial predicates (ST_Intersects).

Exports:
    DatabaseConfig: Database configuration
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

class DatabaseConfig(BaseModel):
    """
    PostgreSQL/PostGIS configuration (password authentication).
    """

    host: str = Field(
        ...,
        description="PostgreSQL server hostname",
        examples=["localhost"]
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: Optional[str] = Field(
        default=None,
        description="PostgreSQL username"
    )

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="PostgreSQL password from POSTGIS_PASSWORD environment variable"
    )

    database: str = Field(
        ...,
        description="PostgreSQL database name",
        examples=["aton"]
    )

    app_schema: str = Field(
        default=DatabaseDefaults.APP_SCHEMA,
        description="Schema holding aton_records, datasets, content logs and subscriptions"
    )

    sslmode: str = Field(
        default=DatabaseDefaults.SSLMODE,
        description="libpq sslmode"
    )

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
        description="Connection timeout in seconds"
    )

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        if not self.user:
            raise ValueError("POSTGIS_USER is required for password authentication")
        password_part = f" password={self.password}" if self.password else ""
        return (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user}{password_part} sslmode={self.sslmode} "
            f"connect_timeout={self.connection_timeout_seconds}"
        )

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "app_schema": self.app_schema,
            "sslmode": self.sslmode,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            host=os.environ["POSTGIS_HOST"],
            port=int(os.environ.get("POSTGIS_PORT", str(DatabaseDefaults.PORT))),
            user=os.environ.get("POSTGIS_USER"),
            password=os.environ.get("POSTGIS_PASSWORD"),
            database=os.environ["POSTGIS_DATABASE"],
            app_schema=os.environ.get("APP_SCHEMA", DatabaseDefaults.APP_SCHEMA),
            sslmode=os.environ.get("POSTGIS_SSLMODE", DatabaseDefaults.SSLMODE),
            connection_timeout_seconds=int(os.environ.get("DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS))),
        )
