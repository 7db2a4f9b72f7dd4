"""
Configuration Defaults - Single source of truth for all default values.

Organization:
    - DatabaseDefaults: PostgreSQL/PostGIS connection and schema
    - ListenerDefaults: Service Bus change-event subscription
    - NotificationDefaults: Subscriber notification pool and delivery
    - AppModeDefaults: Store selection (standalone vs postgres)
    - AppDefaults: Core application settings

Usage:
    from config.defaults import DatabaseDefaults

    # In Pydantic Field definitions:
    port: int = Field(default=DatabaseDefaults.PORT, ...)
"""


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """Database connection and schema reference values."""

    PORT = 5432
    APP_SCHEMA = "aton"
    SSLMODE = "prefer"
    CONNECTION_TIMEOUT_SECONDS = 30


# =============================================================================
# LISTENER DEFAULTS
# =============================================================================

class ListenerDefaults:
    """
    Change-event listener defaults.

    The area of interest defaults to the empty polygon, which matches
    nothing: a listener must be scoped explicitly.
    """

    AREA_OF_INTEREST = "POLYGON EMPTY"
    TOPIC = "aton-changes"
    SUBSCRIPTION = "aton-service"
    RECEIVER_COUNT = 1
    MAX_WAIT_TIME_SECONDS = 5
    MAX_MESSAGE_COUNT = 10


# =============================================================================
# NOTIFICATION DEFAULTS
# =============================================================================

class NotificationDefaults:
    """Subscriber notification defaults."""

    MAX_WORKERS = 4
    QUEUE_SIZE = 100
    DELIVERY_TIMEOUT_SECONDS = 10.0
    DIRECTORY_TIMEOUT_SECONDS = 5.0
    DATA_PRODUCT_TYPE = "S125"
    PRODUCT_VERSION = "1.0.0"


# =============================================================================
# APP MODE DEFAULTS
# =============================================================================

class AppModeDefaults:
    """
    Store selection.

    standalone: in-memory repositories (single process, tests, local runs)
    postgres: PostgreSQL/PostGIS repositories
    """

    STANDALONE = "standalone"
    POSTGRES = "postgres"

    VALID_MODES = [STANDALONE, POSTGRES]

    DEFAULT_MODE = STANDALONE


# =============================================================================
# APP DEFAULTS
# =============================================================================

class AppDefaults:
    """Core application settings."""

    DEBUG_MODE = False
    ENVIRONMENT = "dev"
    LOG_LEVEL = "INFO"
