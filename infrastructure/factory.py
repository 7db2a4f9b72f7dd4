"""
Repository Factory - Central Creation Point

Single point of repository and adapter instantiation. APP_MODE decides the
storage backend:

    standalone  -> in-memory repositories sharing one MemoryStore
    postgres    -> PostgreSQL/PostGIS repositories

Usage:
    repos = RepositoryFactory.create_repositories(config)
    aton_repo = repos['aton_repo']
"""

from typing import Any, Dict, Optional

from config import AppConfig, AppModeDefaults
from exceptions import ConfigurationError
from util_logger import LoggerFactory, ComponentType
from .delivery_client import HttpDeliveryClient, HttpSubscriberDirectory, StaticSubscriberDirectory
from .interface_repository import ISubscriberDirectory
from .memory import (
    MemoryAtonRepository,
    MemoryDatasetContentRepository,
    MemoryDatasetRepository,
    MemoryStore,
    MemorySubscriptionRepository,
)
from .postgresql import (
    PostgreSQLAtonRepository,
    PostgreSQLDatasetContentRepository,
    PostgreSQLDatasetRepository,
    PostgreSQLSubscriptionRepository,
)

logger = LoggerFactory.create_logger(ComponentType.FACTORY, "RepositoryFactory")


# ============================================================================
# REPOSITORY FACTORY - Central creation point
# ============================================================================

class RepositoryFactory:
    """
    Factory for creating repository and adapter instances.

    Returned dictionaries always carry the same keys whatever the backend:
    aton_repo, dataset_repo, content_repo, subscription_repo.
    """

    @staticmethod
    def create_memory_repositories(store: Optional[MemoryStore] = None) -> Dict[str, Any]:
        """In-memory repositories sharing one store (atomic cross-table writes)."""
        store = store or MemoryStore()
        logger.info("🏭 Creating in-memory repositories")
        return {
            'aton_repo': MemoryAtonRepository(store),
            'dataset_repo': MemoryDatasetRepository(store),
            'content_repo': MemoryDatasetContentRepository(store),
            'subscription_repo': MemorySubscriptionRepository(store),
        }

    @staticmethod
    def create_postgres_repositories(config: AppConfig) -> Dict[str, Any]:
        if config.database is None:
            raise ConfigurationError("APP_MODE=postgres requires POSTGIS_HOST and POSTGIS_DATABASE")
        logger.info(
            f"🏭 Creating PostgreSQL repositories on "
            f"{config.database.host}/{config.database.database} (schema {config.database.app_schema})"
        )
        return {
            'aton_repo': PostgreSQLAtonRepository(config.database),
            'dataset_repo': PostgreSQLDatasetRepository(config.database),
            'content_repo': PostgreSQLDatasetContentRepository(config.database),
            'subscription_repo': PostgreSQLSubscriptionRepository(config.database),
        }

    @staticmethod
    def create_repositories(config: AppConfig) -> Dict[str, Any]:
        """Repositories for the configured APP_MODE."""
        if config.app_mode == AppModeDefaults.POSTGRES:
            return RepositoryFactory.create_postgres_repositories(config)
        return RepositoryFactory.create_memory_repositories()

    @staticmethod
    def create_delivery_client(config: AppConfig) -> HttpDeliveryClient:
        return HttpDeliveryClient(timeout=config.notification.delivery_timeout_seconds)

    @staticmethod
    def create_subscriber_directory(config: AppConfig) -> ISubscriberDirectory:
        """Registry lookup when SUBSCRIBER_DIRECTORY_URL is set, static mapping otherwise."""
        notification = config.notification
        if notification.directory_url:
            logger.info(f"📇 Subscriber directory: {notification.directory_url}")
            return HttpSubscriberDirectory(
                notification.directory_url,
                timeout=notification.directory_timeout_seconds
            )
        logger.info(f"📇 Static subscriber directory ({len(notification.static_endpoints)} endpoint(s))")
        return StaticSubscriberDirectory(notification.static_endpoints)
