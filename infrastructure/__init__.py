"""
Infrastructure Package - Lazy Loading Implementation.

Provides the repository and adapter implementations with lazy loading, so
importing the package never pulls in psycopg, azure-servicebus or httpx,
never reads the environment and never creates loggers until a class is
actually used.

    from infrastructure import RepositoryFactory     # imports factory now
    from infrastructure import ServiceBusEventSource # imports azure now

__getattr__ intercepts the first access to a name and imports its module.
"""

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .factory import RepositoryFactory as _RepositoryFactory
    from .base import BaseRepository as _BaseRepository
    from .memory import MemoryStore as _MemoryStore
    from .postgresql import PostgreSQLRepository as _PostgreSQLRepository
    from .service_bus import ServiceBusEventSource as _ServiceBusEventSource
    from .event_source import LocalEventSource as _LocalEventSource


_LAZY_EXPORTS = {
    # Factory
    "RepositoryFactory": ".factory",

    # Repository bases
    "BaseRepository": ".base",
    "PostgreSQLRepository": ".postgresql",

    # In-memory repositories
    "MemoryStore": ".memory",
    "MemoryAtonRepository": ".memory",
    "MemoryDatasetRepository": ".memory",
    "MemoryDatasetContentRepository": ".memory",
    "MemorySubscriptionRepository": ".memory",

    # PostgreSQL repositories
    "PostgreSQLAtonRepository": ".postgresql",
    "PostgreSQLDatasetRepository": ".postgresql",
    "PostgreSQLDatasetContentRepository": ".postgresql",
    "PostgreSQLSubscriptionRepository": ".postgresql",

    # Schema
    "SchemaGenerator": ".schema",
    "deploy_schema": ".schema",

    # Event sources
    "LocalEventSource": ".event_source",
    "ServiceBusEventSource": ".service_bus",

    # Outbound HTTP
    "HttpDeliveryClient": ".delivery_client",
    "HttpSubscriberDirectory": ".delivery_client",
    "StaticSubscriberDirectory": ".delivery_client",

    # Interfaces
    "IAtonRepository": ".interface_repository",
    "IDatasetRepository": ".interface_repository",
    "IDatasetContentRepository": ".interface_repository",
    "ISubscriptionRepository": ".interface_repository",
    "IEventSource": ".interface_repository",
    "IChangeListener": ".interface_repository",
    "IDeliveryClient": ".interface_repository",
    "ISubscriberDirectory": ".interface_repository",
    "IContentSerializer": ".interface_repository",
    "IPayloadSigner": ".interface_repository",
}


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    return getattr(import_module(module_name, __name__), name)


__all__ = list(_LAZY_EXPORTS)
