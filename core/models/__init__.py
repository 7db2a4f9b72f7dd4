"""
Core Data Models Package.

Contains pure data structures without business logic.
All business logic is in the core.logic package.

Exports:
    AtonRecord, Aggregation, Association: AtoN records and groupings
    Dataset, DatasetContent, DatasetContentLog: Versioned dataset content
    SubscriptionRequest, SubscriptionNotification, DataEnvelope: Subscriptions
    ChangeEvent, AtonPublication: Pipeline events
    Enums: AtonKind, AggregationType, AssociationType, DatasetOperation, ...
"""

# Enums
from .enums import (
    AtonKind,
    AggregationType,
    AssociationType,
    DatasetOperation,
    ChangeEventKind,
    PublicationKind,
    SubscriptionEventType,
    ContainerType,
)

# AtoN models
from .aton import (
    AtonRecord,
    Aggregation,
    Association,
    AtonGrouping,
    AtonPayload,
    kind_family,
)

# Dataset models
from .dataset import (
    Dataset,
    DatasetContent,
    DatasetContentLog,
)

# Subscription models
from .subscription import (
    SubscriptionRequest,
    SubscriptionNotification,
    DataEnvelope,
)

# Events
from .events import (
    ChangeEvent,
    AtonPublication,
)

__all__ = [
    'AtonKind',
    'AggregationType',
    'AssociationType',
    'DatasetOperation',
    'ChangeEventKind',
    'PublicationKind',
    'SubscriptionEventType',
    'ContainerType',
    'AtonRecord',
    'Aggregation',
    'Association',
    'AtonGrouping',
    'AtonPayload',
    'kind_family',
    'Dataset',
    'DatasetContent',
    'DatasetContentLog',
    'SubscriptionRequest',
    'SubscriptionNotification',
    'DataEnvelope',
    'ChangeEvent',
    'AtonPublication',
]
