"""
Repository and Capability Abstract Base Classes - Single Point of Truth.

Enforces exact method signatures across all repository implementations
(PostgreSQL and in-memory) and across the external capabilities the
pipeline depends on (event source, delivery, directory, serialization,
signing).

Philosophy: "Define once, enforce everywhere"

Exports:
    IAtonRepository: AtoN record store (records + grouping tables)
    IDatasetRepository: Dataset definitions
    IDatasetContentRepository: Current content + append-only content log
    ISubscriptionRepository: Subscription requests
    IEventSource: Inbound change event stream
    IChangeListener: Callback registered with an event source
    IDeliveryClient: Outbound delivery capability
    ISubscriberDirectory: Client MRN -> endpoint lookup
    IContentSerializer: Records -> content
    IPayloadSigner: Content -> signature
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from shapely.geometry.base import BaseGeometry

from core.models import (
    AtonRecord,
    ChangeEvent,
    Dataset,
    DatasetContent,
    DatasetContentLog,
    SubscriptionNotification,
    SubscriptionRequest,
)


# ============================================================================
# REPOSITORIES
# ============================================================================

class IAtonRepository(ABC):
    """
    AtoN record store.

    Records are keyed by id_code. Groupings are stored separately and
    reference their peers by id_code.
    """

    @abstractmethod
    def get(self, id_code: str) -> Optional[AtonRecord]:
        """Get a record (with its groupings) by identifier code"""
        pass

    @abstractmethod
    def upsert(self, record: AtonRecord) -> Tuple[AtonRecord, bool]:
        """
        Insert or replace a record and reconcile its grouping membership in
        one transaction. Returns (persisted record, created).
        """
        pass

    @abstractmethod
    def delete(self, id_code: str) -> Optional[AtonRecord]:
        """
        Remove a record and detach it from its groupings in one transaction.
        Returns the removed record, None when absent.
        """
        pass

    @abstractmethod
    def find_intersecting(self, geometry: Optional[BaseGeometry]) -> List[AtonRecord]:
        """Records whose geometry intersects (inclusive), ordered by id_code. None = all"""
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class IDatasetRepository(ABC):
    """Dataset definitions."""

    @abstractmethod
    def get(self, uuid: UUID) -> Optional[Dataset]:
        pass

    @abstractmethod
    def save(self, dataset: Dataset) -> Dataset:
        """Insert or update; assigns uuid and timestamps"""
        pass

    @abstractmethod
    def find_intersecting(self, geometry: Optional[BaseGeometry],
                          include_cancelled: bool = False) -> List[Dataset]:
        """Datasets whose bounding geometry intersects (inclusive). None = all"""
        pass


class IDatasetContentRepository(ABC):
    """
    Current dataset content plus the append-only content log.

    append_version is the only write path and is atomic.
    """

    @abstractmethod
    def get_content(self, dataset_uuid: UUID) -> Optional[DatasetContent]:
        pass

    @abstractmethod
    def last_sequence_no(self, dataset_uuid: UUID) -> Optional[int]:
        """Highest logged sequence number, None when nothing was logged"""
        pass

    @abstractmethod
    def append_version(self, log: DatasetContentLog,
                       content: Optional[DatasetContent] = None,
                       dataset: Optional[Dataset] = None,
                       remove_dataset: bool = False) -> DatasetContentLog:
        """
        Atomically append ``log`` and, in the same transaction:
            - replace the current content with ``content`` when given
            - save ``dataset`` when given (e.g. cancellation flag)
            - remove the dataset and its current content when remove_dataset

        Raises ContentConflictError when log.sequence_no is not exactly one
        past the last logged sequence number (0 for the first entry).
        Nothing is written on failure.
        """
        pass

    @abstractmethod
    def logs(self, dataset_uuid: UUID,
             start: Optional[datetime] = None,
             end: Optional[datetime] = None,
             newest_first: bool = False) -> List[DatasetContentLog]:
        """Log entries with start <= generated_at <= end (None = open)"""
        pass

    @abstractmethod
    def log_at(self, dataset_uuid: UUID, sequence_no: int) -> Optional[DatasetContentLog]:
        pass


class ISubscriptionRepository(ABC):
    """Subscription requests. At most one per client_mrn."""

    @abstractmethod
    def get(self, uuid: UUID) -> Optional[SubscriptionRequest]:
        pass

    @abstractmethod
    def find_by_client(self, client_mrn: str) -> Optional[SubscriptionRequest]:
        pass

    @abstractmethod
    def replace_for_client(self, subscription: SubscriptionRequest) -> Tuple[SubscriptionRequest, Optional[SubscriptionRequest]]:
        """
        Remove any subscription of the same client and insert this one, in one
        transaction. Returns (saved, superseded).
        """
        pass

    @abstractmethod
    def delete(self, uuid: UUID) -> Optional[SubscriptionRequest]:
        """Returns the removed subscription, None when absent"""
        pass

    @abstractmethod
    def find_matching(self, geometry: Optional[BaseGeometry],
                      from_time: Optional[datetime],
                      to_time: Optional[datetime]) -> List[SubscriptionRequest]:
        """Intersecting + window-overlapping subscriptions ordered by uuid"""
        pass


# ============================================================================
# EXTERNAL CAPABILITIES
# ============================================================================

class IChangeListener(ABC):
    """Callback registered with an IEventSource."""

    @abstractmethod
    def on_event(self, event: ChangeEvent) -> None:
        pass


class IEventSource(ABC):
    """
    Inbound change event stream.

    Implementations may call listeners from several threads at once.
    """

    @abstractmethod
    def add_listener(self, listener: IChangeListener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, listener: IChangeListener) -> bool:
        """Returns False when the listener was not registered"""
        pass


class IDeliveryClient(ABC):
    """Outbound delivery. Implementations raise DeliveryFailureError."""

    @abstractmethod
    def deliver(self, endpoint: str, payload: dict) -> None:
        pass

    @abstractmethod
    def send_subscription_notification(self, endpoint: str,
                                       notification: SubscriptionNotification) -> None:
        pass


class ISubscriberDirectory(ABC):
    """Resolve a client's delivery endpoint."""

    @abstractmethod
    def resolve_endpoint(self, client_mrn: str) -> Optional[str]:
        """None when the client has no resolvable endpoint"""
        pass


class IContentSerializer(ABC):
    """Records -> deterministic content text."""

    @abstractmethod
    def serialize(self, dataset: Dataset, records: Iterable[AtonRecord]) -> str:
        """Full dataset content. Same inputs must give byte-identical output"""
        pass

    @abstractmethod
    def serialize_records(self, records: Iterable[AtonRecord]) -> str:
        """Bare record collection, used for subscriber payloads"""
        pass


class IPayloadSigner(ABC):
    """Content -> signature."""

    scheme: str = "NONE"

    @abstractmethod
    def sign(self, content: str) -> str:
        pass
