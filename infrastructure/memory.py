"""
In-Memory Repository Implementations.

Standalone-mode storage and the backing store for the test suite. All four
repositories share one MemoryStore so that writes spanning several tables
(record + groupings, content + log + dataset) are atomic under a single
re-entrant lock, the same guarantee the PostgreSQL repositories get from a
transaction.

Values handed out are copies; mutating them never changes the store.

Exports:
    MemoryStore: Shared tables + lock
    MemoryAtonRepository: IAtonRepository
    MemoryDatasetRepository: IDatasetRepository
    MemoryDatasetContentRepository: IDatasetContentRepository
    MemorySubscriptionRepository: ISubscriptionRepository
"""

import threading
from datetime import datetime, timezone
from itertools import count
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID, uuid4

from shapely.geometry.base import BaseGeometry

from core.logic import detach_peer, diff_groupings, intersects, subscription_matches
from core.models import (
    Aggregation,
    Association,
    AtonRecord,
    Dataset,
    DatasetContent,
    DatasetContentLog,
    SubscriptionRequest,
)
from exceptions import ContentConflictError
from .base import BaseRepository
from .interface_repository import (
    IAtonRepository,
    IDatasetContentRepository,
    IDatasetRepository,
    ISubscriptionRepository,
)


class MemoryStore:
    """Tables shared by the in-memory repositories."""

    def __init__(self):
        self.lock = threading.RLock()
        self.records: Dict[str, AtonRecord] = {}
        self.aggregations: Set[Aggregation] = set()
        self.associations: Set[Association] = set()
        self.datasets: Dict[UUID, Dataset] = {}
        self.contents: Dict[UUID, DatasetContent] = {}
        self.logs: Dict[UUID, List[DatasetContentLog]] = {}
        self.subscriptions: Dict[UUID, SubscriptionRequest] = {}
        self._log_ids = count(1)

    def next_log_id(self) -> int:
        return next(self._log_ids)


class MemoryRepository(BaseRepository):
    """Base for repositories over a MemoryStore."""

    def __init__(self, store: Optional[MemoryStore] = None):
        super().__init__()
        self.store = store or MemoryStore()


# ============================================================================
# ATON RECORDS
# ============================================================================

class MemoryAtonRepository(MemoryRepository, IAtonRepository):
    """Records keyed by id_code; groupings held as peer sets."""

    def _hydrate(self, stored: AtonRecord) -> AtonRecord:
        id_code = stored.id_code
        return stored.model_copy(update={
            'aggregations': sorted(
                (g for g in self.store.aggregations if id_code in g.peers), key=lambda g: g.key
            ),
            'associations': sorted(
                (g for g in self.store.associations if id_code in g.peers), key=lambda g: g.key
            ),
        })

    def get(self, id_code: str) -> Optional[AtonRecord]:
        with self.store.lock:
            stored = self.store.records.get(id_code)
            return self._hydrate(stored) if stored else None

    def upsert(self, record: AtonRecord) -> Tuple[AtonRecord, bool]:
        self._require(record, AtonRecord, "record")
        with self._error_context("aton upsert", record.id_code):
            with self.store.lock:
                id_code = record.id_code
                created = id_code not in self.store.records

                for table, declared in (
                    (self.store.aggregations, record.aggregations),
                    (self.store.associations, record.associations),
                ):
                    existing = {g for g in table if id_code in g.peers}
                    diff = diff_groupings(existing, declared)
                    table.difference_update(diff.removed)
                    table.update(diff.created)

                self.store.records[id_code] = record.model_copy(
                    update={'aggregations': [], 'associations': []}
                )
                persisted = self._hydrate(self.store.records[id_code])

            self.logger.debug(f"💾 AtoN {'inserted' if created else 'updated'}: {id_code}")
            return persisted, created

    def delete(self, id_code: str) -> Optional[AtonRecord]:
        with self._error_context("aton delete", id_code):
            with self.store.lock:
                stored = self.store.records.get(id_code)
                if stored is None:
                    return None
                removed = self._hydrate(stored)
                del self.store.records[id_code]

                for table in (self.store.aggregations, self.store.associations):
                    touched = {g for g in table if id_code in g.peers}
                    table.difference_update(touched)
                    table.update(detach_peer(touched, id_code))

            self.logger.debug(f"🗑️ AtoN deleted: {id_code}")
            return removed

    def find_intersecting(self, geometry: Optional[BaseGeometry]) -> List[AtonRecord]:
        with self.store.lock:
            matches = [
                self._hydrate(r) for r in self.store.records.values()
                if geometry is None or intersects(r.shape, geometry)
            ]
        return sorted(matches, key=lambda r: r.id_code)

    def count(self) -> int:
        with self.store.lock:
            return len(self.store.records)


# ============================================================================
# DATASETS
# ============================================================================

class MemoryDatasetRepository(MemoryRepository, IDatasetRepository):

    def get(self, uuid: UUID) -> Optional[Dataset]:
        with self.store.lock:
            dataset = self.store.datasets.get(uuid)
            return dataset.model_copy() if dataset else None

    def save(self, dataset: Dataset) -> Dataset:
        self._require(dataset, Dataset, "dataset")
        with self.store.lock:
            return _save_dataset(self.store, dataset)

    def find_intersecting(self, geometry: Optional[BaseGeometry],
                          include_cancelled: bool = False) -> List[Dataset]:
        with self.store.lock:
            matches = [
                d.model_copy() for d in self.store.datasets.values()
                if (include_cancelled or not d.cancelled)
                and (geometry is None or intersects(d.shape, geometry))
            ]
        return sorted(matches, key=lambda d: str(d.uuid))


def _save_dataset(store: MemoryStore, dataset: Dataset) -> Dataset:
    now = datetime.now(timezone.utc)
    existing = store.datasets.get(dataset.uuid) if dataset.uuid else None
    saved = dataset.model_copy(update={
        'uuid': dataset.uuid or uuid4(),
        'created_at': dataset.created_at or (existing.created_at if existing else None) or now,
        'last_updated_at': now,
    })
    store.datasets[saved.uuid] = saved
    return saved.model_copy()


# ============================================================================
# DATASET CONTENT
# ============================================================================

class MemoryDatasetContentRepository(MemoryRepository, IDatasetContentRepository):

    def get_content(self, dataset_uuid: UUID) -> Optional[DatasetContent]:
        with self.store.lock:
            content = self.store.contents.get(dataset_uuid)
            return content.model_copy() if content else None

    def last_sequence_no(self, dataset_uuid: UUID) -> Optional[int]:
        with self.store.lock:
            entries = self.store.logs.get(dataset_uuid)
            return entries[-1].sequence_no if entries else None

    def append_version(self, log: DatasetContentLog,
                       content: Optional[DatasetContent] = None,
                       dataset: Optional[Dataset] = None,
                       remove_dataset: bool = False) -> DatasetContentLog:
        self._require(log, DatasetContentLog, "log")
        uuid = log.dataset_uuid
        with self._error_context("content version append", str(uuid)):
            with self.store.lock:
                last = self.last_sequence_no(uuid)
                expected = 0 if last is None else last + 1
                if log.sequence_no != expected:
                    raise ContentConflictError(
                        f"Dataset {uuid}: sequence {log.sequence_no} conflicts, expected {expected}"
                    )

                entry = log.model_copy(update={'id': self.store.next_log_id()})
                self.store.logs.setdefault(uuid, []).append(entry)

                if content is not None:
                    self.store.contents[uuid] = content.model_copy()
                if dataset is not None:
                    _save_dataset(self.store, dataset)
                if remove_dataset:
                    self.store.datasets.pop(uuid, None)
                    self.store.contents.pop(uuid, None)

            self.logger.debug(
                f"📝 Dataset {uuid} v{entry.sequence_no} logged ({entry.operation.value})"
            )
            return entry

    def logs(self, dataset_uuid: UUID,
             start: Optional[datetime] = None,
             end: Optional[datetime] = None,
             newest_first: bool = False) -> List[DatasetContentLog]:
        with self.store.lock:
            entries = [
                e for e in self.store.logs.get(dataset_uuid, [])
                if (start is None or e.generated_at >= start)
                and (end is None or e.generated_at <= end)
            ]
        if newest_first:
            entries.reverse()
        return entries

    def log_at(self, dataset_uuid: UUID, sequence_no: int) -> Optional[DatasetContentLog]:
        with self.store.lock:
            for entry in self.store.logs.get(dataset_uuid, []):
                if entry.sequence_no == sequence_no:
                    return entry
        return None


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

class MemorySubscriptionRepository(MemoryRepository, ISubscriptionRepository):

    def get(self, uuid: UUID) -> Optional[SubscriptionRequest]:
        with self.store.lock:
            sub = self.store.subscriptions.get(uuid)
            return sub.model_copy() if sub else None

    def find_by_client(self, client_mrn: str) -> Optional[SubscriptionRequest]:
        with self.store.lock:
            for sub in self.store.subscriptions.values():
                if sub.client_mrn == client_mrn:
                    return sub.model_copy()
        return None

    def replace_for_client(self, subscription: SubscriptionRequest) -> Tuple[SubscriptionRequest, Optional[SubscriptionRequest]]:
        self._require(subscription, SubscriptionRequest, "subscription")
        with self._error_context("subscription replace", subscription.client_mrn):
            with self.store.lock:
                superseded = self.find_by_client(subscription.client_mrn)
                if superseded is not None:
                    del self.store.subscriptions[superseded.uuid]

                saved = subscription.model_copy(update={
                    'uuid': subscription.uuid or uuid4(),
                    'created_at': subscription.created_at or datetime.now(timezone.utc),
                })
                self.store.subscriptions[saved.uuid] = saved
            return saved.model_copy(), superseded

    def delete(self, uuid: UUID) -> Optional[SubscriptionRequest]:
        with self.store.lock:
            return self.store.subscriptions.pop(uuid, None)

    def find_matching(self, geometry: Optional[BaseGeometry],
                      from_time: Optional[datetime],
                      to_time: Optional[datetime]) -> List[SubscriptionRequest]:
        with self.store.lock:
            matches = [
                s.model_copy() for s in self.store.subscriptions.values()
                if subscription_matches(s, geometry, from_time, to_time)
            ]
        return sorted(matches, key=lambda s: str(s.uuid))
