"""
Dataset Content Engine - Versioned Dataset Content.

Owns the per-dataset content version sequence. Every version is one atomic
append: the new current content and a content log entry with
sequence_no = previous + 1 (0 for the first), or nothing at all.

Regeneration (request_content_update):
    1. Load the dataset, reject with DatasetCancelledError when cancelled
    2. Enumerate the records intersecting the dataset geometry
    3. Serialize the full content
    4. Delta against the current content (empty for sequence 0)
    5. Append content + log entry in one transaction

Concurrency:
    SingleFlight per dataset UUID collapses concurrent requests: requests
    arriving during a pass share exactly one follow-up pass.
    A KeyedLock per UUID serializes regeneration, cancellation and deletion,
    so sequence numbers are assigned by one writer at a time.
    Different datasets regenerate in parallel.

Exports:
    DatasetContentEngine
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from core.concurrency import KeyedLock, SingleFlight
from core.errors import error_dimensions
from core.logic import compute_delta, record_matches_dataset
from core.models import (
    AtonPublication,
    AtonRecord,
    Dataset,
    DatasetContent,
    DatasetContentLog,
    DatasetOperation,
)
from exceptions import BusinessLogicError, DatasetCancelledError, ResourceNotFoundError
from infrastructure.interface_repository import (
    IAtonRepository,
    IContentSerializer,
    IDatasetContentRepository,
    IDatasetRepository,
)
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "DatasetContentEngine")


class DatasetContentEngine:
    """
    Versioned content for datasets.

    The content log is the historical truth; DatasetContent is just the
    latest entry kept alongside for fast reads.
    """

    def __init__(self,
                 dataset_repo: IDatasetRepository,
                 aton_repo: IAtonRepository,
                 content_repo: IDatasetContentRepository,
                 serializer: IContentSerializer):
        self.dataset_repo = dataset_repo
        self.aton_repo = aton_repo
        self.content_repo = content_repo
        self.serializer = serializer
        self._flights = SingleFlight()
        self._locks = KeyedLock()

    # ========================================================================
    # VERSION WRITES
    # ========================================================================

    def _load_writable(self, uuid: UUID) -> Dataset:
        dataset = self.dataset_repo.get(uuid)
        if dataset is None:
            raise ResourceNotFoundError(f"Dataset {uuid} not found")
        if dataset.cancelled:
            raise DatasetCancelledError(f"Dataset {uuid} is cancelled")
        return dataset

    def _next_sequence_no(self, uuid: UUID) -> int:
        last = self.content_repo.last_sequence_no(uuid)
        return 0 if last is None else last + 1

    def request_content_update(self, uuid: UUID,
                               operation: DatasetOperation = DatasetOperation.AUTO) -> DatasetContentLog:
        """
        Regenerate a dataset's content and append a version.

        A cancelled dataset is rejected before anything is queued. Callers
        arriving while a pass runs share the next pass and get its entry.

        Raises:
            ResourceNotFoundError: unknown dataset
            DatasetCancelledError: dataset is cancelled
        """
        self._load_writable(uuid)
        return self._flights.do(uuid, lambda: self._regenerate(uuid, operation))

    def _regenerate(self, uuid: UUID, operation: DatasetOperation) -> DatasetContentLog:
        with self._locks.hold(uuid):
            dataset = self._load_writable(uuid)

            records = self.aton_repo.find_intersecting(dataset.shape)
            content = self.serializer.serialize(dataset, records)

            current = self.content_repo.get_content(uuid)
            sequence_no = self._next_sequence_no(uuid)

            if operation == DatasetOperation.AUTO:
                operation = DatasetOperation.CREATED if current is None else DatasetOperation.UPDATED

            previous = current.content if current is not None else None
            delta = compute_delta(previous, content, label=str(uuid)) if sequence_no > 0 else ""
            generated_at = datetime.now(timezone.utc)

            entry = self.content_repo.append_version(
                DatasetContentLog(
                    dataset_uuid=uuid,
                    sequence_no=sequence_no,
                    operation=operation,
                    generated_at=generated_at,
                    content=content,
                    content_length=len(content),
                    delta=delta,
                    delta_length=len(delta),
                    geometry=dataset.geometry,
                ),
                content=DatasetContent(
                    dataset_uuid=uuid,
                    sequence_no=sequence_no,
                    generated_at=generated_at,
                    content=content,
                    content_length=len(content),
                    delta=delta,
                    delta_length=len(delta),
                ),
            )

        logger.info(
            f"📦 Dataset {uuid} v{entry.sequence_no} {entry.operation.value} "
            f"({len(records)} records, delta {entry.delta_length} chars)",
            extra={'custom_dimensions': {
                'dataset_uuid': str(uuid),
                'sequence_no': entry.sequence_no,
                'operation': entry.operation.value,
                'record_count': len(records),
            }}
        )
        return entry

    def _withdrawal(self, uuid: UUID, operation: DatasetOperation, dataset: Dataset) -> DatasetContentLog:
        current = self.content_repo.get_content(uuid)
        return DatasetContentLog(
            dataset_uuid=uuid,
            sequence_no=self._next_sequence_no(uuid),
            operation=operation,
            content=current.content if current else None,
            content_length=current.content_length if current else 0,
            delta="",
            delta_length=0,
            geometry=dataset.geometry,
        )

    def cancel_dataset(self, uuid: UUID) -> DatasetContentLog:
        """
        Append a CANCELLED entry and set the cancellation flag atomically.

        Raises:
            ResourceNotFoundError: unknown dataset
            DatasetCancelledError: already cancelled
        """
        with self._locks.hold(uuid):
            dataset = self._load_writable(uuid)
            entry = self.content_repo.append_version(
                self._withdrawal(uuid, DatasetOperation.CANCELLED, dataset),
                dataset=dataset.model_copy(update={'cancelled': True}),
            )
        logger.info(
            f"🚫 Dataset {uuid} cancelled at v{entry.sequence_no}",
            extra={'custom_dimensions': {'dataset_uuid': str(uuid), 'sequence_no': entry.sequence_no}}
        )
        return entry

    def delete_dataset(self, uuid: UUID) -> DatasetContentLog:
        """
        Append a DELETED entry and remove the dataset and its current content.
        The content log is kept.

        Raises:
            ResourceNotFoundError: unknown dataset
        """
        with self._locks.hold(uuid):
            dataset = self.dataset_repo.get(uuid)
            if dataset is None:
                raise ResourceNotFoundError(f"Dataset {uuid} not found")
            entry = self.content_repo.append_version(
                self._withdrawal(uuid, DatasetOperation.DELETED, dataset),
                remove_dataset=True,
            )
        logger.info(
            f"🗑️ Dataset {uuid} deleted at v{entry.sequence_no}",
            extra={'custom_dimensions': {'dataset_uuid': str(uuid), 'sequence_no': entry.sequence_no}}
        )
        return entry

    # ========================================================================
    # QUERIES
    # ========================================================================

    def logs_for(self, uuid: UUID, at_or_before: datetime) -> List[DatasetContentLog]:
        """Entries generated at or before the given time, most recent first."""
        return self.content_repo.logs(uuid, end=at_or_before, newest_first=True)

    def logs_during(self, uuid: UUID, from_time: Optional[datetime],
                    to_time: Optional[datetime]) -> List[DatasetContentLog]:
        """Entries generated within [from_time, to_time], oldest first."""
        return self.content_repo.logs(uuid, start=from_time, end=to_time)

    def initial_for(self, uuid: UUID) -> DatasetContentLog:
        entry = self.content_repo.log_at(uuid, 0)
        if entry is None:
            raise ResourceNotFoundError(f"Dataset {uuid} has no initial content")
        return entry

    def deltas(self, uuid: UUID) -> List[DatasetContentLog]:
        """Every entry after the initial one, oldest first."""
        return [e for e in self.content_repo.logs(uuid) if e.sequence_no > 0]

    def latest_content(self, uuid: UUID, at: Optional[datetime] = None) -> DatasetContent:
        """
        Current content, or the content as of ``at``.

        Without ``at``, a dataset that never generated content gets its
        initial version generated now.
        """
        if at is not None:
            entries = self.logs_for(uuid, at)
            if not entries:
                raise ResourceNotFoundError(f"Dataset {uuid} has no content at {at.isoformat()}")
            entry = entries[0]
            return DatasetContent(
                dataset_uuid=uuid,
                sequence_no=entry.sequence_no,
                generated_at=entry.generated_at,
                content=entry.content,
                content_length=entry.content_length,
                delta=entry.delta,
                delta_length=entry.delta_length,
            )

        content = self.content_repo.get_content(uuid)
        if content is None:
            self.request_content_update(uuid)
            content = self.content_repo.get_content(uuid)
        return content

    # ========================================================================
    # PUBLICATION FAN-OUT
    # ========================================================================

    def matching_datasets(self, record: AtonRecord, as_of: Optional[datetime] = None) -> List[Dataset]:
        """Non-cancelled datasets whose geometry intersects the record while it is valid at as_of."""
        if record.shape is None:
            return []
        as_of = as_of or datetime.now(timezone.utc)
        return [
            d for d in self.dataset_repo.find_intersecting(record.shape)
            if record_matches_dataset(record, d, as_of)
        ]

    def containing_datasets(self, record: AtonRecord) -> List[Dataset]:
        """Non-cancelled datasets whose content can hold the record, whatever its validity."""
        if record.shape is None:
            return []
        return self.dataset_repo.find_intersecting(record.shape)

    def handle_publication(self, publication: AtonPublication) -> List[UUID]:
        """
        Regenerate every dataset the published record (or the version it
        replaced) belongs to, then resolve ``publication.datasets``.

        Deleted records and replaced versions are matched by geometry alone,
        since content holds them regardless of their validity window.

        A dataset that gets cancelled or removed meanwhile is logged and
        skipped.
        """
        try:
            as_of = datetime.now(timezone.utc)
            if publication.deletion:
                current = self.containing_datasets(publication.record)
            else:
                current = self.matching_datasets(publication.record, as_of)
            matched = {d.uuid: d for d in current}
            if publication.previous is not None:
                for d in self.containing_datasets(publication.previous):
                    matched.setdefault(d.uuid, d)

            updated: List[UUID] = []
            for uuid in sorted(matched, key=str):
                try:
                    self.request_content_update(uuid)
                    updated.append(uuid)
                except BusinessLogicError as e:
                    logger.warning(
                        f"⚠️ Dataset {uuid} skipped for {publication.record.id_code}: {e}",
                        extra={'custom_dimensions': {
                            'dataset_uuid': str(uuid),
                            'id_code': publication.record.id_code,
                            **error_dimensions(e),
                        }}
                    )
        except Exception as e:
            publication.datasets.set_exception(e)
            raise

        publication.datasets.set_result(updated)
        return updated
