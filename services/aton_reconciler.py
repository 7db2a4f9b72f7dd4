"""
AtoN Reconciler - Record Store Writes.

Upserts and deletes AtoN aggregates (record + grouping membership) by
identifier code under a per-identifier mutex, then emits a publication for
the content engine and the subscription notifier.

Concurrency:
    Operations on the same id_code serialize in lock-grant order.
    Different id_codes run fully in parallel; there is no global lock.
    The publication is emitted while the key is still held, so publications
    for one id_code follow the same order as the writes.

Exports:
    AtonReconciler: upsert / delete / get
"""

from typing import Optional

from core.concurrency import KeyedLock
from core.models import AtonPublication, AtonRecord, DatasetOperation, PublicationKind
from exceptions import ContractViolationError, ResourceNotFoundError
from infrastructure.interface_repository import IAtonRepository
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "AtonReconciler")


class AtonReconciler:
    """
    Single writer per AtoN identifier code.

    Args:
        aton_repo: Record store
        channel: PublicationChannel (or anything with publish(publication))
        locks: Optional shared KeyedLock
    """

    def __init__(self, aton_repo: IAtonRepository, channel, locks: Optional[KeyedLock] = None):
        self.aton_repo = aton_repo
        self.channel = channel
        self.locks = locks or KeyedLock()

    def get(self, id_code: str) -> AtonRecord:
        record = self.aton_repo.get(id_code)
        if record is None:
            raise ResourceNotFoundError(f"AtoN {id_code} not found")
        return record

    def upsert(self, record: AtonRecord,
               operation: DatasetOperation = DatasetOperation.AUTO) -> AtonRecord:
        """
        Insert or replace a record by id_code, including its grouping
        membership. Returns the persisted record.

        The publication's operation is the caller's hint, or CREATED/UPDATED
        from the store when the hint is AUTO.
        """
        if not isinstance(record, AtonRecord):
            raise ContractViolationError(f"upsert expects AtonRecord, got {type(record).__name__}")

        with self.locks.hold(record.id_code):
            previous = self.aton_repo.get(record.id_code)
            persisted, created = self.aton_repo.upsert(record)

            if operation == DatasetOperation.AUTO:
                operation = DatasetOperation.CREATED if created else DatasetOperation.UPDATED

            logger.info(
                f"✅ AtoN {persisted.id_code} {'created' if created else 'updated'}",
                extra={'custom_dimensions': {
                    'id_code': persisted.id_code,
                    'aton_kind': persisted.kind.value,
                    'operation': operation.value,
                }}
            )
            self.channel.publish(AtonPublication(
                kind=PublicationKind.PUBLISHED,
                record=persisted,
                operation=operation,
                previous=previous,
            ))
        return persisted

    def delete(self, id_code: str) -> AtonRecord:
        """
        Remove a record by id_code and detach it from its groupings.

        Raises:
            ResourceNotFoundError: nothing stored under id_code; nothing is
                published
        """
        with self.locks.hold(id_code):
            removed = self.aton_repo.delete(id_code)
            if removed is None:
                raise ResourceNotFoundError(f"AtoN {id_code} not found")

            logger.info(
                f"🗑️ AtoN {id_code} deleted",
                extra={'custom_dimensions': {'id_code': id_code}}
            )
            self.channel.publish(AtonPublication(
                kind=PublicationKind.DELETED,
                record=removed,
                operation=DatasetOperation.DELETED,
            ))
        return removed
