"""
Dataset Service - Dataset Definitions.

CRUD over dataset definitions. Anything that writes a content version
(cancel, delete) goes through the DatasetContentEngine so the version
sequence keeps a single writer.

Exports:
    DatasetService
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from shapely.geometry.base import BaseGeometry

from core.models import AtonRecord, Dataset, DatasetContentLog
from exceptions import ContractViolationError, ResourceNotFoundError
from infrastructure.interface_repository import IDatasetRepository
from util_logger import LoggerFactory, ComponentType
from .dataset_content_engine import DatasetContentEngine

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "DatasetService")


class DatasetService:

    def __init__(self, dataset_repo: IDatasetRepository, content_engine: DatasetContentEngine):
        self.dataset_repo = dataset_repo
        self.content_engine = content_engine

    def save(self, dataset: Dataset) -> Dataset:
        """Insert or update. A new dataset gets its UUID here."""
        if not isinstance(dataset, Dataset):
            raise ContractViolationError(f"save expects Dataset, got {type(dataset).__name__}")
        saved = self.dataset_repo.save(dataset)
        logger.info(
            f"💾 Dataset {saved.uuid} saved ({saved.title or 'untitled'})",
            extra={'custom_dimensions': {'dataset_uuid': str(saved.uuid)}}
        )
        return saved

    def create(self, dataset: Dataset) -> Dataset:
        """Save as a new dataset, whatever UUID it carried."""
        return self.save(dataset.model_copy(update={'uuid': None, 'created_at': None, 'cancelled': False}))

    def find_one(self, uuid: UUID) -> Dataset:
        dataset = self.dataset_repo.get(uuid)
        if dataset is None:
            raise ResourceNotFoundError(f"Dataset {uuid} not found")
        return dataset

    def find_matching(self, geometry: Optional[BaseGeometry],
                      include_cancelled: bool = False) -> List[Dataset]:
        """Datasets whose geometry intersects ``geometry`` (None = all)."""
        return self.dataset_repo.find_intersecting(geometry, include_cancelled=include_cancelled)

    def find_for_record(self, record: AtonRecord, as_of: Optional[datetime] = None) -> List[Dataset]:
        """Datasets a record belongs to at ``as_of`` (default now)."""
        return self.content_engine.matching_datasets(record, as_of)

    def cancel(self, uuid: UUID) -> DatasetContentLog:
        return self.content_engine.cancel_dataset(uuid)

    def delete(self, uuid: UUID) -> DatasetContentLog:
        return self.content_engine.delete_dataset(uuid)

    def replace(self, uuid: UUID) -> Dataset:
        """
        Cancel a dataset and create a fresh copy with the same title,
        file identifier and geometry. The copy starts a new version
        sequence.
        """
        original = self.find_one(uuid)
        self.cancel(uuid)
        copy = self.create(Dataset(
            title=original.title,
            file_identifier=original.file_identifier,
            geometry=original.geometry,
        ))
        logger.info(
            f"🔁 Dataset {uuid} replaced by {copy.uuid}",
            extra={'custom_dimensions': {'dataset_uuid': str(uuid), 'replacement_uuid': str(copy.uuid)}}
        )
        return copy
