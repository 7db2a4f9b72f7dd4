"""
Dataset Models - Versioned Content Boundary

A Dataset is a geometry-scoped, published collection of AtoN records.
Its current materialized content lives in DatasetContent; every version
ever produced is kept in the append-only DatasetContentLog.

Invariants:
    - Content log sequence numbers for a dataset are 0, 1, 2, ... with no gaps
    - Sequence 0 has an empty delta
    - Log entries are immutable once written
    - A cancelled dataset accepts no further content versions

Exports:
    Dataset: Dataset definition
    DatasetContent: Current content of a dataset
    DatasetContentLog: Immutable content log entry
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from core.logic.geometry import parse_geometry, to_wkt, world_polygon
from .enums import DatasetOperation


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Dataset(BaseModel):
    """
    Dataset definition.

    A dataset without a geometry covers the whole world.
    """

    uuid: Optional[UUID] = Field(default=None, description="Assigned on first save")
    title: Optional[str] = Field(default=None, description="Dataset title")
    file_identifier: Optional[str] = Field(default=None, description="Published file identifier")
    geometry: Optional[str] = Field(default=None, description="Bounding geometry (WKT, EPSG:4326)")
    created_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    cancelled: bool = Field(default=False, description="Terminal: no content versions after cancellation")

    _shape: Any = PrivateAttr(default=None)

    @field_validator('geometry', mode='before')
    @classmethod
    def normalize_geometry(cls, v: Any) -> Optional[str]:
        return to_wkt(parse_geometry(v))

    @property
    def shape(self):
        if self._shape is None:
            self._shape = parse_geometry(self.geometry) if self.geometry else world_polygon()
        return self._shape


class DatasetContent(BaseModel):
    """Current content of a dataset. One row per dataset, replaced on each version."""

    dataset_uuid: UUID
    sequence_no: int = Field(..., ge=0)
    generated_at: datetime = Field(default_factory=_utc_now)
    content: Optional[str] = None
    content_length: int = Field(default=0, ge=0)
    delta: Optional[str] = None
    delta_length: int = Field(default=0, ge=0)


class DatasetContentLog(BaseModel):
    """
    Immutable content log entry.

    operation is the resolved kind; AUTO is rejected.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    dataset_uuid: UUID
    sequence_no: int = Field(..., ge=0)
    operation: DatasetOperation
    generated_at: datetime = Field(default_factory=_utc_now)
    content: Optional[str] = None
    content_length: int = Field(default=0, ge=0)
    delta: Optional[str] = None
    delta_length: int = Field(default=0, ge=0)
    geometry: Optional[str] = Field(default=None, description="Dataset geometry snapshot (WKT)")

    @field_validator('operation')
    @classmethod
    def reject_auto(cls, v: DatasetOperation) -> DatasetOperation:
        if v == DatasetOperation.AUTO:
            raise ValueError("AUTO must be resolved before a log entry is written")
        return v
