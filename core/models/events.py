"""
Pipeline Event Models.

ChangeEvent is what the inbound event stream hands the listener.
AtonPublication is what the reconciler emits after a successful write.

Exports:
    ChangeEvent: Inbound feature change/removal
    AtonPublication: Internal published/deleted notification
"""

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from .aton import AtonRecord
from .enums import ChangeEventKind, DatasetOperation, PublicationKind


class ChangeEvent(BaseModel):
    """
    Inbound change event.

    changed events carry a payload (JSON text or already-decoded mapping).
    removed events carry a feature-id filter: a list of identifiers or a
    filter expression such as ``IN ('A','B')``.
    """

    kind: ChangeEventKind
    payload: Optional[Any] = None
    fid_filter: Optional[Any] = None
    message_id: Optional[str] = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AtonPublication:
    """
    Internal notification emitted by the reconciler.

    ``datasets`` is resolved by the content engine with the list of dataset
    UUIDs the record matched. Nobody on the ingestion path waits on it.
    ``previous`` is the stored version an upsert replaced, so datasets the
    record moved out of are refreshed too.
    """
    kind: PublicationKind
    record: AtonRecord
    operation: DatasetOperation = DatasetOperation.AUTO
    previous: Optional[AtonRecord] = None
    datasets: Future = field(default_factory=Future)
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def deletion(self) -> bool:
        return self.kind == PublicationKind.DELETED
