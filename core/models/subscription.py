"""
Subscription Models.

Exports:
    SubscriptionRequest: A client's standing interest in AtoN updates
    SubscriptionNotification: Lifecycle notification (created/removed)
    DataEnvelope: Signed outgoing payload
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from core.logic.geometry import parse_geometry, to_wkt
from .enums import ContainerType, DatasetOperation, SubscriptionEventType


class SubscriptionRequest(BaseModel):
    """
    A client's standing interest in AtoN updates.

    At most one subscription exists per client_mrn. subscription_geometry
    is derived at registration and is what matching runs against.
    """

    uuid: Optional[UUID] = None
    client_mrn: Optional[str] = Field(default=None, description="Client identifier (MRN)")
    container_type: ContainerType = ContainerType.S100_DATASET
    data_product_type: Optional[str] = None
    product_version: Optional[str] = None
    data_reference: Optional[UUID] = Field(default=None, description="Dataset UUID the client asked for")
    geometry: Optional[str] = Field(default=None, description="Direct geometry filter (WKT)")
    unlocode: Optional[str] = None
    subscription_period_start: Optional[datetime] = None
    subscription_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    subscription_geometry: Optional[str] = Field(default=None, description="Derived search geometry (WKT)")

    _shape: Any = PrivateAttr(default=None)

    @field_validator('geometry', 'subscription_geometry', mode='before')
    @classmethod
    def normalize_geometry(cls, v: Any) -> Optional[str]:
        return to_wkt(parse_geometry(v))

    @field_validator('client_mrn', 'unlocode')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator('subscription_period_start', 'subscription_period_end', 'created_at')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def check_period(self) -> "SubscriptionRequest":
        start, end = self.subscription_period_start, self.subscription_period_end
        if start and end and start > end:
            raise ValueError("subscription_period_start is after subscription_period_end")
        return self

    @property
    def subscription_shape(self):
        if self._shape is None and self.subscription_geometry:
            self._shape = parse_geometry(self.subscription_geometry)
        return self._shape

    def overlaps(self, from_time: Optional[datetime], to_time: Optional[datetime]) -> bool:
        """
        Window overlap with [from_time, to_time].

        None on either side is unconstrained.
        """
        if from_time and self.subscription_period_end and self.subscription_period_end < from_time:
            return False
        if to_time and self.subscription_period_start and self.subscription_period_start > to_time:
            return False
        return True


class SubscriptionNotification(BaseModel):
    """Sent to a client when its subscription is created or removed."""

    subscription_uuid: UUID
    client_mrn: str
    event_type: SubscriptionEventType
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DataEnvelope(BaseModel):
    """
    Signed payload pushed to a subscriber.

    data is the serialized content. signature covers data only.
    """

    transaction_identifier: UUID = Field(default_factory=uuid4)
    container_type: ContainerType = ContainerType.S100_DATASET
    data_product_type: str
    product_version: Optional[str] = None
    operation: DatasetOperation
    from_subscription: bool = True
    ack_request: str = "NO_ACK"
    subscription_uuid: Optional[UUID] = None
    data: str
    signature: Optional[str] = None
    signature_scheme: Optional[str] = None
