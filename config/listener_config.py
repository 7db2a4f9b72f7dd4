"""
Change Event Listener Configuration.

Provides configuration for:
    - Area of interest polygon (WKT) the listener is scoped to
    - Service Bus topic subscription carrying feature change events
    - Receiver concurrency and polling settings

Exports:
    ListenerConfig: Pydantic listener configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .defaults import ListenerDefaults


class ListenerConfig(BaseModel):
    """
    Change-event listener configuration.

    Either connection_string or namespace must be set for the Service Bus
    event source. Namespace auth goes through DefaultAzureCredential.
    """

    area_of_interest: str = Field(
        default=ListenerDefaults.AREA_OF_INTEREST,
        description="WKT polygon (EPSG:4326) scoping which changed records are accepted. "
                    "An empty or invalid polygon matches nothing."
    )

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string"
    )

    namespace: Optional[str] = Field(
        default=None,
        description="Fully qualified Service Bus namespace for managed identity auth"
    )

    topic: str = Field(
        default=ListenerDefaults.TOPIC,
        description="Service Bus topic carrying feature change events"
    )

    subscription: str = Field(
        default=ListenerDefaults.SUBSCRIPTION,
        description="Topic subscription name for this listener"
    )

    receiver_count: int = Field(
        default=ListenerDefaults.RECEIVER_COUNT,
        ge=1,
        le=32,
        description="Number of concurrent receiver threads"
    )

    max_wait_time_seconds: int = Field(
        default=ListenerDefaults.MAX_WAIT_TIME_SECONDS,
        ge=1,
        description="Receiver poll timeout; bounds how long shutdown waits"
    )

    max_message_count: int = Field(
        default=ListenerDefaults.MAX_MESSAGE_COUNT,
        ge=1,
        description="Messages fetched per receive call"
    )

    @field_validator('area_of_interest')
    @classmethod
    def strip_area_of_interest(cls, v: str) -> str:
        return (v or "").strip() or ListenerDefaults.AREA_OF_INTEREST

    @property
    def has_service_bus(self) -> bool:
        return bool(self.connection_string or self.namespace)

    def debug_dict(self) -> dict:
        return {
            "area_of_interest": self.area_of_interest,
            "connection": "***MASKED***" if self.connection_string else None,
            "namespace": self.namespace,
            "topic": self.topic,
            "subscription": self.subscription,
            "receiver_count": self.receiver_count,
            "max_wait_time_seconds": self.max_wait_time_seconds,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            area_of_interest=os.environ.get("ATON_AREA_OF_INTEREST", ListenerDefaults.AREA_OF_INTEREST),
            connection_string=os.environ.get("SERVICE_BUS_CONNECTION_STRING"),
            namespace=os.environ.get("SERVICE_BUS_NAMESPACE"),
            topic=os.environ.get("ATON_EVENTS_TOPIC", ListenerDefaults.TOPIC),
            subscription=os.environ.get("ATON_EVENTS_SUBSCRIPTION", ListenerDefaults.SUBSCRIPTION),
            receiver_count=int(os.environ.get("ATON_RECEIVER_COUNT", str(ListenerDefaults.RECEIVER_COUNT))),
            max_wait_time_seconds=int(os.environ.get("ATON_MAX_WAIT_TIME", str(ListenerDefaults.MAX_WAIT_TIME_SECONDS))),
            max_message_count=int(os.environ.get("ATON_MAX_MESSAGE_COUNT", str(ListenerDefaults.MAX_MESSAGE_COUNT))),
        )
