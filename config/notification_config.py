"""
Subscriber Notification Configuration.

Provides configuration for:
    - Notification thread pool size and bounded queue
    - Delivery and directory lookup timeouts
    - Subscriber directory endpoint
    - Payload signing key and product identification

Exports:
    NotificationConfig: Pydantic notification configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import NotificationDefaults


class NotificationConfig(BaseModel):
    """
    Subscriber notification configuration.

    Delivery runs on its own pool so a slow or unreachable subscriber never
    blocks ingestion. A full queue rejects new work instead of waiting.
    """

    max_workers: int = Field(
        default=NotificationDefaults.MAX_WORKERS,
        ge=1,
        le=64,
        description="Notification worker threads"
    )

    queue_size: int = Field(
        default=NotificationDefaults.QUEUE_SIZE,
        ge=1,
        description="Maximum notifications pending or running before new ones are rejected"
    )

    delivery_timeout_seconds: float = Field(
        default=NotificationDefaults.DELIVERY_TIMEOUT_SECONDS,
        gt=0,
        description="HTTP timeout for a single delivery; a timeout counts as a delivery failure"
    )

    directory_timeout_seconds: float = Field(
        default=NotificationDefaults.DIRECTORY_TIMEOUT_SECONDS,
        gt=0,
        description="HTTP timeout for subscriber endpoint lookup"
    )

    directory_url: Optional[str] = Field(
        default=None,
        description="Base URL of the subscriber directory (service registry). "
                    "When unset, endpoints come from static_endpoints only."
    )

    static_endpoints: dict = Field(
        default_factory=dict,
        description="Client MRN to endpoint mapping used when no directory is configured"
    )

    signing_key: Optional[str] = Field(
        default=None,
        repr=False,
        description="Shared secret for HMAC payload signatures"
    )

    data_product_type: str = Field(
        default=NotificationDefaults.DATA_PRODUCT_TYPE,
        description="Product type stamped on outgoing envelopes"
    )

    product_version: str = Field(
        default=NotificationDefaults.PRODUCT_VERSION,
        description="Product version stamped on outgoing envelopes"
    )

    def debug_dict(self) -> dict:
        return {
            "max_workers": self.max_workers,
            "queue_size": self.queue_size,
            "delivery_timeout_seconds": self.delivery_timeout_seconds,
            "directory_url": self.directory_url,
            "static_endpoints": len(self.static_endpoints),
            "signing_key": "***MASKED***" if self.signing_key else None,
        }

    @staticmethod
    def _parse_endpoints(raw: Optional[str]) -> dict:
        """Parse 'mrn=url;mrn=url' into a dict."""
        endpoints = {}
        for pair in (raw or "").split(";"):
            if "=" not in pair:
                continue
            mrn, url = pair.split("=", 1)
            if mrn.strip() and url.strip():
                endpoints[mrn.strip()] = url.strip()
        return endpoints

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            max_workers=int(os.environ.get("NOTIFICATION_WORKERS", str(NotificationDefaults.MAX_WORKERS))),
            queue_size=int(os.environ.get("NOTIFICATION_QUEUE_SIZE", str(NotificationDefaults.QUEUE_SIZE))),
            delivery_timeout_seconds=float(os.environ.get("DELIVERY_TIMEOUT_SECONDS", str(NotificationDefaults.DELIVERY_TIMEOUT_SECONDS))),
            directory_timeout_seconds=float(os.environ.get("DIRECTORY_TIMEOUT_SECONDS", str(NotificationDefaults.DIRECTORY_TIMEOUT_SECONDS))),
            directory_url=os.environ.get("SUBSCRIBER_DIRECTORY_URL"),
            static_endpoints=cls._parse_endpoints(os.environ.get("SUBSCRIBER_ENDPOINTS")),
            signing_key=os.environ.get("PAYLOAD_SIGNING_KEY"),
            data_product_type=os.environ.get("DATA_PRODUCT_TYPE", NotificationDefaults.DATA_PRODUCT_TYPE),
            product_version=os.environ.get("PRODUCT_VERSION", NotificationDefaults.PRODUCT_VERSION),
        )
