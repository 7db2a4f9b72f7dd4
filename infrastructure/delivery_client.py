"""
Outbound Delivery and Subscriber Directory Clients.

HTTP capabilities the notifier depends on. Every call carries a bounded
httpx timeout; a timeout is a delivery failure like any other.

Usage:
    from infrastructure.delivery_client import HttpDeliveryClient

    client = HttpDeliveryClient(timeout=10.0)
    client.deliver("https://ship.example/aton", envelope.model_dump(mode="json"))

Exports:
    HttpDeliveryClient: IDeliveryClient over HTTP POST
    HttpSubscriberDirectory: ISubscriberDirectory over a service registry
    StaticSubscriberDirectory: ISubscriberDirectory over a fixed mapping
"""

from typing import Dict, Optional
from urllib.parse import quote

import httpx

from core.models import SubscriptionNotification
from exceptions import DeliveryFailureError
from util_logger import LoggerFactory, ComponentType
from .interface_repository import IDeliveryClient, ISubscriberDirectory


class HttpDeliveryClient(IDeliveryClient):
    """
    POSTs JSON payloads to subscriber endpoints.

    Any non-2xx status, transport error or timeout raises
    DeliveryFailureError. Nothing is retried.
    """

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self._transport = transport
        self.logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "HttpDeliveryClient")

    def _post(self, url: str, payload: dict) -> None:
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=payload)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise DeliveryFailureError(
                f"Delivery to {url} timed out after {self.timeout}s", endpoint=url, timeout=True
            ) from e
        except httpx.HTTPStatusError as e:
            raise DeliveryFailureError(
                f"Delivery to {url} rejected with HTTP {e.response.status_code}", endpoint=url
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryFailureError(f"Delivery to {url} failed: {e}", endpoint=url) from e

        self.logger.debug(f"📤 Delivered to {url} ({response.status_code})")

    def deliver(self, endpoint: str, payload: dict) -> None:
        self._post(endpoint, payload)

    def send_subscription_notification(self, endpoint: str,
                                       notification: SubscriptionNotification) -> None:
        url = f"{endpoint.rstrip('/')}/subscription"
        self._post(url, notification.model_dump(mode="json"))


class HttpSubscriberDirectory(ISubscriberDirectory):
    """
    Resolves a client MRN through a service registry.

    GET {base_url}/instances/{mrn} -> {"endpoint": "https://..."}
    A 404 or a body without an endpoint means "no endpoint".
    """

    def __init__(self, base_url: str, timeout: float = 5.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self._base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self.logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "HttpSubscriberDirectory")

    def resolve_endpoint(self, client_mrn: str) -> Optional[str]:
        url = f"{self._base_url}/instances/{quote(client_mrn, safe='')}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(url)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise DeliveryFailureError(
                f"Directory lookup for {client_mrn} timed out", endpoint=url, timeout=True, lookup=True
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise DeliveryFailureError(
                f"Directory lookup for {client_mrn} failed: {e}", endpoint=url, lookup=True
            ) from e

        endpoint = data.get('endpoint') if isinstance(data, dict) else None
        return endpoint or None


class StaticSubscriberDirectory(ISubscriberDirectory):
    """Fixed MRN -> endpoint mapping (SUBSCRIBER_ENDPOINTS)."""

    def __init__(self, endpoints: Optional[Dict[str, str]] = None):
        self._endpoints = dict(endpoints or {})

    def resolve_endpoint(self, client_mrn: str) -> Optional[str]:
        return self._endpoints.get(client_mrn)
