"""
Subscription Service - Matching and Notification.

Registers client subscriptions and pushes AtoN changes to matching
subscribers. Everything that touches the network (endpoint lookup and
delivery) runs on the NotificationDispatcher pool, never on the ingestion
thread, and every failure there is logged and absorbed.

Subscription geometry precedence:
    1. Direct geometry
    2. UN/LOCODE ellipse (1 km)
    3. Referenced dataset geometry
    4. Whole world

Exports:
    SubscriptionService
"""

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from shapely.geometry.base import BaseGeometry

from config import NotificationConfig
from core.errors import error_dimensions
from core.logic import first_geometry, parse_geometry, to_wkt, world_polygon
from core.models import (
    AtonPublication,
    AtonRecord,
    DataEnvelope,
    DatasetOperation,
    SubscriptionEventType,
    SubscriptionNotification,
    SubscriptionRequest,
)
from exceptions import DeliveryFailureError, ResourceNotFoundError, ValidationError
from infrastructure.interface_repository import (
    IContentSerializer,
    IDeliveryClient,
    IPayloadSigner,
    ISubscriberDirectory,
    ISubscriptionRepository,
)
from util_logger import LoggerFactory, ComponentType
from .dataset_service import DatasetService
from .notification_dispatcher import NotificationDispatcher
from .unlocode_service import UnlocodeService

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "SubscriptionService")


class SubscriptionService:

    def __init__(self,
                 subscription_repo: ISubscriptionRepository,
                 dataset_service: DatasetService,
                 dispatcher: NotificationDispatcher,
                 directory: ISubscriberDirectory,
                 delivery_client: IDeliveryClient,
                 serializer: IContentSerializer,
                 signer: Optional[IPayloadSigner] = None,
                 unlocodes: Optional[UnlocodeService] = None,
                 config: Optional[NotificationConfig] = None):
        self.subscription_repo = subscription_repo
        self.dataset_service = dataset_service
        self.dispatcher = dispatcher
        self.directory = directory
        self.delivery_client = delivery_client
        self.serializer = serializer
        self.signer = signer
        self.unlocodes = unlocodes or UnlocodeService()
        self.config = config or NotificationConfig()

    # ========================================================================
    # QUERIES
    # ========================================================================

    def find_matching(self, geometry: Optional[BaseGeometry],
                      from_time: Optional[datetime],
                      to_time: Optional[datetime]) -> List[SubscriptionRequest]:
        """
        Subscriptions whose geometry intersects and whose window overlaps
        [from_time, to_time], ordered by UUID. None bounds are unconstrained.
        """
        return self.subscription_repo.find_matching(geometry, from_time, to_time)

    def find_one(self, uuid: UUID) -> SubscriptionRequest:
        subscription = self.subscription_repo.get(uuid)
        if subscription is None:
            raise ResourceNotFoundError(f"Subscription {uuid} not found")
        return subscription

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def _derive_geometry(self, request: SubscriptionRequest, dataset_shape) -> BaseGeometry:
        unlocode_shape = None
        if request.unlocode:
            unlocode_shape = self.unlocodes.geometry_for(request.unlocode)
            if unlocode_shape is None:
                logger.warning(f"⚠️ Unknown UN/LOCODE {request.unlocode} for {request.client_mrn}")
        return first_geometry(
            parse_geometry(request.geometry),
            unlocode_shape,
            dataset_shape,
        ) or world_polygon()

    def register(self, request: SubscriptionRequest, client_id: Optional[str] = None) -> SubscriptionRequest:
        """
        Persist a subscription, replacing any earlier one of the same client.

        Returns once stored; the SUBSCRIPTION_CREATED notification (and
        SUBSCRIPTION_REMOVED for a replaced subscription) is sent
        asynchronously.

        Raises:
            ValidationError: no client identifier, or the dataset reference
                resolves to nothing
        """
        client_mrn = (client_id or request.client_mrn or "").strip()
        if not client_mrn:
            raise ValidationError("A subscription requires a client MRN")

        dataset_shape = None
        if request.data_reference is not None:
            try:
                dataset = self.dataset_service.find_one(request.data_reference)
            except ResourceNotFoundError as e:
                raise ValidationError(f"Dataset reference {request.data_reference} does not exist") from e
            if dataset.geometry:
                dataset_shape = dataset.shape

        geometry = self._derive_geometry(request, dataset_shape)
        candidate = SubscriptionRequest(**{
            **request.model_dump(),
            'uuid': None,
            'created_at': None,
            'client_mrn': client_mrn,
            'subscription_geometry': to_wkt(geometry),
        })

        saved, superseded = self.subscription_repo.replace_for_client(candidate)
        if superseded is not None:
            logger.info(
                f"♻️ Subscription {superseded.uuid} of {client_mrn} superseded by {saved.uuid}",
                extra={'custom_dimensions': {'client_mrn': client_mrn, 'subscription_uuid': str(saved.uuid)}}
            )
            self.dispatcher.submit(self._send_lifecycle, superseded, SubscriptionEventType.SUBSCRIPTION_REMOVED)
        logger.info(
            f"✅ Subscription {saved.uuid} registered for {client_mrn}",
            extra={'custom_dimensions': {'client_mrn': client_mrn, 'subscription_uuid': str(saved.uuid)}}
        )

        self.dispatcher.submit(self._send_lifecycle, saved, SubscriptionEventType.SUBSCRIPTION_CREATED)
        return saved

    def unregister(self, uuid: UUID) -> SubscriptionRequest:
        """
        Raises:
            ResourceNotFoundError: no such subscription
        """
        removed = self.subscription_repo.delete(uuid)
        if removed is None:
            raise ResourceNotFoundError(f"Subscription {uuid} not found")

        logger.info(
            f"🗑️ Subscription {uuid} of {removed.client_mrn} removed",
            extra={'custom_dimensions': {'client_mrn': removed.client_mrn, 'subscription_uuid': str(uuid)}}
        )
        self.dispatcher.submit(self._send_lifecycle, removed, SubscriptionEventType.SUBSCRIPTION_REMOVED)
        return removed

    def _resolve_endpoint(self, subscription: SubscriptionRequest) -> Optional[str]:
        try:
            endpoint = self.directory.resolve_endpoint(subscription.client_mrn)
        except DeliveryFailureError as e:
            logger.warning(
                f"⚠️ Endpoint lookup failed for {subscription.client_mrn}: {e}",
                extra={'custom_dimensions': {'client_mrn': subscription.client_mrn, **error_dimensions(e)}}
            )
            return None
        if not endpoint:
            logger.info(f"📭 No endpoint for {subscription.client_mrn}, skipping notification")
        return endpoint

    def _send_lifecycle(self, subscription: SubscriptionRequest,
                        event_type: SubscriptionEventType) -> bool:
        endpoint = self._resolve_endpoint(subscription)
        if not endpoint:
            return False
        try:
            self.delivery_client.send_subscription_notification(
                endpoint,
                SubscriptionNotification(
                    subscription_uuid=subscription.uuid,
                    client_mrn=subscription.client_mrn,
                    event_type=event_type,
                )
            )
        except DeliveryFailureError as e:
            logger.warning(
                f"⚠️ {event_type.value} notification to {subscription.client_mrn} failed: {e}",
                extra={'custom_dimensions': {'client_mrn': subscription.client_mrn, **error_dimensions(e)}}
            )
            return False
        return True

    # ========================================================================
    # CHANGE NOTIFICATION
    # ========================================================================

    def handle_publication(self, publication: AtonPublication) -> int:
        """
        Schedule a notification for each subscription matching the record's
        geometry and validity window. Returns how many were scheduled.
        """
        record = publication.record
        if record.shape is None:
            return 0

        start, end = record.validity_window()
        scheduled = 0
        for subscription in self.find_matching(record.shape, start, end):
            future = self.dispatcher.submit(
                self.notify, subscription, [record], publication.deletion, publication.operation
            )
            if future is not None:
                scheduled += 1
        if scheduled:
            logger.debug(f"📬 {scheduled} notification(s) scheduled for {record.id_code}")
        return scheduled

    def notify(self, subscription: SubscriptionRequest, records: Iterable[AtonRecord],
               deletion: bool = False,
               operation: DatasetOperation = DatasetOperation.AUTO) -> bool:
        """
        Push the changed records to one subscriber as a single signed envelope.

        Returns True when delivered. A missing endpoint or a failed delivery
        is logged and returns False; nothing is retried.
        """
        endpoint = self._resolve_endpoint(subscription)
        if not endpoint:
            return False

        if deletion:
            operation = DatasetOperation.DELETED
        elif operation == DatasetOperation.AUTO:
            operation = DatasetOperation.UPDATED

        data = self.serializer.serialize_records(records)
        envelope = DataEnvelope(
            container_type=subscription.container_type,
            data_product_type=subscription.data_product_type or self.config.data_product_type,
            product_version=subscription.product_version or self.config.product_version,
            operation=operation,
            subscription_uuid=subscription.uuid,
            data=data,
            signature=self.signer.sign(data) if self.signer else None,
            signature_scheme=self.signer.scheme if self.signer else None,
        )

        try:
            self.delivery_client.deliver(endpoint, envelope.model_dump(mode="json"))
        except DeliveryFailureError as e:
            logger.warning(
                f"⚠️ Delivery to {subscription.client_mrn} failed: {e}",
                extra={'custom_dimensions': {
                    'client_mrn': subscription.client_mrn,
                    'subscription_uuid': str(subscription.uuid),
                    **error_dimensions(e),
                }}
            )
            return False

        logger.info(
            f"📤 {operation.value} delivered to {subscription.client_mrn}",
            extra={'custom_dimensions': {
                'client_mrn': subscription.client_mrn,
                'subscription_uuid': str(subscription.uuid),
                'transaction_identifier': str(envelope.transaction_identifier),
            }}
        )
        return True
