"""
AtoN Pipeline - Component Wiring.

    event source -> AtonChangeListener -> AtonReconciler -> PublicationChannel
                                                             |-> DatasetContentEngine
                                                             |-> SubscriptionService -> NotificationDispatcher

Usage:
    pipeline = AtonPipeline.from_config(get_config())
    pipeline.start()
    ...
    pipeline.stop()

Exports:
    AtonPipeline
"""

from typing import Any, Dict, Optional

from config import AppConfig, NotificationConfig
from infrastructure.event_source import LocalEventSource
from infrastructure.factory import RepositoryFactory
from infrastructure.interface_repository import IDeliveryClient, IEventSource, ISubscriberDirectory
from util_logger import LoggerFactory, ComponentType, log_exceptions
from .aton_listener import AtonChangeListener
from .aton_reconciler import AtonReconciler
from .dataset_content_engine import DatasetContentEngine
from .dataset_service import DatasetService
from .notification_dispatcher import NotificationDispatcher
from .publication_channel import PublicationChannel
from .serialization import HmacPayloadSigner, JsonContentSerializer
from .subscription_service import SubscriptionService
from .unlocode_service import UnlocodeService

logger = LoggerFactory.create_logger(ComponentType.WORKER, "AtonPipeline")


class AtonPipeline:
    """
    Owns every pipeline component and their start/stop order.
    """

    def __init__(self,
                 repositories: Dict[str, Any],
                 event_source: IEventSource,
                 directory: ISubscriberDirectory,
                 delivery_client: IDeliveryClient,
                 notification_config: Optional[NotificationConfig] = None,
                 unlocodes: Optional[UnlocodeService] = None,
                 area_of_interest: Any = None):
        self.notification_config = notification_config or NotificationConfig()
        self.repositories = repositories
        self.event_source = event_source
        self.area_of_interest = area_of_interest

        self.serializer = JsonContentSerializer()
        signing_key = self.notification_config.signing_key
        self.signer = HmacPayloadSigner(signing_key) if signing_key else None

        self.channel = PublicationChannel()
        self.reconciler = AtonReconciler(repositories['aton_repo'], self.channel)
        self.content_engine = DatasetContentEngine(
            repositories['dataset_repo'],
            repositories['aton_repo'],
            repositories['content_repo'],
            self.serializer,
        )
        self.dataset_service = DatasetService(repositories['dataset_repo'], self.content_engine)
        self.dispatcher = NotificationDispatcher(
            max_workers=self.notification_config.max_workers,
            queue_size=self.notification_config.queue_size,
        )
        self.subscription_service = SubscriptionService(
            repositories['subscription_repo'],
            self.dataset_service,
            self.dispatcher,
            directory,
            delivery_client,
            self.serializer,
            signer=self.signer,
            unlocodes=unlocodes,
            config=self.notification_config,
        )
        self.listener = AtonChangeListener(self.reconciler)

        # Content first: subscribers are notified after the datasets moved on
        self.channel.subscribe(self.content_engine.handle_publication)
        self.channel.subscribe(self.subscription_service.handle_publication)

    @classmethod
    def from_config(cls, config: AppConfig,
                    event_source: Optional[IEventSource] = None,
                    repositories: Optional[Dict[str, Any]] = None,
                    delivery_client: Optional[IDeliveryClient] = None,
                    directory: Optional[ISubscriberDirectory] = None) -> "AtonPipeline":
        """
        Build from configuration. Anything passed explicitly wins over
        what the configuration would create.
        """
        if event_source is None:
            if config.listener.has_service_bus:
                from infrastructure.service_bus import ServiceBusEventSource
                event_source = ServiceBusEventSource(config.listener)
            else:
                logger.warning("⚠️ No Service Bus configured, using in-process event source")
                event_source = LocalEventSource()

        unlocodes = UnlocodeService.from_file(config.unlocode_file) if config.unlocode_file else None

        return cls(
            repositories=repositories or RepositoryFactory.create_repositories(config),
            event_source=event_source,
            directory=directory or RepositoryFactory.create_subscriber_directory(config),
            delivery_client=delivery_client or RepositoryFactory.create_delivery_client(config),
            notification_config=config.notification,
            unlocodes=unlocodes,
            area_of_interest=config.listener.area_of_interest,
        )

    @log_exceptions(ComponentType.WORKER, "AtonPipeline")
    def start(self) -> None:
        self.listener.init(self.area_of_interest, self.event_source)
        start = getattr(self.event_source, 'start', None)
        if callable(start):
            start()
        logger.info(f"🚀 Pipeline started ({type(self.event_source).__name__})")

    def stop(self) -> None:
        """Listener first, then the event source, then the notification pool."""
        self.listener.destroy()
        stop = getattr(self.event_source, 'stop', None)
        if callable(stop):
            stop()
        self.dispatcher.shutdown(wait=True)
        logger.info("🛑 Pipeline stopped")
