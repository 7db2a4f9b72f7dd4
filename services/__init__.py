"""
Services Package - AtoN Pipeline Components.

Structure:
    aton_listener.py            # Change-event decoding, area-of-interest filter
    aton_reconciler.py          # Upsert/delete with grouping reconciliation
    publication_channel.py      # In-process fan-out of AtonPublication
    dataset_content_engine.py   # Versioned dataset content + delta logs
    dataset_service.py          # Dataset definitions
    subscription_service.py     # Subscription registration + notification
    notification_dispatcher.py  # Bounded notification thread pool
    serialization.py            # Content serializer + payload signer
    unlocode_service.py         # UN/LOCODE -> subscription geometry
    pipeline.py                 # Wiring and start/stop order

Usage:
    from services import AtonPipeline
    pipeline = AtonPipeline.from_config(get_config())
"""

from .aton_listener import AtonChangeListener, decode_members, parse_fid_filter
from .aton_reconciler import AtonReconciler
from .publication_channel import PublicationChannel
from .dataset_content_engine import DatasetContentEngine
from .dataset_service import DatasetService
from .notification_dispatcher import NotificationDispatcher
from .serialization import JsonContentSerializer, HmacPayloadSigner
from .subscription_service import SubscriptionService
from .unlocode_service import UnlocodeService, UnlocodeEntry
from .pipeline import AtonPipeline

__all__ = [
    'AtonChangeListener',
    'decode_members',
    'parse_fid_filter',
    'AtonReconciler',
    'PublicationChannel',
    'DatasetContentEngine',
    'DatasetService',
    'NotificationDispatcher',
    'JsonContentSerializer',
    'HmacPayloadSigner',
    'SubscriptionService',
    'UnlocodeService',
    'UnlocodeEntry',
    'AtonPipeline',
]
