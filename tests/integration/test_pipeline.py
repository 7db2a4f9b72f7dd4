"""
End-to-end pipeline tests: event source -> listener -> reconciler ->
content engine + subscription notifier, all in memory.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from config import AppConfig, ListenerConfig, NotificationConfig
from core.models import (
    ChangeEvent,
    ChangeEventKind,
    Dataset,
    DatasetOperation,
    SubscriptionRequest,
)
from exceptions import DatasetCancelledError, ResourceNotFoundError
from infrastructure.delivery_client import StaticSubscriberDirectory
from infrastructure.event_source import LocalEventSource
from infrastructure.factory import RepositoryFactory
from services.pipeline import AtonPipeline
from services.serialization import HmacPayloadSigner
from tests.factories.doubles import RecordingDeliveryClient
from tests.factories.model_factories import box_wkt, make_aton_record, make_dataset

NORTH_SEA = box_wkt(0, 52, 3, 55)
SHIP = "urn:mrn:test:ship:s"
SHIP_ENDPOINT = "https://ship-s.test/aton"


@pytest.fixture
def delivery():
    return RecordingDeliveryClient()


@pytest.fixture
def pipeline(delivery):
    pipeline = AtonPipeline(
        repositories=RepositoryFactory.create_memory_repositories(),
        event_source=LocalEventSource(),
        directory=StaticSubscriberDirectory({SHIP: SHIP_ENDPOINT}),
        delivery_client=delivery,
        notification_config=NotificationConfig(max_workers=2, queue_size=50, signing_key="pipeline-key"),
        area_of_interest=NORTH_SEA,
    )
    pipeline.start()
    yield pipeline
    pipeline.stop()


@pytest.fixture
def dataset(pipeline):
    return pipeline.dataset_service.create(Dataset(**make_dataset(geometry=NORTH_SEA)))


def _emit_changed(pipeline, payload):
    pipeline.event_source.emit(ChangeEvent(kind=ChangeEventKind.CHANGED, payload=payload))


def _emit_removed(pipeline, fid_filter):
    pipeline.event_source.emit(ChangeEvent(kind=ChangeEventKind.REMOVED, fid_filter=fid_filter))


def _logs(pipeline, uuid):
    return pipeline.repositories['content_repo'].logs(uuid)


class TestScenarios:

    def test_subscriber_notified_once_for_matching_record(self, pipeline, dataset, delivery):
        t0 = datetime.now(timezone.utc) - timedelta(days=10)
        t1 = datetime.now(timezone.utc) + timedelta(days=10)
        subscription = pipeline.subscription_service.register(SubscriptionRequest(
            client_mrn=SHIP,
            geometry=box_wkt(1.5, 53.5, 1.7, 53.7),
            subscription_period_start=t0,
            subscription_period_end=t1,
        ))

        _emit_changed(pipeline, make_aton_record(
            id_code="AtoN-A", lon=1.594, lat=53.61,
            date_start=(t0 - timedelta(days=1)).date(),
            date_end=(t1 + timedelta(days=1)).date(),
        ))
        assert pipeline.dispatcher.drain(timeout=5)

        assert len(delivery.deliveries) == 1
        endpoint, envelope = delivery.deliveries[0]
        assert endpoint == SHIP_ENDPOINT
        assert envelope["subscription_uuid"] == str(subscription.uuid)
        assert envelope["operation"] == DatasetOperation.CREATED.value
        assert HmacPayloadSigner("pipeline-key").verify(envelope["data"], envelope["signature"])

        logs = _logs(pipeline, dataset.uuid)
        assert [e.sequence_no for e in logs] == [0]
        assert "AtoN-A" in logs[0].content

    def test_record_outside_area_is_ignored(self, pipeline, dataset, delivery):
        _emit_changed(pipeline, make_aton_record(id_code="far", lon=40.0, lat=10.0))
        assert pipeline.dispatcher.drain(timeout=5)

        assert pipeline.repositories['aton_repo'].get("far") is None
        assert _logs(pipeline, dataset.uuid) == []
        assert delivery.deliveries == []

    def test_deleting_unknown_identifier(self, pipeline, dataset):
        with pytest.raises(ResourceNotFoundError):
            pipeline.reconciler.delete("ghost")
        _emit_removed(pipeline, ["ghost"])
        assert _logs(pipeline, dataset.uuid) == []

    def test_cancelled_dataset_rejects_updates(self, pipeline, dataset):
        pipeline.content_engine.request_content_update(dataset.uuid)
        pipeline.dataset_service.cancel(dataset.uuid)
        before = len(_logs(pipeline, dataset.uuid))

        with pytest.raises(DatasetCancelledError):
            pipeline.content_engine.request_content_update(dataset.uuid)
        assert len(_logs(pipeline, dataset.uuid)) == before


class TestRecordLifecycle:

    def test_update_then_delete(self, pipeline, dataset, delivery):
        pipeline.subscription_service.register(SubscriptionRequest(client_mrn=SHIP))

        _emit_changed(pipeline, make_aton_record(id_code="AtoN-L", lon=1.0, lat=53.0, textual_description="v1"))
        _emit_changed(pipeline, make_aton_record(id_code="AtoN-L", lon=1.0, lat=53.0, textual_description="v2"))
        _emit_removed(pipeline, "IN ('AtoN-L')")
        assert pipeline.dispatcher.drain(timeout=5)

        logs = _logs(pipeline, dataset.uuid)
        assert [e.sequence_no for e in logs] == [0, 1, 2]
        assert [e.operation for e in logs] == [
            DatasetOperation.CREATED, DatasetOperation.UPDATED, DatasetOperation.UPDATED
        ]
        assert "v2" in logs[1].delta
        assert json.loads(logs[2].content)["members"] == []

        operations = sorted(envelope["operation"] for _, envelope in delivery.deliveries)
        assert operations == ["CREATED", "DELETED", "UPDATED"]

    def test_groupings_follow_peers(self, pipeline, dataset):
        group = [{"aggregation_type": "leading_line", "peers": ["front", "rear"]}]
        _emit_changed(pipeline, {"members": [
            make_aton_record(id_code="front", lon=1.0, lat=53.0, aggregations=group),
            make_aton_record(id_code="rear", lon=1.01, lat=53.01, aggregations=group),
        ]})
        _emit_removed(pipeline, ["front"])

        rear = pipeline.reconciler.get("rear")
        assert rear.aggregations[0].peers == frozenset({"rear"})

    def test_stop_detaches_listener(self, pipeline):
        pipeline.stop()
        assert pipeline.event_source.listener_count == 0


class TestFromConfig:

    def test_standalone_build(self, delivery):
        config = AppConfig(listener=ListenerConfig(area_of_interest=NORTH_SEA))
        pipeline = AtonPipeline.from_config(config, event_source=LocalEventSource(), delivery_client=delivery)
        try:
            pipeline.start()
            assert pipeline.listener.registered
            assert pipeline.signer is None
        finally:
            pipeline.stop()
