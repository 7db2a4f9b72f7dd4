"""
AtonReconciler tests - publications, NotFound on delete, per-key ordering.
"""

import threading

import pytest

from core.models import DatasetOperation, PublicationKind
from exceptions import ContractViolationError, ResourceNotFoundError
from services.aton_reconciler import AtonReconciler
from tests.factories.model_factories import make_record


@pytest.fixture
def reconciler(memory_repos, recording_channel):
    return AtonReconciler(memory_repos['aton_repo'], recording_channel)


class TestUpsert:

    def test_first_upsert_publishes_created(self, reconciler, recording_channel):
        reconciler.upsert(make_record("A"))
        publication = recording_channel.publications[0]
        assert publication.kind == PublicationKind.PUBLISHED
        assert publication.operation == DatasetOperation.CREATED
        assert publication.previous is None

    def test_second_upsert_publishes_updated_with_previous(self, reconciler, recording_channel):
        reconciler.upsert(make_record("A", textual_description="v1"))
        reconciler.upsert(make_record("A", textual_description="v2"))
        publication = recording_channel.publications[-1]
        assert publication.operation == DatasetOperation.UPDATED
        assert publication.previous.textual_description == "v1"
        assert publication.record.textual_description == "v2"

    def test_explicit_operation_kept(self, reconciler, recording_channel):
        reconciler.upsert(make_record("A"), operation=DatasetOperation.UPDATED)
        assert recording_channel.publications[0].operation == DatasetOperation.UPDATED

    def test_rejects_non_record(self, reconciler):
        with pytest.raises(ContractViolationError):
            reconciler.upsert({"id_code": "A"})

    def test_get_unknown(self, reconciler):
        with pytest.raises(ResourceNotFoundError):
            reconciler.get("nope")


class TestDelete:

    def test_unknown_raises_and_publishes_nothing(self, reconciler, recording_channel):
        with pytest.raises(ResourceNotFoundError):
            reconciler.delete("ghost")
        assert recording_channel.publications == []

    def test_publishes_deletion(self, reconciler, recording_channel):
        reconciler.upsert(make_record("A"))
        removed = reconciler.delete("A")
        publication = recording_channel.publications[-1]
        assert removed.id_code == "A"
        assert publication.kind == PublicationKind.DELETED
        assert publication.deletion
        assert publication.operation == DatasetOperation.DELETED

    def test_delete_twice(self, reconciler):
        reconciler.upsert(make_record("A"))
        reconciler.delete("A")
        with pytest.raises(ResourceNotFoundError):
            reconciler.delete("A")


class TestConcurrency:

    def test_last_publication_matches_stored_version(self, reconciler, recording_channel, memory_repos):
        start = threading.Barrier(10, timeout=5)

        def write(n):
            start.wait()
            reconciler.upsert(make_record("A", textual_description=f"v{n}"))

        threads = [threading.Thread(target=write, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        stored = memory_repos['aton_repo'].get("A")
        assert len(recording_channel.publications) == 10
        assert recording_channel.publications[-1].record.textual_description == stored.textual_description
        created = [p for p in recording_channel.publications if p.operation == DatasetOperation.CREATED]
        assert len(created) == 1
