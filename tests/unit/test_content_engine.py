"""
DatasetContentEngine tests - version sequence, deltas, withdrawal,
publication fan-out.
"""

import json
import threading
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from core.models import AtonPublication, Dataset, DatasetOperation, PublicationKind
from exceptions import DatasetCancelledError, ResourceNotFoundError
from tests.factories.model_factories import box_wkt, make_dataset, make_record


class TestRequestContentUpdate:

    def test_first_version_created_with_empty_delta(self, content_engine, saved_dataset):
        entry = content_engine.request_content_update(saved_dataset.uuid)
        assert entry.sequence_no == 0
        assert entry.operation == DatasetOperation.CREATED
        assert entry.delta == ""
        assert entry.delta_length == 0

    def test_regeneration_without_changes_is_byte_identical(self, content_engine, memory_repos, saved_dataset):
        memory_repos['aton_repo'].upsert(make_record("A", lon=1.0, lat=53.0))
        first = content_engine.request_content_update(saved_dataset.uuid)
        second = content_engine.request_content_update(saved_dataset.uuid)
        assert second.sequence_no == 1
        assert second.operation == DatasetOperation.UPDATED
        assert second.content == first.content
        assert second.delta == ""

    def test_delta_reflects_new_member(self, content_engine, memory_repos, saved_dataset):
        content_engine.request_content_update(saved_dataset.uuid)
        memory_repos['aton_repo'].upsert(make_record("AtoN-NEW", lon=1.0, lat=53.0))
        entry = content_engine.request_content_update(saved_dataset.uuid)
        assert "AtoN-NEW" in entry.delta
        assert entry.delta_length == len(entry.delta)

    def test_content_lists_intersecting_records_only(self, content_engine, memory_repos, saved_dataset):
        repo = memory_repos['aton_repo']
        repo.upsert(make_record("B", lon=2.0, lat=54.0))
        repo.upsert(make_record("A", lon=1.0, lat=53.0))
        repo.upsert(make_record("far", lon=60.0, lat=0.0))
        entry = content_engine.request_content_update(saved_dataset.uuid)
        members = json.loads(entry.content)["members"]
        assert [m["id_code"] for m in members] == ["A", "B"]

    def test_current_content_follows_log(self, content_engine, memory_repos, saved_dataset):
        entry = content_engine.request_content_update(saved_dataset.uuid)
        current = memory_repos['content_repo'].get_content(saved_dataset.uuid)
        assert current.sequence_no == entry.sequence_no
        assert current.content == entry.content

    def test_unknown_dataset(self, content_engine):
        with pytest.raises(ResourceNotFoundError):
            content_engine.request_content_update(uuid4())

    def test_concurrent_requests_keep_contiguous_sequence(self, content_engine, memory_repos, saved_dataset):
        start = threading.Barrier(8, timeout=5)
        errors = []

        def request():
            start.wait()
            try:
                content_engine.request_content_update(saved_dataset.uuid)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=request) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        logs = memory_repos['content_repo'].logs(saved_dataset.uuid)
        assert [e.sequence_no for e in logs] == list(range(len(logs)))
        assert logs[0].delta == ""
        assert 1 <= len(logs) <= 8


class TestCancellation:

    def test_cancel_then_update_rejected(self, content_engine, memory_repos, saved_dataset):
        content_engine.request_content_update(saved_dataset.uuid)
        cancelled = content_engine.cancel_dataset(saved_dataset.uuid)
        assert cancelled.operation == DatasetOperation.CANCELLED
        assert cancelled.sequence_no == 1

        with pytest.raises(DatasetCancelledError):
            content_engine.request_content_update(saved_dataset.uuid)
        assert len(memory_repos['content_repo'].logs(saved_dataset.uuid)) == 2
        assert memory_repos['dataset_repo'].get(saved_dataset.uuid).cancelled

    def test_cancel_twice(self, content_engine, saved_dataset):
        content_engine.cancel_dataset(saved_dataset.uuid)
        with pytest.raises(DatasetCancelledError):
            content_engine.cancel_dataset(saved_dataset.uuid)

    def test_cancel_without_content_starts_at_zero(self, content_engine, saved_dataset):
        entry = content_engine.cancel_dataset(saved_dataset.uuid)
        assert entry.sequence_no == 0
        assert entry.content is None


class TestDeletion:

    def test_delete_keeps_history(self, content_engine, memory_repos, saved_dataset):
        content_engine.request_content_update(saved_dataset.uuid)
        entry = content_engine.delete_dataset(saved_dataset.uuid)
        assert entry.operation == DatasetOperation.DELETED
        assert memory_repos['dataset_repo'].get(saved_dataset.uuid) is None
        assert memory_repos['content_repo'].get_content(saved_dataset.uuid) is None
        assert len(memory_repos['content_repo'].logs(saved_dataset.uuid)) == 2

    def test_delete_unknown(self, content_engine):
        with pytest.raises(ResourceNotFoundError):
            content_engine.delete_dataset(uuid4())


class TestQueries:

    def test_initial_and_deltas(self, content_engine, saved_dataset):
        for _ in range(3):
            content_engine.request_content_update(saved_dataset.uuid)
        assert content_engine.initial_for(saved_dataset.uuid).sequence_no == 0
        assert [e.sequence_no for e in content_engine.deltas(saved_dataset.uuid)] == [1, 2]

    def test_initial_missing(self, content_engine, saved_dataset):
        with pytest.raises(ResourceNotFoundError):
            content_engine.initial_for(saved_dataset.uuid)

    def test_logs_for_newest_first(self, content_engine, saved_dataset):
        for _ in range(3):
            content_engine.request_content_update(saved_dataset.uuid)
        logs = content_engine.logs_for(saved_dataset.uuid, datetime.now(timezone.utc) + timedelta(seconds=1))
        assert [e.sequence_no for e in logs] == [2, 1, 0]

    def test_logs_during_oldest_first(self, content_engine, saved_dataset):
        for _ in range(2):
            content_engine.request_content_update(saved_dataset.uuid)
        logs = content_engine.logs_during(saved_dataset.uuid, None, None)
        assert [e.sequence_no for e in logs] == [0, 1]

    def test_latest_content_generated_on_demand(self, content_engine, saved_dataset):
        content = content_engine.latest_content(saved_dataset.uuid)
        assert content.sequence_no == 0
        assert content_engine.latest_content(saved_dataset.uuid).sequence_no == 0

    def test_latest_content_before_first_version(self, content_engine, saved_dataset):
        content_engine.request_content_update(saved_dataset.uuid)
        with pytest.raises(ResourceNotFoundError):
            content_engine.latest_content(saved_dataset.uuid, at=datetime(2000, 1, 1, tzinfo=timezone.utc))


class TestHandlePublication:

    def _publication(self, record, previous=None):
        return AtonPublication(kind=PublicationKind.PUBLISHED, record=record, previous=previous)

    def test_matching_dataset_regenerated(self, content_engine, memory_repos, saved_dataset):
        record = make_record("A", lon=1.0, lat=53.0)
        memory_repos['aton_repo'].upsert(record)
        publication = self._publication(record)
        assert content_engine.handle_publication(publication) == [saved_dataset.uuid]
        assert publication.datasets.result(timeout=1) == [saved_dataset.uuid]

    def test_non_matching_record_resolves_empty(self, content_engine, memory_repos, saved_dataset):
        publication = self._publication(make_record("far", lon=60.0, lat=0.0))
        assert content_engine.handle_publication(publication) == []
        assert memory_repos['content_repo'].logs(saved_dataset.uuid) == []

    def test_expired_record_does_not_trigger(self, content_engine, saved_dataset):
        record = make_record("old", lon=1.0, lat=53.0, date_start=date(2000, 1, 1), date_end=date(2000, 12, 31))
        assert content_engine.handle_publication(self._publication(record)) == []

    def test_moved_record_refreshes_old_dataset(self, content_engine, memory_repos, saved_dataset):
        west = memory_repos['dataset_repo'].save(Dataset(**make_dataset(geometry=box_wkt(-10, 40, -5, 45))))
        before = make_record("A", lon=1.0, lat=53.0)
        after = make_record("A", lon=-7.0, lat=42.0)
        memory_repos['aton_repo'].upsert(after)
        updated = content_engine.handle_publication(self._publication(after, previous=before))
        assert set(updated) == {saved_dataset.uuid, west.uuid}

    def test_cancelled_dataset_skipped(self, content_engine, memory_repos, saved_dataset):
        content_engine.cancel_dataset(saved_dataset.uuid)
        record = make_record("A", lon=1.0, lat=53.0)
        assert content_engine.handle_publication(self._publication(record)) == []
        assert len(memory_repos['content_repo'].logs(saved_dataset.uuid)) == 1

    def test_matching_datasets(self, content_engine, saved_dataset):
        record = make_record("A", lon=1.0, lat=53.0)
        assert [d.uuid for d in content_engine.matching_datasets(record)] == [saved_dataset.uuid]

    def test_deleting_expired_record_withdraws_it(self, content_engine, memory_repos, saved_dataset):
        lapsed = date.today() - timedelta(days=10)
        record = make_record("lapsed", lon=1.0, lat=53.0,
                             date_start=lapsed - timedelta(days=30), date_end=lapsed)
        memory_repos['aton_repo'].upsert(record)
        content_engine.request_content_update(saved_dataset.uuid)
        removed = memory_repos['aton_repo'].delete("lapsed")

        publication = AtonPublication(
            kind=PublicationKind.DELETED,
            record=removed,
            operation=DatasetOperation.DELETED,
        )
        assert content_engine.handle_publication(publication) == [saved_dataset.uuid]
        assert "lapsed" not in content_engine.latest_content(saved_dataset.uuid).content

    def test_expired_previous_version_refreshes_dataset(self, content_engine, memory_repos, saved_dataset):
        lapsed = date.today() - timedelta(days=10)
        before = make_record("A", lon=1.0, lat=53.0, date_start=lapsed - timedelta(days=30), date_end=lapsed)
        after = make_record("A", lon=60.0, lat=0.0)
        memory_repos['aton_repo'].upsert(after)
        updated = content_engine.handle_publication(self._publication(after, previous=before))
        assert updated == [saved_dataset.uuid]
