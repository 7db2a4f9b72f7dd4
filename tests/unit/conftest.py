"""
Unit test fixtures - factory-built models and in-memory pipeline parts.
"""

import pytest

from tests.factories.doubles import RecordingChannel
from tests.factories.model_factories import make_dataset


@pytest.fixture
def dataset_data():
    """Return randomized dataset data dict (North Sea box)."""
    return make_dataset()


@pytest.fixture
def recording_channel():
    return RecordingChannel()


@pytest.fixture
def content_engine(memory_repos):
    from services.dataset_content_engine import DatasetContentEngine
    from services.serialization import JsonContentSerializer
    return DatasetContentEngine(
        memory_repos['dataset_repo'],
        memory_repos['aton_repo'],
        memory_repos['content_repo'],
        JsonContentSerializer(),
    )


@pytest.fixture
def saved_dataset(memory_repos, dataset_data):
    from core.models import Dataset
    return memory_repos['dataset_repo'].save(Dataset(**dataset_data))
