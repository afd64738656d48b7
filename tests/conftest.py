import pytest

from moltsum.core.store import SnapshotStore


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    return SnapshotStore(data_dir)
