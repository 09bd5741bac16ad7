"""
Shared fixtures: every test gets its own database files under tmp_path.
"""

import pytest

from src.core.corpus import CorpusIndex
from src.core.dao import ProfileCache
from src.core.db import RecordStore
from src.core.keystore import KeyStore
from src.core.local_storage import LocalStorage


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "verobrix.db")


@pytest.fixture
def store(db_path):
    """An unopened record store; operations open it lazily."""
    record_store = RecordStore(db_path)
    yield record_store
    record_store.close()


@pytest.fixture
def corpus(store):
    return CorpusIndex(store)


@pytest.fixture
def key_store(store):
    return KeyStore(store)


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(str(tmp_path / "local_storage.db"))


@pytest.fixture
def cache(local_storage):
    return ProfileCache(local_storage)

