"""
Shared fixtures.

Relational tests run on SQLite files in tmp_path through aiosqlite, so no
database server is needed.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from shortener.core.setting import Settings
from shortener.main import create_app
from shortener.services.deletion_pipeline import start_deletion_producer
from shortener.services.url_service import URLShorteningService
from shortener.storage import DatabaseStorage, DeletionRequest, FileStorage

BASE_URL = "http://sho.rt"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep process environment variables out of Settings()."""
    for name in (
        "CONFIG",
        "SERVER_ADDRESS",
        "BASE_URL",
        "FILE_STORAGE_PATH",
        "DATABASE_DSN",
        "TRUSTED_SUBNET",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def log_path(tmp_path):
    return str(tmp_path / "urls.jsonl")


@pytest.fixture
def sqlite_dsn(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'urls.db'}"


@pytest_asyncio.fixture
async def memory_storage():
    storage = FileStorage()
    await storage.initialize()
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def file_storage(log_path):
    storage = FileStorage(log_path)
    await storage.initialize()
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def database_storage(sqlite_dsn):
    storage = DatabaseStorage(sqlite_dsn)
    await storage.initialize()
    yield storage
    await storage.close()


@pytest_asyncio.fixture(params=["memory", "file", "relational"])
async def storage(request, log_path, sqlite_dsn):
    """Every backend, for behaviour all of them must share."""
    if request.param == "memory":
        backend = FileStorage()
    elif request.param == "file":
        backend = FileStorage(log_path)
    else:
        backend = DatabaseStorage(sqlite_dsn)
    await backend.initialize()
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def service(memory_storage):
    return URLShorteningService(memory_storage, base_url=BASE_URL, timeout=5.0)


async def _delete_codes(storage, owner_id, codes, maxsize=2):
    """Run one deletion sweep through the pipeline."""
    requests = [DeletionRequest(owner_id=owner_id, code=code) for code in codes]
    stream, producer = start_deletion_producer(requests, maxsize=maxsize)
    await storage.mark_deleted(stream)
    await producer


def _make_settings(**overrides) -> Settings:
    values = {
        "base_url": BASE_URL,
        "file_storage_path": "",
        "database_dsn": "",
        "trusted_subnet": "10.0.0.0/8",
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def delete_codes():
    return _delete_codes


@pytest.fixture
def make_settings():
    return _make_settings


@pytest.fixture
def client():
    app = create_app(_make_settings())
    with TestClient(app) as test_client:
        yield test_client
