from __future__ import annotations
import os
import tempfile

# Must be set before app.config is imported anywhere
_DB_DIR = tempfile.mkdtemp(prefix="retos-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/retos.db"
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from app.db import Base, SessionLocal, engine
import app.models.room  # noqa: F401  register tables
import app.models.player  # noqa: F401
import app.models.challenge  # noqa: F401
from app.services import catalog, storage


class FakeStorage:
    """In-memory stand-in for the MinIO helpers in app.services.storage."""

    def __init__(self):
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.fail_deletes = False
        self.deleted: list[tuple[str, str]] = []

    def put_bytes(self, bucket, key, data, content_type):
        self.objects[(bucket, key)] = (data, content_type)

    def object_exists(self, bucket, key):
        return (bucket, key) in self.objects

    def remove_objects(self, bucket, keys):
        if self.fail_deletes:
            raise RuntimeError("storage offline")
        for k in keys:
            self.objects.pop((bucket, k), None)
            self.deleted.append((bucket, k))

    def presign_get(self, bucket, key):
        return f"http://storage.test/{bucket}/{key}?sig=get"

    def presign_put(self, bucket, key):
        return f"http://storage.test/{bucket}/{key}?sig=put"


@pytest.fixture
def fake_storage(monkeypatch):
    fake = FakeStorage()
    for name in ("put_bytes", "object_exists", "remove_objects", "presign_get", "presign_put"):
        monkeypatch.setattr(storage, name, getattr(fake, name))
    return fake


@pytest_asyncio.fixture
async def db(fake_storage):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(db):
    async with SessionLocal() as session:
        await catalog.seed(session)
