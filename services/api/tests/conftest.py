"""Shared fixtures: an in-memory tree store installed as the app's store."""

import pytest
from httpx import ASGITransport, AsyncClient

from catalog_admin.main import app
from catalog_admin.stores import tree as tree_store
from catalog_admin.stores.memory import MemoryTreeStore
from catalog_admin.stores.tree import Snapshot, StoreError


class FlakyTreeStore(MemoryTreeStore):
    """Memory store that fails selected operations (optionally on one path)."""

    def __init__(self, data=None, *, fail_ops=(), fail_path=None):
        super().__init__(data)
        self.fail_ops = set(fail_ops)
        self.fail_path = fail_path

    def _maybe_fail(self, op: str, path: str) -> None:
        if op in self.fail_ops and (self.fail_path is None or path == self.fail_path):
            self.calls.append((op, path))
            raise StoreError(f"{op} {path}: service unavailable", status_code=503)

    async def read(self, path: str) -> Snapshot:
        self._maybe_fail("read", path)
        return await super().read(path)

    async def write(self, path, value) -> None:
        self._maybe_fail("write", path)
        await super().write(path, value)

    async def delete(self, path: str) -> None:
        self._maybe_fail("delete", path)
        await super().delete(path)


@pytest.fixture
def flaky_store():
    """Factory for stores that fail on demand."""
    return FlakyTreeStore


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> MemoryTreeStore:
    """Empty in-memory store installed as the application store."""
    memory = MemoryTreeStore()
    monkeypatch.setattr(tree_store, "_store", memory)
    return memory


@pytest.fixture
async def client(store: MemoryTreeStore):
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
