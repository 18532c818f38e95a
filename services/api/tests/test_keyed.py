"""Tests for the keyed-map CRUD engine."""

import pytest

from catalog_admin.schemas import NewsArticle, ShoppingSite
from catalog_admin.services.errors import FetchError, NotFoundError, ValidationError, WriteError
from catalog_admin.services.keyed import KeyedCollection
from catalog_admin.stores.memory import MemoryTreeStore


def _news(store) -> KeyedCollection:
    return KeyedCollection(
        store,
        "news",
        record_model=NewsArticle,
        required=("title", "description"),
        stamp_timestamp=True,
        label="news article",
    )


def _shopping(store) -> KeyedCollection:
    return KeyedCollection(
        store,
        "Shopping",
        record_model=ShoppingSite,
        required=("name", "click"),
        embed_key=False,
        label="shopping site",
    )


@pytest.mark.asyncio
async def test_list_absent_collection_is_empty():
    assert await _news(MemoryTreeStore()).list() == {}


@pytest.mark.asyncio
async def test_create_adds_exactly_one_record_with_embedded_id():
    store = MemoryTreeStore({"news": {"-Old": {"id": "-Old", "title": "Old", "description": "d"}}})
    news = _news(store)
    before = await news.list()

    key, written = await news.create({"title": "  Launch ", "description": "New app", "isSponsored": True})
    after = await news.list()

    assert len(after) == len(before) + 1
    record = after[key]
    assert record["id"] == key
    assert record["title"] == "Launch"
    assert record["description"] == "New app"
    assert record["isSponsored"] is True
    assert record["timestamp"] > 0
    assert record["likes"] == 0
    assert written == record


@pytest.mark.asyncio
async def test_create_without_embedded_key():
    store = MemoryTreeStore()
    key, _ = await _shopping(store).create({"name": "Amazon", "click": "https://amazon.com", "images": "a.png"})
    assert store.root["Shopping"][key] == {"name": "Amazon", "click": "https://amazon.com", "images": "a.png"}


@pytest.mark.asyncio
async def test_blank_required_field_makes_no_store_call():
    store = MemoryTreeStore()
    with pytest.raises(ValidationError) as exc_info:
        await _shopping(store).create({"name": "   ", "click": "https://x"})

    assert store.calls == []
    assert exc_info.value.detail == {"missing": ["name"]}


@pytest.mark.asyncio
async def test_update_is_full_overwrite():
    store = MemoryTreeStore(
        {"Shopping": {"k1": {"name": "Amazon", "click": "https://a", "images": "a.png", "legacy": 1}}}
    )
    shopping = _shopping(store)
    stored = await shopping.update("k1", {"name": "Amazon DE", "click": "https://a.de"})

    assert stored == {"name": "Amazon DE", "click": "https://a.de", "images": ""}
    assert (await shopping.list())["k1"] == stored


@pytest.mark.asyncio
async def test_update_keeps_given_timestamp_and_forces_id():
    store = MemoryTreeStore()
    news = _news(store)
    stored = await news.update("p1", {"id": "other", "title": "T", "description": "D", "timestamp": 1234})
    assert stored["timestamp"] == 1234
    assert stored["id"] == "p1"


@pytest.mark.asyncio
async def test_delete_removes_only_that_key():
    store = MemoryTreeStore({"Shopping": {"k1": {"name": "A"}, "k2": {"name": "B"}}})
    shopping = _shopping(store)
    await shopping.delete("k1")

    after = await shopping.list()
    assert "k1" not in after
    assert after == {"k2": {"name": "B"}}


@pytest.mark.asyncio
async def test_invalid_key_is_not_found():
    with pytest.raises(NotFoundError):
        await _shopping(MemoryTreeStore()).delete("a/b")


@pytest.mark.asyncio
async def test_store_failures_map_to_fetch_and_write_errors(flaky_store):
    with pytest.raises(FetchError):
        await _news(flaky_store(fail_ops={"read"})).list()

    store = flaky_store({"Shopping": {"k1": {"name": "A"}}}, fail_ops={"write", "delete"})
    shopping = _shopping(store)
    with pytest.raises(WriteError):
        await shopping.create({"name": "B", "click": "https://b"})
    with pytest.raises(WriteError):
        await shopping.delete("k1")
    assert store.root == {"Shopping": {"k1": {"name": "A"}}}


@pytest.mark.asyncio
async def test_timestamp_is_stamped_on_create_only(monkeypatch: pytest.MonkeyPatch):
    from catalog_admin.services import keyed

    monkeypatch.setattr(keyed, "now_ms", lambda: 1_700_000_000_000)
    store = MemoryTreeStore()
    news = _news(store)

    key, created = await news.create({"title": "T", "description": "D", "timestamp": 5})
    assert created["timestamp"] == 1_700_000_000_000
    assert store.root["news"][key]["timestamp"] == 1_700_000_000_000

    stored = await news.update(key, {"title": "T", "description": "D", "timestamp": 0})
    assert stored["timestamp"] == 0
    assert store.root["news"][key]["timestamp"] == 0
