"""Tests for the interactive dashboard managers."""

import asyncio
import copy

import pytest

from catalog_admin.services.console import ConsoleSessions, Dashboard, Manager
from catalog_admin.services.errors import AdminError, NotFoundError
from catalog_admin.services.inflight import InflightGuard
from catalog_admin.services.sections import SECTIONS, get_section
from catalog_admin.services.view_state import Adding, Editing, ItemTarget, RowTarget, Viewing
from catalog_admin.stores.memory import MemoryTreeStore
from catalog_admin.stores.tree import Snapshot


def _manager(section_id: str, store) -> Manager:
    return Manager(get_section(section_id), store, guard=InflightGuard())


def _writes(store: MemoryTreeStore) -> list[tuple[str, str]]:
    return [c for c in store.calls if c[0] != "read"]


SHOPPING = {"Shopping": {"k1": {"name": "Amazon", "click": "https://amazon.com", "images": "a.png"}}}


@pytest.mark.asyncio
async def test_mount_reads_collection_and_lookups():
    store = MemoryTreeStore(
        {
            "news": {"p1": {"id": "p1", "title": "Hello", "category": "c1"}},
            "categories": {"c1": {"id": "c1", "name": "Tech"}},
        }
    )
    manager = _manager("news", store)

    await manager.mount()

    assert sorted(store.calls) == [("read", "categories"), ("read", "news")]
    assert manager.loading is False
    assert list(manager.records) == ["p1"]
    assert manager.lookups == {"categories": {"c1": {"id": "c1", "name": "Tech"}}}


@pytest.mark.asyncio
async def test_mount_failure_leaves_empty_view_with_error(flaky_store):
    manager = _manager("shopping", flaky_store(SHOPPING, fail_ops={"read"}))

    await manager.mount()

    assert manager.loading is False
    assert manager.records == {}
    (note,) = manager.drain_notifications()
    assert note.level == "error"


@pytest.mark.asyncio
async def test_add_edit_cancel_transitions():
    manager = _manager("shopping", MemoryTreeStore(SHOPPING))
    await manager.mount()

    adding = manager.begin_add()
    assert isinstance(adding, Adding)
    assert adding.form == {"name": "", "click": "", "images": ""}

    editing = manager.begin_edit("k1")
    assert isinstance(editing, Editing)
    assert editing.form["name"] == "Amazon"

    assert isinstance(manager.cancel(), Viewing)
    with pytest.raises(NotFoundError):
        manager.begin_edit("missing")


@pytest.mark.asyncio
async def test_blank_save_keeps_form_and_issues_no_write():
    store = MemoryTreeStore()
    manager = _manager("shopping", store)
    await manager.mount()
    manager.begin_add()

    ok = await manager.save({"name": "  ", "click": "https://x"})

    assert ok is False
    assert isinstance(manager.state, Adding)
    assert manager.state.form == {"name": "  ", "click": "https://x"}
    assert _writes(store) == []
    (note,) = manager.drain_notifications()
    assert note.message == "Please fill in all required fields"


@pytest.mark.asyncio
async def test_successful_add_updates_records_and_returns_to_viewing():
    store = MemoryTreeStore()
    manager = _manager("shopping", store)
    await manager.mount()
    manager.begin_add()

    assert await manager.save({"name": "Flipkart", "click": "https://flipkart.com"}) is True

    assert isinstance(manager.state, Viewing)
    (key,) = manager.records
    assert manager.records[key]["name"] == "Flipkart"
    assert store.root["Shopping"][key] == manager.records[key]
    (note,) = manager.drain_notifications()
    assert (note.level, note.message) == ("success", "Shopping site added successfully!")


@pytest.mark.asyncio
async def test_failed_edit_keeps_editing_and_local_records(flaky_store):
    store = flaky_store(SHOPPING, fail_ops={"write"})
    manager = _manager("shopping", store)
    await manager.mount()
    manager.begin_edit("k1")

    ok = await manager.save({"name": "Amazon IN", "click": "https://amazon.in"})

    assert ok is False
    assert isinstance(manager.state, Editing)
    assert manager.state.form["name"] == "Amazon IN"
    assert manager.records["k1"]["name"] == "Amazon"
    assert manager.drain_notifications()[0].level == "error"


@pytest.mark.asyncio
async def test_unconfirmed_delete_issues_nothing():
    store = MemoryTreeStore(SHOPPING)
    manager = _manager("shopping", store)
    await manager.mount()

    assert await manager.delete("k1", confirmed=False) is False
    assert _writes(store) == []
    assert "k1" in manager.records


@pytest.mark.asyncio
async def test_confirmed_keyed_delete():
    store = MemoryTreeStore(SHOPPING)
    manager = _manager("shopping", store)
    await manager.mount()
    manager.begin_edit("k1")

    assert await manager.delete("k1", confirmed=True) is True

    assert _writes(store) == [("delete", "Shopping/k1")]
    assert manager.records == {}
    assert isinstance(manager.state, Viewing)


@pytest.mark.asyncio
async def test_ordered_delete_rewrites_sequence():
    store = MemoryTreeStore({"TrendingItemsPage": [{"title": "A"}, {"title": "B"}, {"title": "C"}]})
    manager = _manager("trending", store)
    await manager.mount()

    assert await manager.delete(1, confirmed=True) is True

    assert _writes(store) == [("write", "TrendingItemsPage")]
    assert [r["title"] for r in manager.records] == ["A", "C"]


@pytest.mark.asyncio
async def test_nested_item_add_and_edit():
    store = MemoryTreeStore({"ShopCategories": [{"title": "Phones", "image": "", "items": []}]})
    manager = _manager("shop-categories", store)
    await manager.mount()

    state = manager.begin_add(parent=0)
    assert state.parent == 0
    assert "no_of_ratings" in state.form
    assert await manager.save({"title": "Pixel", "links": "https://pixel"}) is True
    assert manager.records[0]["items"][0]["title"] == "Pixel"

    manager.begin_edit(ItemTarget(parent=0, index=0))
    assert await manager.save({"title": "Pixel 9", "links": "https://pixel"}) is True
    assert store.root["ShopCategories"][0]["items"][0]["title"] == "Pixel 9"

    with pytest.raises(NotFoundError):
        manager.begin_add(parent=4)


@pytest.mark.asyncio
async def test_join_sections_are_not_addable():
    manager = _manager("bookmarks", MemoryTreeStore())
    await manager.mount()
    with pytest.raises(AdminError):
        manager.begin_add()


@pytest.mark.asyncio
async def test_comment_edit_writes_text_only():
    store = MemoryTreeStore(
        {
            "users": {"u1": {"name": "Ann", "email": "ann@example.com"}},
            "news": {"p1": {"title": "Hello", "comments": {"c1": {"userId": "u1", "text": "Nice", "timestamp": 5}}}},
        }
    )
    manager = _manager("comments", store)
    await manager.mount()
    target = RowTarget("p1", "c1")

    assert manager.begin_edit(target).form == {"text": "Nice"}
    assert await manager.save({"text": " Great "}) is True

    assert _writes(store) == [("write", "news/p1/comments/c1/text")]
    assert manager.rows[0].text == "Great"


@pytest.mark.asyncio
async def test_relation_delete_drops_row():
    store = MemoryTreeStore({"user_likes": {"u1": {"p1": 10, "p2": 20}}})
    manager = _manager("likes", store)
    await manager.mount()

    assert await manager.delete(RowTarget("u1", "p2"), confirmed=True) is True

    assert _writes(store) == [("delete", "user_likes/u1/p2")]
    assert [(r.user_id, r.post_id) for r in manager.rows] == [("u1", "p1")]
    assert manager.view()["summary"] == {"total": 1, "distinct_users": 1, "distinct_posts": 1}


@pytest.mark.asyncio
async def test_double_save_creates_one_record():
    store = MemoryTreeStore()
    manager = _manager("shopping", store)
    await manager.mount()
    manager.begin_add()
    form = {"name": "Myntra", "click": "https://myntra.com"}

    results = await asyncio.gather(manager.save(form), manager.save(form))

    assert results == [True, True]
    assert store.count("create_key") == 1
    assert len(store.root["Shopping"]) == 1


def test_toggle_expanded():
    manager = _manager("shop-categories", MemoryTreeStore())
    assert manager.toggle_expanded(0) is True
    assert manager.toggle_expanded(1) is True
    assert manager.toggle_expanded(0) is False
    assert manager.expanded == {1}


class SlowStore(MemoryTreeStore):
    """Reads block until released."""

    def __init__(self, data=None):
        super().__init__(data)
        self.gate = asyncio.Event()

    async def read(self, path: str) -> Snapshot:
        await self.gate.wait()
        return await super().read(path)


@pytest.mark.asyncio
async def test_closed_manager_drops_late_results():
    store = SlowStore(SHOPPING)
    manager = _manager("shopping", store)

    mounting = asyncio.create_task(manager.mount())
    await asyncio.sleep(0)
    manager.close()
    store.gate.set()
    await mounting

    assert manager.records == {}
    assert manager.loading is True
    assert manager.notifications == []


@pytest.mark.asyncio
async def test_dashboard_select_closes_previous_manager():
    dashboard = Dashboard(MemoryTreeStore(SHOPPING), guard=InflightGuard())

    first = await dashboard.select(None)
    assert first.config.id == "ads"
    second = await dashboard.select("shopping")

    assert first.alive is False
    assert second.alive is True
    assert dashboard.manager() is second
    assert list(second.records) == ["k1"]

    with pytest.raises(NotFoundError):
        await dashboard.select("nope")


def test_sessions_registry():
    registry = ConsoleSessions(idle_ttl=60)
    session_id, dashboard = registry.create(MemoryTreeStore())

    assert registry.get(session_id) is dashboard
    dashboard.last_seen -= 120
    assert registry.prune() == 1
    with pytest.raises(NotFoundError):
        registry.get(session_id)


def test_sidebar_sections():
    assert list(SECTIONS)[0] == "ads"
    assert len(SECTIONS) == 18


@pytest.mark.asyncio
async def test_two_sessions_sharing_a_delete_both_update_their_records():
    store = MemoryTreeStore(SHOPPING)
    guard = InflightGuard()
    first = Manager(get_section("shopping"), store, guard=guard)
    second = Manager(get_section("shopping"), store, guard=guard)
    await first.mount()
    await second.mount()

    results = await asyncio.gather(
        first.delete("k1", confirmed=True),
        second.delete("k1", confirmed=True),
    )

    assert results == [True, True]
    assert store.count("delete") == 1
    assert first.records == {}
    assert second.records == {}
    assert second.drain_notifications()[0].level == "success"


@pytest.mark.asyncio
async def test_two_sessions_sharing_an_add_both_see_the_new_record():
    store = MemoryTreeStore()
    guard = InflightGuard()
    first = Manager(get_section("trending"), store, guard=guard)
    second = Manager(get_section("trending"), store, guard=guard)
    for manager in (first, second):
        await manager.mount()
        manager.begin_add()
    form = {"title": "Watch", "links": "https://watch"}

    assert await asyncio.gather(first.save(form), second.save(form)) == [True, True]

    assert store.count("write") == 1
    assert [r["title"] for r in first.records] == ["Watch"]
    assert [r["title"] for r in second.records] == ["Watch"]
    assert isinstance(second.state, Viewing)


@pytest.mark.asyncio
async def test_route_and_console_delete_share_one_call(store: MemoryTreeStore):
    from catalog_admin.routes import sections as section_routes

    store.root.update(copy.deepcopy(SHOPPING))
    manager = Manager(get_section("shopping"), store)
    await manager.mount()

    route_result, ok = await asyncio.gather(
        section_routes.delete_record("shopping", "k1", confirm=True),
        manager.delete("k1", confirmed=True),
    )

    assert route_result == {"deleted": "k1"}
    assert ok is True
    assert store.count("delete") == 1
    assert manager.records == {}


@pytest.mark.asyncio
async def test_route_and_console_add_share_one_call(store: MemoryTreeStore):
    from catalog_admin.routes import sections as section_routes

    manager = Manager(get_section("shopping"), store)
    await manager.mount()
    manager.begin_add()
    form = {"name": "Nykaa", "click": "https://nykaa.com"}

    created, ok = await asyncio.gather(
        section_routes.create_record("shopping", payload=dict(form)),
        manager.save(form),
    )

    assert ok is True
    assert store.count("create_key") == 1
    assert manager.records == {created["key"]: created["record"]}
    assert created["record"] == {"name": "Nykaa", "click": "https://nykaa.com", "images": ""}
