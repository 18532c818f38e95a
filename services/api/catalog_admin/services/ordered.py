"""CRUD engine for ordered-array collections (best sellers, trending, shop categories).

Identity is the position in the sequence. Every mutation reads the current
sequence, applies one index operation and writes the whole sequence back in
a single call; there is no per-element write. Two admins editing the same
collection concurrently means last writer wins for the whole list.
"""

from collections.abc import Callable, Mapping
import copy
import logging
from typing import Any

from catalog_admin.schemas.records import StoreRecord
from catalog_admin.services.decoding import DecodeError, decode_sequence
from catalog_admin.services.errors import FetchError, NotFoundError, WriteError
from catalog_admin.services.keyed import validate_record
from catalog_admin.stores.tree import StoreError, TreeStore

logger = logging.getLogger("uvicorn.error")

Sequence = list[dict[str, Any]]


def _check_index(items: Sequence, index: int, label: str) -> None:
    if index < 0 or index >= len(items):
        raise NotFoundError(f"No {label} at index {index}", detail={"index": index, "size": len(items)})


class OrderedCollection:
    """Whole-sequence CRUD against one collection path."""

    def __init__(
        self,
        store: TreeStore,
        path: str,
        *,
        record_model: type[StoreRecord] = StoreRecord,
        required: tuple[str, ...] = (),
        append_defaults: Mapping[str, Any] | None = None,
        label: str = "item",
    ):
        self.store = store
        self.path = path
        self.record_model = record_model
        self.required = required
        self.append_defaults = dict(append_defaults or {})
        self.label = label

    async def list(self) -> Sequence:
        """Read the sequence, normalizing a map-shaped (sparse) array."""
        try:
            snap = await self.store.read(self.path)
        except StoreError as e:
            raise FetchError(f"Failed to fetch {self.label}s: {e}") from e
        return decode_sequence(snap.value, path=self.path) if snap.exists else []

    def prepare(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return validate_record(record, self.record_model, self.required)

    async def append(self, record: Mapping[str, Any]) -> Sequence:
        data = self.prepare(record)
        data.update(copy.deepcopy(self.append_defaults))
        return await self.mutate(lambda items: items.append(data), action="add")

    async def replace_at(self, index: int, record: Mapping[str, Any]) -> Sequence:
        data = self.prepare(record)

        def _replace(items: Sequence) -> None:
            _check_index(items, index, self.label)
            items[index] = data

        return await self.mutate(_replace, action="update")

    async def remove_at(self, index: int) -> Sequence:
        def _remove(items: Sequence) -> None:
            _check_index(items, index, self.label)
            del items[index]

        return await self.mutate(_remove, action="delete")

    async def mutate(self, mutator: Callable[[Sequence], None], *, action: str) -> Sequence:
        """Read, apply `mutator` in place, rewrite the whole sequence.

        Returns the sequence that was written.
        """
        try:
            snap = await self.store.read(self.path)
        except StoreError as e:
            raise WriteError(f"Failed to {action} {self.label}: {e}") from e
        try:
            items = decode_sequence(snap.value, path=self.path, strict=True) if snap.exists else []
            mutator(items)
        except DecodeError as e:
            # Rewriting would delete the elements the decoder cannot represent.
            logger.warning(f"[ordered] refusing to {action} {self.path}: {e}")
            raise WriteError(
                f"Cannot {action} {self.label}: the stored list holds entries this dashboard cannot edit",
                detail={"path": e.path},
            ) from e
        await self.rewrite(items, action=action)
        return items

    async def rewrite(self, items: Sequence, *, action: str = "update") -> None:
        try:
            await self.store.write(self.path, items)
        except StoreError as e:
            raise WriteError(f"Failed to {action} {self.label}: {e}") from e
        logger.info(f"[ordered] {action} {self.path} -> {len(items)} {self.label}(s)")


class NestedItems:
    """Item lists nested one level inside an ordered collection.

    Every item change rewrites the whole parent collection, items included.
    """

    def __init__(
        self,
        collection: OrderedCollection,
        *,
        field: str = "items",
        item_model: type[StoreRecord] = StoreRecord,
        required: tuple[str, ...] = (),
        label: str = "item",
    ):
        self.collection = collection
        self.field = field
        self.item_model = item_model
        self.required = required
        self.label = label

    def prepare(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return validate_record(item, self.item_model, self.required)

    def _items(self, parents: Sequence, parent_index: int) -> list[dict[str, Any]]:
        _check_index(parents, parent_index, self.collection.label)
        parent = parents[parent_index]
        items = decode_sequence(
            parent.get(self.field), path=f"{self.collection.path}/{parent_index}/{self.field}", strict=True
        )
        parent[self.field] = items
        return items

    async def append_item(self, parent_index: int, item: Mapping[str, Any]) -> Sequence:
        data = self.prepare(item)
        return await self.collection.mutate(
            lambda parents: self._items(parents, parent_index).append(data),
            action="add",
        )

    async def replace_item(self, parent_index: int, item_index: int, item: Mapping[str, Any]) -> Sequence:
        data = self.prepare(item)

        def _replace(parents: Sequence) -> None:
            items = self._items(parents, parent_index)
            _check_index(items, item_index, self.label)
            items[item_index] = data

        return await self.collection.mutate(_replace, action="update")

    async def remove_item(self, parent_index: int, item_index: int) -> Sequence:
        def _remove(parents: Sequence) -> None:
            items = self._items(parents, parent_index)
            _check_index(items, item_index, self.label)
            del items[item_index]

        return await self.collection.mutate(_remove, action="delete")
