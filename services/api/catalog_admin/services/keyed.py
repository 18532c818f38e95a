"""CRUD engine for keyed-map collections (news, news categories, shopping...).

Each record lives at `path/key` under a store-generated key. Mutations
target exactly one key's subtree; updates are full overwrites, so callers
resupply every field.
"""

from collections.abc import Mapping
import logging
import time
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from catalog_admin.schemas.records import StoreRecord
from catalog_admin.services.decoding import decode_mapping
from catalog_admin.services.errors import (
    FetchError,
    NotFoundError,
    ValidationError,
    WriteError,
    require_fields,
)
from catalog_admin.stores.tree import StoreError, TreeStore, join_path

logger = logging.getLogger("uvicorn.error")


def now_ms() -> int:
    return int(time.time() * 1000)


def validate_record(
    record: Mapping[str, Any],
    record_model: type[StoreRecord],
    required: tuple[str, ...],
) -> dict[str, Any]:
    """Coerce a form payload into store shape and check required fields.

    Required string fields are stored trimmed.
    """
    try:
        data = record_model.model_validate(dict(record)).to_store()
    except PydanticValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationError("Invalid field values", detail={"fields": fields}) from e
    require_fields(data, required)
    for name in required:
        data[name] = str(data[name]).strip()
    return data


class KeyedCollection:
    """Keyed-map CRUD against one collection path."""

    def __init__(
        self,
        store: TreeStore,
        path: str,
        *,
        record_model: type[StoreRecord] = StoreRecord,
        required: tuple[str, ...] = (),
        embed_key: bool = True,
        stamp_timestamp: bool = False,
        label: str = "record",
    ):
        self.store = store
        self.path = path
        self.record_model = record_model
        self.required = required
        self.embed_key = embed_key
        self.stamp_timestamp = stamp_timestamp
        self.label = label

    def _child(self, key: str) -> str:
        try:
            return join_path(self.path, key)
        except ValueError as e:
            raise NotFoundError(f"No {self.label} with key {key!r}") from e

    async def list(self) -> dict[str, dict[str, Any]]:
        """One-shot read of the whole collection ({} when absent)."""
        try:
            snap = await self.store.read(self.path)
        except StoreError as e:
            raise FetchError(f"Failed to fetch {self.label}s: {e}") from e
        return decode_mapping(snap.value, path=self.path) if snap.exists else {}

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            snap = await self.store.read(self._child(key))
        except StoreError as e:
            raise FetchError(f"Failed to fetch {self.label}: {e}") from e
        return snap.value if snap.exists and isinstance(snap.value, dict) else None

    def prepare(self, record: Mapping[str, Any], *, key: str | None = None) -> dict[str, Any]:
        """Validate a form payload and shape it for writing.

        Raises:
            ValidationError: before any store call.
        """
        data = validate_record(record, self.record_model, self.required)
        if self.embed_key:
            if key:
                data["id"] = key
            else:
                data.pop("id", None)
        return data

    async def create(self, record: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
        """Write a new record under a fresh key.

        Returns the key and the record as written. Timestamped collections
        get the creation time; updates never touch `timestamp`.
        """
        data = self.prepare(record)
        if self.stamp_timestamp:
            data["timestamp"] = now_ms()
        try:
            key = await self.store.create_key(self.path)
            if self.embed_key:
                data["id"] = key
            await self.store.write(join_path(self.path, key), data)
        except StoreError as e:
            raise WriteError(f"Failed to add {self.label}: {e}") from e
        logger.info(f"[keyed] created {self.path}/{key}")
        return key, data

    async def update(self, key: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Overwrite the record at `key`; returns what was written."""
        path = self._child(key)
        data = self.prepare(record, key=key)
        try:
            await self.store.write(path, data)
        except StoreError as e:
            raise WriteError(f"Failed to update {self.label}: {e}") from e
        logger.info(f"[keyed] updated {path}")
        return data

    async def delete(self, key: str) -> None:
        """Remove exactly the subtree at `key`."""
        path = self._child(key)
        try:
            await self.store.delete(path)
        except StoreError as e:
            raise WriteError(f"Failed to delete {self.label}: {e}") from e
        logger.info(f"[keyed] deleted {path}")
