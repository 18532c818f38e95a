"""Section endpoints: stateless CRUD against each section's collection.

Routers are thin: engines in services do the reading, validation and writing.
Every mutation goes through the in-flight guard, and destructive calls need
`?confirm=true`. Guarded calls return the engine's own result, the same value
a console manager gets when it coalesces onto the same key.
"""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, Query
from pydantic import BaseModel

from catalog_admin.services.errors import AdminError, ConfirmationRequired, NotFoundError
from catalog_admin.services.inflight import fingerprint, guard
from catalog_admin.services.joins import (
    DEFAULT_PLACEHOLDERS,
    delete_comment,
    delete_relation,
    load_comment_view,
    load_relation_view,
    summarize,
    update_comment_text,
)
from catalog_admin.services.sections import SectionConfig, SectionKind, get_section
from catalog_admin.stores.tree import get_store

router = APIRouter()

RecordBody = Body(..., description="Record fields, using the store's field names")


class CommentTextRequest(BaseModel):
    """Request body for editing a comment."""

    text: str


def _section(section_id: str, *kinds: SectionKind) -> SectionConfig:
    cfg = get_section(section_id)
    if kinds and cfg.kind not in kinds:
        raise AdminError(
            f"{cfg.title} does not support this operation",
            code="UNSUPPORTED",
            detail={"kind": cfg.kind.value},
        )
    return cfg


def _index(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise NotFoundError(f"Invalid index: {value}") from None


def _confirm(cfg: SectionConfig, confirm: bool) -> None:
    if not confirm:
        raise ConfirmationRequired(cfg.confirm_message)


# ============================================================
# Records (keyed / ordered / nested)
# ============================================================


@router.get("/{section_id}/records")
async def list_records(section_id: str) -> dict:
    """Read the whole collection of a section."""
    cfg = _section(section_id, SectionKind.KEYED, SectionKind.ORDERED, SectionKind.NESTED)
    store = get_store()
    if cfg.kind == SectionKind.KEYED:
        records: Any = await cfg.keyed(store).list()
    else:
        records = await cfg.ordered(store).list()
    return {
        "section": cfg.id,
        "kind": cfg.kind.value,
        "count": len(records),
        "records": records,
    }


@router.post("/{section_id}/records", status_code=201)
async def create_record(section_id: str, payload: dict[str, Any] = RecordBody) -> dict:
    """Add a record: new key for keyed sections, appended for ordered ones."""
    cfg = _section(section_id, SectionKind.KEYED, SectionKind.ORDERED, SectionKind.NESTED)
    store = get_store()
    key = (cfg.id, "add", f"#{fingerprint(payload)}")

    if cfg.kind == SectionKind.KEYED:
        new_key, record = await guard.run(key, lambda: cfg.keyed(store).create(payload))
        return {"key": new_key, "record": record}

    items = await guard.run(key, lambda: cfg.ordered(store).append(payload))
    return {"index": len(items) - 1, "records": items}


@router.put("/{section_id}/records/{target}")
async def update_record(section_id: str, target: str, payload: dict[str, Any] = RecordBody) -> dict:
    """Full overwrite of one record (by key, or by index for ordered sections)."""
    cfg = _section(section_id, SectionKind.KEYED, SectionKind.ORDERED, SectionKind.NESTED)
    store = get_store()
    key = (cfg.id, "edit", f"{target}#{fingerprint(payload)}")

    if cfg.kind == SectionKind.KEYED:
        stored = await guard.run(key, lambda: cfg.keyed(store).update(target, payload))
        return {"key": target, "record": stored}

    index = _index(target)
    items = await guard.run(key, lambda: cfg.ordered(store).replace_at(index, payload))
    return {"index": index, "records": items}


@router.delete("/{section_id}/records/{target}")
async def delete_record(section_id: str, target: str, confirm: bool = Query(default=False)) -> dict:
    """Delete one record. Requires confirm=true."""
    cfg = _section(section_id, SectionKind.KEYED, SectionKind.ORDERED, SectionKind.NESTED)
    _confirm(cfg, confirm)
    store = get_store()
    key = (cfg.id, "delete", target)

    if cfg.kind == SectionKind.KEYED:
        await guard.run(key, lambda: cfg.keyed(store).delete(target))
        return {"deleted": target}

    index = _index(target)
    items = await guard.run(key, lambda: cfg.ordered(store).remove_at(index))
    return {"deleted": index, "records": items}


@router.post("/{section_id}/records/{parent}/items", status_code=201)
async def create_item(section_id: str, parent: str, payload: dict[str, Any] = RecordBody) -> dict:
    """Append an item to a parent's nested list (rewrites the collection)."""
    cfg = _section(section_id, SectionKind.NESTED)
    parent_index = _index(parent)
    items = await guard.run(
        (cfg.id, "add", f"{parent_index}#{fingerprint(payload)}"),
        lambda: cfg.nested(get_store()).append_item(parent_index, payload),
    )
    return {"parent": parent_index, "records": items}


@router.put("/{section_id}/records/{parent}/items/{item}")
async def update_item(section_id: str, parent: str, item: str, payload: dict[str, Any] = RecordBody) -> dict:
    cfg = _section(section_id, SectionKind.NESTED)
    parent_index, item_index = _index(parent), _index(item)
    items = await guard.run(
        (cfg.id, "edit", f"{parent_index}/{item_index}#{fingerprint(payload)}"),
        lambda: cfg.nested(get_store()).replace_item(parent_index, item_index, payload),
    )
    return {"parent": parent_index, "index": item_index, "records": items}


@router.delete("/{section_id}/records/{parent}/items/{item}")
async def delete_item(section_id: str, parent: str, item: str, confirm: bool = Query(default=False)) -> dict:
    cfg = _section(section_id, SectionKind.NESTED)
    if not confirm:
        raise ConfirmationRequired("Are you sure you want to delete this item?")
    parent_index, item_index = _index(parent), _index(item)
    items = await guard.run(
        (cfg.id, "delete", f"{parent_index}/{item_index}"),
        lambda: cfg.nested(get_store()).remove_item(parent_index, item_index),
    )
    return {"parent": parent_index, "deleted": item_index, "records": items}


# ============================================================
# Join views (bookmarks / likes / comments)
# ============================================================


@router.get("/{section_id}/rows")
async def list_rows(section_id: str) -> dict:
    """Denormalized rows (newest first) with summary counts."""
    cfg = _section(section_id, SectionKind.RELATION, SectionKind.COMMENTS)
    store = get_store()
    if cfg.kind == SectionKind.RELATION:
        rows: list = await load_relation_view(store, cfg.path, DEFAULT_PLACEHOLDERS)
    else:
        rows = await load_comment_view(store, DEFAULT_PLACEHOLDERS)
    return {
        "section": cfg.id,
        "summary": asdict(summarize(rows)),
        "rows": [asdict(r) for r in rows],
    }


@router.delete("/{section_id}/rows/{first}/{second}")
async def delete_row(section_id: str, first: str, second: str, confirm: bool = Query(default=False)) -> dict:
    """Delete a bookmark/like (userId, postId) or a comment (postId, commentId)."""
    cfg = _section(section_id, SectionKind.RELATION, SectionKind.COMMENTS)
    _confirm(cfg, confirm)
    store = get_store()
    key = (cfg.id, "delete", f"{first}/{second}")
    if cfg.kind == SectionKind.RELATION:
        await guard.run(key, lambda: delete_relation(store, cfg.path, first, second))
    else:
        await guard.run(key, lambda: delete_comment(store, first, second))
    return {"deleted": [first, second]}


@router.put("/{section_id}/rows/{post_id}/{comment_id}")
async def update_comment(section_id: str, post_id: str, comment_id: str, request: CommentTextRequest) -> dict:
    """Replace a comment's text."""
    cfg = _section(section_id, SectionKind.COMMENTS)
    text = await guard.run(
        (cfg.id, "edit", f"{post_id}/{comment_id}#{fingerprint(request.text)}"),
        lambda: update_comment_text(get_store(), post_id, comment_id, request.text),
    )
    return {"post_id": post_id, "comment_id": comment_id, "text": text}
