"""Denormalized views over user relations (bookmarks, likes) and comments.

The primary relation only stores foreign keys (`userId`, `postId`). Display
fields are resolved against the `users` and `news` collections, read in the
same fan-out. The store does not enforce referential integrity: a dangling
key resolves to the caller's placeholder, which is the intended behavior.

Deletes only ever touch the primary relation, never the lookup collections.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any

from catalog_admin.services.decoding import decode_mapping
from catalog_admin.services.errors import FetchError, NotFoundError, WriteError, require_fields
from catalog_admin.services.keyed import now_ms
from catalog_admin.stores.tree import Snapshot, StoreError, TreeStore, join_path

logger = logging.getLogger("uvicorn.error")

USERS_PATH = "users"
POSTS_PATH = "news"
BOOKMARKS_PATH = "user_bookmarks"
LIKES_PATH = "user_likes"


@dataclass(frozen=True)
class Placeholders:
    """Display values used when a foreign key has no matching record."""

    user_name: str = "Unknown User"
    user_email: str = "No email"
    post_title: str = "Unknown Post"


DEFAULT_PLACEHOLDERS = Placeholders()


@dataclass
class RelationRow:
    user_id: str
    post_id: str
    timestamp: int
    user_name: str
    user_email: str
    post_title: str


@dataclass
class CommentRow:
    comment_id: str
    post_id: str
    user_id: str
    text: str
    timestamp: int
    user_name: str
    user_email: str
    post_title: str


@dataclass(frozen=True)
class JoinSummary:
    total: int
    distinct_users: int
    distinct_posts: int


def lookup(collection: dict[str, Any], key: str | None) -> dict[str, Any] | None:
    """Resolve a foreign key; None when absent (or not an object)."""
    if not key:
        return None
    record = collection.get(key)
    return record if isinstance(record, dict) else None


def _field(record: dict[str, Any] | None, name: str, placeholder: str) -> str:
    if record is None:
        return placeholder
    value = record.get(name)
    return str(value) if value else placeholder


def _timestamp(value: Any) -> int:
    # Relations written by old app versions store `true` instead of a time.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return now_ms()
    return int(value)


def newest_first(rows: list) -> list:
    """Sort by timestamp descending; ties keep encounter order (stable)."""
    return sorted(rows, key=lambda r: r.timestamp, reverse=True)


async def fetch_all(store: TreeStore, *paths: str, label: str) -> list[Snapshot]:
    """Read a fixed set of paths in parallel; any failure fails the whole set."""
    results = await asyncio.gather(*(store.read(p) for p in paths), return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        for e in errors:
            if not isinstance(e, StoreError):
                raise e
        logger.warning(f"[joins] {label}: {len(errors)} of {len(paths)} reads failed")
        raise FetchError(f"Failed to fetch {label}: {errors[0]}") from errors[0]
    return results


def flatten_relation(
    relation: dict[str, Any],
    users: dict[str, Any],
    posts: dict[str, Any],
    placeholders: Placeholders,
) -> list[RelationRow]:
    """Flatten {userId: {postId: timestamp}} into join rows, newest first."""
    rows: list[RelationRow] = []
    for user_id, per_user in relation.items():
        if not isinstance(per_user, dict):
            continue
        user = lookup(users, user_id)
        for post_id, ts in per_user.items():
            post = lookup(posts, post_id)
            rows.append(
                RelationRow(
                    user_id=user_id,
                    post_id=post_id,
                    timestamp=_timestamp(ts),
                    user_name=_field(user, "name", placeholders.user_name),
                    user_email=_field(user, "email", placeholders.user_email),
                    post_title=_field(post, "title", placeholders.post_title),
                )
            )
    return newest_first(rows)


def flatten_comments(
    posts: dict[str, Any],
    users: dict[str, Any],
    placeholders: Placeholders,
) -> list[CommentRow]:
    """Flatten {postId: {comments: {commentId: {...}}}} into rows, newest first."""
    rows: list[CommentRow] = []
    for post_id, post in posts.items():
        if not isinstance(post, dict):
            continue
        comments = decode_mapping(post.get("comments"), path=f"{POSTS_PATH}/{post_id}/comments")
        for comment_id, comment in comments.items():
            if not isinstance(comment, dict):
                continue
            user_id = str(comment.get("userId") or "")
            user = lookup(users, user_id)
            rows.append(
                CommentRow(
                    comment_id=comment_id,
                    post_id=post_id,
                    user_id=user_id,
                    text=str(comment.get("text") or ""),
                    timestamp=_timestamp(comment.get("timestamp")),
                    user_name=_field(user, "name", placeholders.user_name),
                    user_email=_field(user, "email", placeholders.user_email),
                    post_title=_field(post, "title", placeholders.post_title),
                )
            )
    return newest_first(rows)


def summarize(rows: list) -> JoinSummary:
    return JoinSummary(
        total=len(rows),
        distinct_users=len({r.user_id for r in rows}),
        distinct_posts=len({r.post_id for r in rows}),
    )


async def load_relation_view(
    store: TreeStore,
    relation_path: str,
    placeholders: Placeholders,
) -> list[RelationRow]:
    """Bookmarks/likes view: three parallel reads, joined in memory."""
    relation_snap, users_snap, posts_snap = await fetch_all(
        store, relation_path, USERS_PATH, POSTS_PATH, label=relation_path
    )
    return flatten_relation(
        decode_mapping(relation_snap.value, path=relation_path),
        decode_mapping(users_snap.value, path=USERS_PATH),
        decode_mapping(posts_snap.value, path=POSTS_PATH),
        placeholders,
    )


async def load_comment_view(store: TreeStore, placeholders: Placeholders) -> list[CommentRow]:
    """Comments view. Comments live inside the posts, so two reads suffice."""
    posts_snap, users_snap = await fetch_all(store, POSTS_PATH, USERS_PATH, label="comments")
    return flatten_comments(
        decode_mapping(posts_snap.value, path=POSTS_PATH),
        decode_mapping(users_snap.value, path=USERS_PATH),
        placeholders,
    )


def _path(*parts: str) -> str:
    try:
        return join_path(*parts)
    except ValueError as e:
        raise NotFoundError(str(e)) from e


async def delete_relation(store: TreeStore, relation_path: str, user_id: str, post_id: str) -> None:
    path = _path(relation_path, user_id, post_id)
    try:
        await store.delete(path)
    except StoreError as e:
        raise WriteError(f"Failed to remove entry: {e}") from e
    logger.info(f"[joins] deleted {path}")


async def delete_comment(store: TreeStore, post_id: str, comment_id: str) -> None:
    path = _path(POSTS_PATH, post_id, "comments", comment_id)
    try:
        await store.delete(path)
    except StoreError as e:
        raise WriteError(f"Failed to delete comment: {e}") from e
    logger.info(f"[joins] deleted {path}")


async def update_comment_text(store: TreeStore, post_id: str, comment_id: str, text: str) -> str:
    """Overwrite only the comment's text field; returns the stored text."""
    require_fields({"text": text}, ("text",), message="Comment cannot be empty")
    path = _path(POSTS_PATH, post_id, "comments", comment_id, "text")
    text = text.strip()
    try:
        await store.write(path, text)
    except StoreError as e:
        raise WriteError(f"Failed to update comment: {e}") from e
    logger.info(f"[joins] updated {path}")
    return text
