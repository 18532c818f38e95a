"""Single-in-flight guard for mutating admin actions.

A double-clicked save or delete must not issue two identical writes. Calls
are keyed by (section, operation, target): while one call for a key is
running, later calls with the same key await the same task and receive its
result (or its error), so the store sees exactly one write.

When Redis is available the running call also holds a `SET NX` lock on the
key; a duplicate that lands on another worker is rejected with
DuplicateSubmission rather than written twice.
"""

import asyncio
from collections.abc import Awaitable, Callable
import hashlib
import json
import logging
from typing import Any, TypeVar

from redis.exceptions import RedisError

from catalog_admin.services.errors import DuplicateSubmission
from catalog_admin.stores.redis import acquire_lock, release_lock

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")

InflightKey = tuple[str, str, str]


def fingerprint(payload: Any) -> str:
    """Short stable digest of a form payload.

    Part of the key for add/edit so that two different submissions for the
    same target are never coalesced into one.
    """
    raw = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


class InflightGuard:
    def __init__(self) -> None:
        self._tasks: dict[InflightKey, asyncio.Task] = {}

    def is_running(self, key: InflightKey) -> bool:
        return key in self._tasks

    async def run(self, key: InflightKey, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is not None:
            logger.info(f"[inflight] coalesced duplicate {':'.join(key)}")
            return await asyncio.shield(task)

        task = asyncio.ensure_future(self._run_locked(key, factory))
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        # Shielded: a caller going away does not cancel a write in progress.
        return await asyncio.shield(task)

    def _forget(self, key: InflightKey, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def _run_locked(self, key: InflightKey, factory: Callable[[], Awaitable[T]]) -> T:
        lock_key = ":".join(key)
        try:
            got_lock: bool | None = await acquire_lock(lock_key)
        except RuntimeError:
            # Redis not configured; process-local coalescing only.
            got_lock = None
        except RedisError as e:
            logger.warning(f"[inflight] Redis lock unavailable for {lock_key}: {e}")
            got_lock = None

        if got_lock is False:
            raise DuplicateSubmission(
                "This change is already being saved",
                detail={"section": key[0], "operation": key[1], "target": key[2]},
            )
        try:
            return await factory()
        finally:
            if got_lock:
                try:
                    await release_lock(lock_key)
                except RedisError as e:
                    logger.warning(f"[inflight] failed to release {lock_key}: {e}")


# Process-wide guard shared by the section routes and the console.
guard = InflightGuard()
