"""Tree store client (Firebase Realtime Database over its REST API).

The dashboard only ever needs four primitives against the remote tree:

- read(path)        one-shot fetch of a subtree -> Snapshot
- write(path, v)    full overwrite of the subtree (creates missing parents)
- create_key(path)  allocate a unique, chronologically ordered child key
- delete(path)      remove the subtree and all of its children

Keys are allocated locally with the Firebase push-id scheme, which is how
Firebase clients do it as well; the REST API has no "allocate only" call.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import secrets
import time
from typing import Any, Protocol

import httpx

from catalog_admin.settings import get_settings

logger = logging.getLogger("uvicorn.error")

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
FORBIDDEN_KEY_CHARS = set(".$#[]/")


class StoreError(RuntimeError):
    """Transport, auth or server failure talking to the tree store."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class Snapshot:
    """Result of a one-shot read."""

    exists: bool
    value: Any = None


class TreeStore(Protocol):
    async def read(self, path: str) -> Snapshot: ...

    async def write(self, path: str, value: Any) -> None: ...

    async def create_key(self, path: str) -> str: ...

    async def delete(self, path: str) -> None: ...

    async def close(self) -> None: ...


def check_key(key: str | int) -> str:
    """Validate a single child key.

    Raises:
        ValueError: empty, or contains a character Firebase forbids in keys.
    """
    key = str(key)
    if not key or FORBIDDEN_KEY_CHARS & set(key):
        raise ValueError(f"Invalid key: {key!r}")
    return key


def join_path(base: str, *keys: str | int) -> str:
    """Append child keys to a collection path ("news", "a" -> "news/a")."""
    segments = [check_key(seg) for seg in base.strip("/").split("/")]
    segments.extend(check_key(k) for k in keys)
    return "/".join(segments)


class PushIdGenerator:
    """Firebase-style push ids: 8 timestamp chars + 12 random chars.

    Ids generated within the same millisecond increment the random part so
    that lexicographic order always matches generation order.
    """

    def __init__(self) -> None:
        self._last_push_time = 0
        self._last_rand_chars = [0] * 12

    def next(self, now_ms: int | None = None) -> str:
        now = int(time.time() * 1000) if now_ms is None else now_ms
        duplicate_time = now == self._last_push_time
        self._last_push_time = now

        time_chars = []
        ts = now
        for _ in range(8):
            time_chars.append(PUSH_CHARS[ts % 64])
            ts //= 64
        if ts != 0:
            raise ValueError("Timestamp out of range for push id")
        time_chars.reverse()

        if not duplicate_time:
            self._last_rand_chars = [secrets.randbelow(64) for _ in range(12)]
        else:
            # Same millisecond: increment the random number by one (with carry).
            i = 11
            while i >= 0 and self._last_rand_chars[i] == 63:
                self._last_rand_chars[i] = 0
                i -= 1
            if i >= 0:
                self._last_rand_chars[i] += 1

        return "".join(time_chars) + "".join(PUSH_CHARS[c] for c in self._last_rand_chars)


class FirebaseTreeStore:
    """Client for the Firebase Realtime Database REST API."""

    def __init__(
        self,
        database_url: str,
        *,
        auth_token: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not database_url:
            raise StoreError("FIREBASE_DATABASE_URL is not set")
        self.database_url = database_url.rstrip("/")
        self._auth_token = auth_token
        self._push_ids = PushIdGenerator()
        self._http_client = httpx.AsyncClient(
            base_url=self.database_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client."""
        await self._http_client.aclose()

    async def read(self, path: str) -> Snapshot:
        resp = await self._request("GET", path)
        value = resp.json()
        return Snapshot(exists=value is not None, value=value)

    async def write(self, path: str, value: Any) -> None:
        await self._request("PUT", path, json=value, silent=True)

    async def create_key(self, path: str) -> str:
        return self._push_ids.next()

    async def delete(self, path: str) -> None:
        await self._request("DELETE", path, silent=True)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        silent: bool = False,
    ) -> httpx.Response:
        params: dict[str, str] = {}
        if self._auth_token:
            params["auth"] = self._auth_token
        if silent:
            params["print"] = "silent"

        url = f"/{path.strip('/')}.json" if path.strip("/") else "/.json"
        logger.debug(f"[store] {method} {url}")
        try:
            if method in ("PUT", "POST", "PATCH"):
                resp = await self._http_client.request(method, url, params=params, json=json)
            else:
                resp = await self._http_client.request(method, url, params=params)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path or '/'} failed: {e}") from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.error(f"[store] {method} {path or '/'} -> {resp.status_code}: {message}")
            raise StoreError(message, status_code=resp.status_code)
        return resp


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text[:200] or f"HTTP {resp.status_code}"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"HTTP {resp.status_code}"


# Store client (initialized on startup)
_store: TreeStore | None = None


async def init_store(store: TreeStore | None = None) -> None:
    """Initialize the tree store from settings, or install the given one."""
    global _store
    if store is None:
        settings = get_settings()
        if settings.store_backend == "memory":
            from catalog_admin.stores.memory import MemoryTreeStore

            store = MemoryTreeStore()
            logger.info("Using in-memory tree store")
        else:
            store = FirebaseTreeStore(
                settings.firebase_database_url,
                auth_token=settings.firebase_auth_token,
                timeout=settings.store_timeout_seconds,
            )
            logger.info(f"Tree store: {settings.firebase_database_url}")
    _store = store


async def close_store() -> None:
    """Close the tree store client."""
    global _store
    if _store:
        await _store.close()
        _store = None


def get_store() -> TreeStore:
    """Get tree store instance."""
    if _store is None:
        raise RuntimeError("Tree store not initialized. Call init_store() first.")
    return _store
