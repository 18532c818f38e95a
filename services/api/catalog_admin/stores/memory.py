"""In-process tree store.

Mirrors the Realtime Database semantics the dashboard relies on: writes
create missing parents, writing None deletes, deletes prune parents left
empty, and reads hand out copies. Used for local development
(STORE_BACKEND=memory) and tests.
"""

from __future__ import annotations

import copy
from typing import Any

from catalog_admin.stores.tree import PushIdGenerator, Snapshot, StoreError


def _segments(path: str) -> list[str]:
    return [s for s in path.strip("/").split("/") if s]


def _child(node: Any, seg: str) -> Any:
    if isinstance(node, dict):
        return node.get(seg)
    if isinstance(node, list) and seg.isdigit() and int(seg) < len(node):
        return node[int(seg)]
    return None


class MemoryTreeStore:
    """Nested-dict tree with the same four primitives as the remote store."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.root: dict[str, Any] = copy.deepcopy(data) if data else {}
        self.calls: list[tuple[str, str]] = []
        self._push_ids = PushIdGenerator()

    async def close(self) -> None:
        return None

    async def read(self, path: str) -> Snapshot:
        self.calls.append(("read", path))
        node: Any = self.root
        for seg in _segments(path):
            node = _child(node, seg)
            if node is None:
                return Snapshot(exists=False)
        if node in ({}, []):
            return Snapshot(exists=False)
        return Snapshot(exists=True, value=copy.deepcopy(node))

    async def write(self, path: str, value: Any) -> None:
        self.calls.append(("write", path))
        if value is None:
            self._remove(path)
            return
        segs = _segments(path)
        if not segs:
            if not isinstance(value, dict):
                raise StoreError("Root value must be an object")
            self.root = copy.deepcopy(value)
            return
        parent: Any = self.root
        for seg in segs[:-1]:
            nxt = _child(parent, seg)
            if not isinstance(nxt, (dict, list)):
                nxt = {}
                self._assign(parent, seg, nxt)
            parent = nxt
        self._assign(parent, segs[-1], copy.deepcopy(value))

    async def create_key(self, path: str) -> str:
        self.calls.append(("create_key", path))
        return self._push_ids.next()

    async def delete(self, path: str) -> None:
        self.calls.append(("delete", path))
        self._remove(path)

    def count(self, op: str) -> int:
        """Number of recorded calls of one kind."""
        return sum(1 for name, _ in self.calls if name == op)

    @staticmethod
    def _assign(parent: Any, seg: str, value: Any) -> None:
        if isinstance(parent, list):
            if not seg.isdigit():
                raise StoreError(f"Cannot address key {seg!r} inside a list")
            idx = int(seg)
            if idx < len(parent):
                parent[idx] = value
            elif idx == len(parent):
                parent.append(value)
            else:
                raise StoreError(f"Index {idx} out of range")
        else:
            parent[seg] = value

    def _remove(self, path: str) -> None:
        segs = _segments(path)
        if not segs:
            self.root = {}
            return
        trail: list[tuple[Any, str]] = []
        node: Any = self.root
        for seg in segs:
            nxt = _child(node, seg)
            if nxt is None:
                return
            trail.append((node, seg))
            node = nxt
        # Drop the leaf, then prune containers left empty.
        for parent, seg in reversed(trail):
            if isinstance(parent, list):
                parent[int(seg)] = None
                while parent and parent[-1] is None:
                    parent.pop()
            else:
                parent.pop(seg, None)
            if parent or parent is self.root:
                break
