"""Interactive dashboard: the shell plus one live manager per admin session.

A Manager owns the local view of one section: the records read at mount,
the edit/view state, the expanded set and pending notifications. Remote
writes happen first; local state changes only after the store acknowledged
them. Errors never escape a manager action, they become notifications and
leave the previous state in place.

A Manager that was closed (the admin switched section) drops any result
that arrives afterwards.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
import time
from typing import Any
from uuid import uuid4

from catalog_admin.services import inflight
from catalog_admin.services.decoding import decode_mapping
from catalog_admin.services.errors import AdminError, NotFoundError, ValidationError
from catalog_admin.services.joins import (
    DEFAULT_PLACEHOLDERS,
    CommentRow,
    Placeholders,
    RelationRow,
    delete_comment,
    delete_relation,
    fetch_all,
    load_comment_view,
    load_relation_view,
    summarize,
    update_comment_text,
)
from catalog_admin.services.sections import SectionConfig, SectionKind, get_section
from catalog_admin.services.view_state import (
    VIEWING,
    Adding,
    Editing,
    ItemTarget,
    RowTarget,
    Target,
    ViewState,
    begin_add,
    begin_edit,
    describe,
    target_key,
    with_form,
)
from catalog_admin.stores.tree import TreeStore

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class Notification:
    level: str  # "success" | "error"
    message: str


class Manager:
    """Runtime instance of one dashboard section."""

    def __init__(
        self,
        config: SectionConfig,
        store: TreeStore,
        *,
        guard: inflight.InflightGuard | None = None,
        placeholders: Placeholders = DEFAULT_PLACEHOLDERS,
    ):
        self.config = config
        self.store = store
        self.guard = guard or inflight.guard
        self.placeholders = placeholders

        self.state: ViewState = VIEWING
        self.records: dict[str, dict[str, Any]] | list[dict[str, Any]] = (
            {} if config.kind == SectionKind.KEYED else []
        )
        self.lookups: dict[str, dict[str, Any]] = {}
        self.rows: list[RelationRow] | list[CommentRow] = []
        self.expanded: set[Any] = set()
        self.notifications: list[Notification] = []
        self.loading = True
        self.alive = True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Initial fan-out read. On failure the view is loaded-but-empty."""
        try:
            loaded = await self._load()
        except AdminError as e:
            if self._drop_late("mount"):
                return
            self.loading = False
            self._notify("error", e.message)
            return
        if self._drop_late("mount"):
            return
        loaded()
        self.loading = False

    def close(self) -> None:
        self.alive = False

    async def _load(self):
        kind = self.config.kind
        if kind == SectionKind.KEYED:
            paths = (self.config.path, *self.config.lookups)
            snaps = await fetch_all(self.store, *paths, label=f"{self.config.noun}s")
            decoded = [decode_mapping(s.value, path=p) for p, s in zip(paths, snaps)]

            def apply() -> None:
                self.records = decoded[0]
                self.lookups = dict(zip(self.config.lookups, decoded[1:]))

            return apply
        if kind in (SectionKind.ORDERED, SectionKind.NESTED):
            items = await self.config.ordered(self.store).list()

            def apply() -> None:
                self.records = items

            return apply
        if kind == SectionKind.RELATION:
            rows = await load_relation_view(self.store, self.config.path, self.placeholders)
        else:
            rows = await load_comment_view(self.store, self.placeholders)

        def apply() -> None:
            self.rows = rows

        return apply

    def _drop_late(self, what: str) -> bool:
        if not self.alive:
            logger.warning(f"[console] {self.config.id}: dropping {what} result after close")
            return True
        return False

    def _notify(self, level: str, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))

    def drain_notifications(self) -> list[Notification]:
        out, self.notifications = self.notifications, []
        return out

    # ------------------------------------------------------------------
    # View-state transitions
    # ------------------------------------------------------------------

    def begin_add(self, *, parent: int | None = None) -> ViewState:
        """Open the add form (replaces any open add/edit)."""
        if not self.config.editable:
            raise AdminError(f"{self.config.title} does not support adding", code="UNSUPPORTED")
        if parent is not None:
            if self.config.kind != SectionKind.NESTED:
                raise AdminError(f"{self.config.title} has no nested items", code="UNSUPPORTED")
            self._record_at(parent)
            self.state = begin_add(self.config.defaults(item=True), parent=parent)
        else:
            self.state = begin_add(self.config.defaults())
        return self.state

    def begin_edit(self, target: Target) -> ViewState:
        """Open the edit form pre-filled from the target (replaces any open add/edit)."""
        self.state = begin_edit(target, self._form_for(target))
        return self.state

    def cancel(self) -> ViewState:
        self.state = VIEWING
        return self.state

    def toggle_expanded(self, target: Any) -> bool:
        """Expand/collapse a row (nested items, article details)."""
        if target in self.expanded:
            self.expanded.discard(target)
            return False
        self.expanded.add(target)
        return True

    def _record_at(self, index: int) -> dict[str, Any]:
        records = self.records
        if not isinstance(records, list) or not 0 <= index < len(records):
            raise NotFoundError(f"No {self.config.noun} at index {index}")
        return records[index]

    def _form_for(self, target: Target) -> dict[str, Any]:
        kind = self.config.kind
        if kind == SectionKind.KEYED and isinstance(target, str):
            record = self.records.get(target) if isinstance(self.records, dict) else None
            if record is None:
                raise NotFoundError(f"No {self.config.noun} with key {target!r}")
            return dict(record)
        if kind in (SectionKind.ORDERED, SectionKind.NESTED) and isinstance(target, int):
            return dict(self._record_at(target))
        if kind == SectionKind.NESTED and isinstance(target, ItemTarget):
            items = self._record_at(target.parent).get("items") or []
            if not 0 <= target.index < len(items):
                raise NotFoundError(f"No item at index {target.index}")
            return dict(items[target.index])
        if kind == SectionKind.COMMENTS and isinstance(target, RowTarget):
            row = self._comment_row(target)
            return {"text": row.text}
        raise AdminError(f"{self.config.title} cannot edit {target!r}", code="UNSUPPORTED")

    def _comment_row(self, target: RowTarget) -> CommentRow:
        for row in self.rows:
            if isinstance(row, CommentRow) and (row.post_id, row.comment_id) == (target.first, target.second):
                return row
        raise NotFoundError("Comment not found")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save(self, form: dict[str, Any] | None = None) -> bool:
        """Validate and write the open form; back to viewing only on success."""
        state = self.state
        if not isinstance(state, (Adding, Editing)):
            self._notify("error", "Nothing to save")
            return False
        if form is not None:
            state = with_form(state, form)
            self.state = state

        if isinstance(state, Adding):
            op, target = "add", "" if state.parent is None else str(state.parent)
        else:
            op, target = "edit", target_key(state.target)
        target = f"{target}#{inflight.fingerprint(state.form)}"
        try:
            result = await self.guard.run(
                (self.config.id, op, target),
                lambda: self._commit(state),
            )
        except AdminError as e:
            if not self._drop_late("save"):
                self._notify("error", e.message)
            return False

        if self._drop_late("save"):
            return True
        self._apply_saved(state, result)
        self.state = VIEWING
        verb = "added" if op == "add" else "updated"
        self._notify("success", f"{self.config.noun.capitalize()} {verb} successfully!")
        return True

    async def _commit(self, state: Adding | Editing) -> Any:
        """Issue the engine call for a save.

        Returns what the engine returns, so that any caller sharing the
        in-flight key (another session, the section routes) can apply it.
        """
        cfg = self.config
        kind = cfg.kind
        form = state.form

        if kind == SectionKind.KEYED:
            engine = cfg.keyed(self.store)
            if isinstance(state, Adding):
                return await engine.create(form)
            return await engine.update(str(state.target), form)

        if kind in (SectionKind.ORDERED, SectionKind.NESTED):
            if isinstance(state, Adding) and state.parent is not None:
                return await cfg.nested(self.store).append_item(state.parent, form)
            if isinstance(state, Adding):
                return await cfg.ordered(self.store).append(form)
            if isinstance(state.target, ItemTarget):
                t = state.target
                return await cfg.nested(self.store).replace_item(t.parent, t.index, form)
            return await cfg.ordered(self.store).replace_at(int(state.target), form)

        if kind == SectionKind.COMMENTS and isinstance(state, Editing) and isinstance(state.target, RowTarget):
            target = state.target
            return await update_comment_text(self.store, target.first, target.second, str(form.get("text") or ""))

        raise ValidationError(f"{cfg.title} cannot save this form")

    def _apply_saved(self, state: Adding | Editing, result: Any) -> None:
        kind = self.config.kind
        if kind == SectionKind.KEYED and isinstance(self.records, dict):
            if isinstance(state, Adding):
                key, stored = result
            else:
                key, stored = str(state.target), result
            self.records[key] = stored
        elif kind in (SectionKind.ORDERED, SectionKind.NESTED):
            self.records = result
        elif kind == SectionKind.COMMENTS and isinstance(state, Editing) and isinstance(state.target, RowTarget):
            target = state.target
            for row in self.rows:
                if isinstance(row, CommentRow) and (row.post_id, row.comment_id) == (target.first, target.second):
                    row.text = result

    async def delete(self, target: Target, *, confirmed: bool) -> bool:
        """Delete one record/row. Nothing is issued unless `confirmed`."""
        if not confirmed:
            return False
        try:
            result = await self.guard.run(
                (self.config.id, "delete", target_key(target)),
                lambda: self._remove(target),
            )
        except AdminError as e:
            if not self._drop_late("delete"):
                self._notify("error", e.message)
            return False

        if self._drop_late("delete"):
            return True
        self._apply_removed(target, result)
        if isinstance(self.state, Editing) and self.state.target == target:
            self.state = VIEWING
        self.expanded.discard(target)
        self._notify("success", f"{self.config.noun.capitalize()} deleted successfully!")
        return True

    async def _remove(self, target: Target) -> Any:
        """Issue the engine call for a delete; returns the engine's result."""
        cfg = self.config
        kind = cfg.kind

        if kind == SectionKind.KEYED and isinstance(target, str):
            return await cfg.keyed(self.store).delete(target)
        if kind in (SectionKind.ORDERED, SectionKind.NESTED) and isinstance(target, ItemTarget):
            return await cfg.nested(self.store).remove_item(target.parent, target.index)
        if kind in (SectionKind.ORDERED, SectionKind.NESTED) and isinstance(target, int):
            return await cfg.ordered(self.store).remove_at(target)
        if kind == SectionKind.RELATION and isinstance(target, RowTarget):
            return await delete_relation(self.store, cfg.path, target.first, target.second)
        if kind == SectionKind.COMMENTS and isinstance(target, RowTarget):
            return await delete_comment(self.store, target.first, target.second)
        raise NotFoundError(f"{cfg.title} has no target {target!r}")

    def _apply_removed(self, target: Target, result: Any) -> None:
        kind = self.config.kind
        if kind == SectionKind.KEYED:
            if isinstance(self.records, dict):
                self.records.pop(str(target), None)
        elif kind in (SectionKind.ORDERED, SectionKind.NESTED):
            self.records = result
        elif kind == SectionKind.RELATION and isinstance(target, RowTarget):
            self.rows = [r for r in self.rows if (r.user_id, r.post_id) != (target.first, target.second)]
        elif kind == SectionKind.COMMENTS and isinstance(target, RowTarget):
            self.rows = [r for r in self.rows if (r.post_id, r.comment_id) != (target.first, target.second)]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def view(self) -> dict[str, Any]:
        """JSON-friendly snapshot of the manager (drains notifications)."""
        out: dict[str, Any] = {
            "section": self.config.id,
            "title": self.config.title,
            "kind": self.config.kind.value,
            "loading": self.loading,
            "state": describe(self.state),
            "expanded": sorted(str(t) for t in self.expanded),
            "confirm": self.config.confirm_message,
            "notifications": [asdict(n) for n in self.drain_notifications()],
        }
        if self.config.kind in (SectionKind.RELATION, SectionKind.COMMENTS):
            out["rows"] = [asdict(r) for r in self.rows]
            out["summary"] = asdict(summarize(self.rows))
        else:
            out["records"] = self.records
            if self.lookups:
                out["lookups"] = self.lookups
        return out


class Dashboard:
    """The shell: which section is active, and its live manager."""

    def __init__(self, store: TreeStore, *, guard: inflight.InflightGuard | None = None):
        self.store = store
        self.guard = guard
        self.active: Manager | None = None
        self.last_seen = time.monotonic()

    async def select(self, section_id: str | None = None) -> Manager:
        """Switch section: close the current manager, mount a fresh one."""
        config = get_section(section_id)
        if self.active is not None:
            self.active.close()
        manager = Manager(config, self.store, guard=self.guard)
        self.active = manager
        await manager.mount()
        return manager

    def manager(self) -> Manager:
        if self.active is None:
            raise NotFoundError("No section selected")
        return self.active

    def close(self) -> None:
        if self.active is not None:
            self.active.close()
            self.active = None


class ConsoleSessions:
    """In-process registry of admin console sessions, pruned when idle."""

    def __init__(self, idle_ttl: float = 3600.0):
        self.idle_ttl = idle_ttl
        self._sessions: dict[str, Dashboard] = {}

    def create(self, store: TreeStore) -> tuple[str, Dashboard]:
        self.prune()
        session_id = str(uuid4())
        dashboard = Dashboard(store)
        self._sessions[session_id] = dashboard
        logger.info(f"[console] session opened {session_id}")
        return session_id, dashboard

    def get(self, session_id: str) -> Dashboard:
        dashboard = self._sessions.get(session_id)
        if dashboard is None:
            raise NotFoundError(f"Console session not found: {session_id}")
        dashboard.last_seen = time.monotonic()
        return dashboard

    def drop(self, session_id: str) -> None:
        dashboard = self._sessions.pop(session_id, None)
        if dashboard is not None:
            dashboard.close()
            logger.info(f"[console] session closed {session_id}")

    def prune(self) -> int:
        cutoff = time.monotonic() - self.idle_ttl
        stale = [sid for sid, d in self._sessions.items() if d.last_seen < cutoff]
        for sid in stale:
            self.drop(sid)
        return len(stale)


sessions = ConsoleSessions()
