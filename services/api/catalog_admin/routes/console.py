"""Console endpoints: a stateful dashboard per admin session.

The session keeps the active section's manager (records, edit/view state,
notifications), so a thin front end only renders what these endpoints return.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from catalog_admin.services.console import Dashboard, Manager, sessions
from catalog_admin.services.errors import ConfirmationRequired, NotFoundError
from catalog_admin.services.sections import SectionKind
from catalog_admin.services.view_state import ItemTarget, RowTarget, Target
from catalog_admin.stores.tree import get_store

router = APIRouter()


class ItemRef(BaseModel):
    parent: int
    index: int


class SelectRequest(BaseModel):
    section: str | None = None


class AddRequest(BaseModel):
    parent: int | None = None  # nested sections: add an item to this parent


class TargetRequest(BaseModel):
    target: int | str | ItemRef | list[str]
    confirm: bool = False


class SaveRequest(BaseModel):
    form: dict[str, Any] | None = None


def _target(manager: Manager, raw: int | str | ItemRef | list[str]) -> Target:
    """Interpret a request target for the manager's section kind."""
    kind = manager.config.kind
    if kind == SectionKind.KEYED and isinstance(raw, str):
        return raw
    if kind in (SectionKind.ORDERED, SectionKind.NESTED) and isinstance(raw, int):
        return raw
    if kind in (SectionKind.ORDERED, SectionKind.NESTED) and isinstance(raw, str) and raw.isdigit():
        return int(raw)
    if kind == SectionKind.NESTED and isinstance(raw, ItemRef):
        return ItemTarget(parent=raw.parent, index=raw.index)
    if kind in (SectionKind.RELATION, SectionKind.COMMENTS) and isinstance(raw, list) and len(raw) == 2:
        return RowTarget(first=raw[0], second=raw[1])
    raise NotFoundError(f"Invalid target for {manager.config.title}: {raw!r}")


def _manager(session_id: str) -> Manager:
    return sessions.get(session_id).manager()


def _view(session_id: str, dashboard: Dashboard, **extra: Any) -> dict:
    return {"session_id": session_id, **extra, **dashboard.manager().view()}


@router.post("/sessions", status_code=201)
async def open_session(request: SelectRequest | None = None) -> dict:
    """Open a console session with the requested (or default) section active."""
    session_id, dashboard = sessions.create(get_store())
    await dashboard.select(request.section if request else None)
    return _view(session_id, dashboard)


@router.get("/sessions/{session_id}")
async def get_session_view(session_id: str) -> dict:
    return _view(session_id, sessions.get(session_id))


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str) -> dict:
    sessions.get(session_id)
    sessions.drop(session_id)
    return {"closed": session_id}


@router.post("/sessions/{session_id}/select")
async def select_section(session_id: str, request: SelectRequest) -> dict:
    """Switch the active section (the previous manager stops receiving results)."""
    dashboard = sessions.get(session_id)
    await dashboard.select(request.section)
    return _view(session_id, dashboard)


@router.post("/sessions/{session_id}/add")
async def begin_add(session_id: str, request: AddRequest | None = None) -> dict:
    manager = _manager(session_id)
    manager.begin_add(parent=request.parent if request else None)
    return _view(session_id, sessions.get(session_id))


@router.post("/sessions/{session_id}/edit")
async def begin_edit(session_id: str, request: TargetRequest) -> dict:
    manager = _manager(session_id)
    manager.begin_edit(_target(manager, request.target))
    return _view(session_id, sessions.get(session_id))


@router.post("/sessions/{session_id}/cancel")
async def cancel_edit(session_id: str) -> dict:
    _manager(session_id).cancel()
    return _view(session_id, sessions.get(session_id))


@router.post("/sessions/{session_id}/save")
async def save_form(session_id: str, request: SaveRequest | None = None) -> dict:
    """Save the open add/edit form. Failures stay in the form, see notifications."""
    manager = _manager(session_id)
    ok = await manager.save(request.form if request else None)
    return _view(session_id, sessions.get(session_id), ok=ok)


@router.post("/sessions/{session_id}/delete")
async def delete_target(session_id: str, request: TargetRequest) -> dict:
    manager = _manager(session_id)
    if not request.confirm:
        raise ConfirmationRequired(manager.config.confirm_message)
    ok = await manager.delete(_target(manager, request.target), confirmed=True)
    return _view(session_id, sessions.get(session_id), ok=ok)


@router.post("/sessions/{session_id}/toggle")
async def toggle_expanded(session_id: str, request: TargetRequest) -> dict:
    manager = _manager(session_id)
    expanded = manager.toggle_expanded(_target(manager, request.target))
    return _view(session_id, sessions.get(session_id), expanded_now=expanded)
