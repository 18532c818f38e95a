"""Per-manager edit/view state.

A manager is either viewing its records, adding a new one, or editing one
target. Only one add/edit can be open at a time; opening another one
replaces it. The form values travel with the state so that a failed save
keeps exactly what the admin typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class ItemTarget:
    """An item inside a nested list (shop category -> items)."""

    parent: int
    index: int


@dataclass(frozen=True)
class RowTarget:
    """A row of a join view, addressed by its two path keys.

    (userId, postId) for bookmarks and likes, (postId, commentId) for comments.
    """

    first: str
    second: str


Target = Union[str, int, ItemTarget, RowTarget]


def target_key(target: Target) -> str:
    if isinstance(target, ItemTarget):
        return f"{target.parent}/{target.index}"
    if isinstance(target, RowTarget):
        return f"{target.first}/{target.second}"
    return str(target)


@dataclass(frozen=True)
class Viewing:
    mode = "viewing"


@dataclass(frozen=True)
class Adding:
    form: dict[str, Any] = field(default_factory=dict)
    parent: int | None = None  # set when adding a nested item

    mode = "adding"


@dataclass(frozen=True)
class Editing:
    target: Target
    form: dict[str, Any] = field(default_factory=dict)

    mode = "editing"


ViewState = Union[Viewing, Adding, Editing]

VIEWING = Viewing()


def begin_add(defaults: dict[str, Any], *, parent: int | None = None) -> Adding:
    return Adding(form=dict(defaults), parent=parent)


def begin_edit(target: Target, record: dict[str, Any]) -> Editing:
    return Editing(target=target, form=dict(record))


def with_form(state: ViewState, form: dict[str, Any]) -> ViewState:
    """Same state, form values replaced (what the admin typed)."""
    if isinstance(state, Adding):
        return Adding(form=dict(form), parent=state.parent)
    if isinstance(state, Editing):
        return Editing(target=state.target, form=dict(form))
    return state


def describe(state: ViewState) -> dict[str, Any]:
    """JSON-friendly rendering of a view state."""
    out: dict[str, Any] = {"mode": state.mode}
    if isinstance(state, Adding):
        out["form"] = state.form
        if state.parent is not None:
            out["parent"] = state.parent
    elif isinstance(state, Editing):
        target = state.target
        if isinstance(target, ItemTarget):
            out["target"] = {"parent": target.parent, "index": target.index}
        elif isinstance(target, RowTarget):
            out["target"] = [target.first, target.second]
        else:
            out["target"] = target
        out["form"] = state.form
    return out
