"""Milestone schedule editor API endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from milestones.api.dependencies import (
    EditorRegistry,
    EditorRegistryDep,
    PaymentScheduleRepositoryDep,
    ScheduleItemStoreDep,
)
from milestones.domain.exceptions import (
    DomainError,
    EditorLockedError,
    ItemNotFoundError,
    SaveInProgressError,
    ValidationError,
)
from milestones.domain.models import AllocationItem
from milestones.domain.responses import SaveResult
from milestones.services.schedule_editor import ScheduleEditor

router = APIRouter()


class OpenEditorRequest(BaseModel):
    """Open (or reopen) the editor of a proposal's schedule."""

    project_id: str
    contract_total: float = Field(ge=0)
    is_locked: bool = False


class ItemCreate(BaseModel):
    label: Optional[str] = None
    due_on: Optional[str] = None


class ItemUpdate(BaseModel):
    """Single-field edit, as sent on every keystroke or selection."""

    field: str
    value: Any = None


class GrandTotalUpdate(BaseModel):
    grand_total: float = Field(ge=0)


def _http_error(error: DomainError) -> HTTPException:
    if isinstance(error, ItemNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (EditorLockedError, SaveInProgressError)):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=error.message)
    return HTTPException(status_code=400, detail=str(error))


def _editor(registry: EditorRegistry, proposal_id: str) -> ScheduleEditor:
    editor = registry.get(proposal_id)
    if editor is None:
        raise HTTPException(
            status_code=404, detail=f"No open editor for proposal {proposal_id}"
        )
    return editor


def _item_payload(item: AllocationItem) -> dict:
    return {
        "id": item.id,
        "label": item.label,
        "mode": item.mode.value,
        "percent_of_total": item.percent_of_total,
        "fixed_amount": item.fixed_amount,
        "computed_amount": item.computed_amount,
        "sort_order": item.sort_order,
        "due_on": item.due_on,
        "dirty": item.dirty,
        "is_new": item.is_local,
    }


def _state_payload(editor: ScheduleEditor) -> dict:
    summary = editor.summary()
    return {
        "schedule_id": editor.schedule_id,
        "grand_total": editor.grand_total,
        "is_locked": editor.is_locked,
        "is_saving": editor.is_saving,
        "needs_save": editor.needs_save,
        "last_error": editor.last_error.message if editor.last_error else None,
        "summary": {
            "allocated_total": summary.allocated_total,
            "allocated_percent": summary.allocated_percent,
            "remaining": summary.remaining,
            "is_complete": summary.is_complete,
            "item_count": summary.item_count,
        },
        "items": [_item_payload(item) for item in editor.items],
    }


def _save_payload(editor: ScheduleEditor, result: SaveResult) -> dict:
    return {
        "success": result.success,
        "error": result.message,
        "step": result.error.step if result.error else None,
        "state": _state_payload(editor),
    }


@router.post("/{proposal_id}/open")
async def open_editor(
    proposal_id: str,
    request: OpenEditorRequest,
    registry: EditorRegistryDep,
    schedule_repo: PaymentScheduleRepositoryDep,
    item_store: ScheduleItemStoreDep,
):
    """Open the schedule editor, creating the schedule on first use.

    An editor that is already open is returned as-is so unsaved edits
    survive a page reload; only its grand total and lock state follow the
    request.
    """
    editor = registry.get(proposal_id)
    if editor is None:
        schedule = await schedule_repo.get_or_create_for_proposal(
            proposal_id, request.project_id
        )
        editor = await ScheduleEditor.load(
            item_store,
            schedule["id"],
            grand_total=request.contract_total,
            is_locked=request.is_locked,
        )
        registry.put(proposal_id, editor)
    else:
        editor.is_locked = request.is_locked
        editor.set_grand_total(request.contract_total)
    return _state_payload(editor)


@router.get("/{proposal_id}")
async def get_editor_state(proposal_id: str, registry: EditorRegistryDep):
    """Get items, totals and save status of an open editor."""
    return _state_payload(_editor(registry, proposal_id))


@router.delete("/{proposal_id}")
async def close_editor(proposal_id: str, registry: EditorRegistryDep):
    """Close an editor. Unsaved edits are discarded."""
    if not registry.close(proposal_id):
        raise HTTPException(status_code=404, detail=f"No open editor for proposal {proposal_id}")
    return {"closed": proposal_id}


@router.post("/{proposal_id}/items")
async def add_item(proposal_id: str, body: ItemCreate, registry: EditorRegistryDep):
    """Append a new milestone."""
    editor = _editor(registry, proposal_id)
    try:
        item = editor.add_item(label=body.label, due_on=body.due_on)
    except DomainError as e:
        raise _http_error(e)
    return {"item": _item_payload(item), "state": _state_payload(editor)}


@router.patch("/{proposal_id}/items/{item_id}")
async def update_item(
    proposal_id: str, item_id: str, body: ItemUpdate, registry: EditorRegistryDep
):
    """Change one field of a milestone."""
    editor = _editor(registry, proposal_id)
    try:
        item = editor.update_item(item_id, body.field, body.value)
    except DomainError as e:
        raise _http_error(e)
    return {"item": _item_payload(item), "state": _state_payload(editor)}


@router.delete("/{proposal_id}/items/{item_id}")
async def remove_item(proposal_id: str, item_id: str, registry: EditorRegistryDep):
    """Remove a milestone; persisted ones are archived on the next save."""
    editor = _editor(registry, proposal_id)
    try:
        editor.remove_item(item_id)
    except DomainError as e:
        raise _http_error(e)
    return _state_payload(editor)


@router.put("/{proposal_id}/grand-total")
async def set_grand_total(
    proposal_id: str, body: GrandTotalUpdate, registry: EditorRegistryDep
):
    """Apply a changed contract total."""
    editor = _editor(registry, proposal_id)
    editor.set_grand_total(body.grand_total)
    return _state_payload(editor)


@router.post("/{proposal_id}/refresh")
async def refresh(proposal_id: str, registry: EditorRegistryDep):
    """Refetch items from the store; ignored while edits are unsaved."""
    editor = _editor(registry, proposal_id)
    applied = await editor.refresh()
    return {"applied": applied, "state": _state_payload(editor)}


@router.post("/{proposal_id}/save")
async def save(proposal_id: str, registry: EditorRegistryDep):
    """Persist pending edits.

    A store failure is reported in the body (success=false with the store's
    message), not as an HTTP error: the edits are still held by the editor.
    """
    editor = _editor(registry, proposal_id)
    try:
        result = await editor.save()
    except DomainError as e:
        raise _http_error(e)
    return _save_payload(editor, result)


@router.post("/{proposal_id}/retry")
async def retry(proposal_id: str, registry: EditorRegistryDep):
    """Retry the last failed save."""
    editor = _editor(registry, proposal_id)
    try:
        result = await editor.retry()
    except DomainError as e:
        raise _http_error(e)
    return _save_payload(editor, result)


@router.delete("/{proposal_id}/error")
async def dismiss_error(proposal_id: str, registry: EditorRegistryDep):
    """Dismiss the save error panel."""
    editor = _editor(registry, proposal_id)
    editor.dismiss_error()
    return _state_payload(editor)


@router.get("/{proposal_id}/export", response_class=PlainTextResponse)
async def export_unsaved(proposal_id: str, registry: EditorRegistryDep):
    """Download the editor state as JSON for manual recovery."""
    editor = _editor(registry, proposal_id)
    return PlainTextResponse(editor.export_unsaved(), media_type="application/json")
