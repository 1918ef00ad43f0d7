from fastapi import APIRouter, Depends, HTTPException, Request

from overtime.schemas import (
    ActionResponse,
    EntryActionResponse,
    EntryListResponse,
    EntryPreview,
    EntryRequest,
    Settings,
    SettingsRequest,
    StartRequest,
    StatusResponse,
)
from overtime.services.controller import TrackerController
from overtime.services.storage import StaticConfirmer

router = APIRouter(prefix="/api", tags=["api"])


def get_controller(request: Request) -> TrackerController:
    return request.app.state.controller


# Handlers are async so timer transitions run on the event loop that drives
# the sampling task.


@router.get("/status", response_model=StatusResponse, response_model_by_alias=False)
async def get_status(controller: TrackerController = Depends(get_controller)):
    """Get current timer status and live balance"""
    return controller.snapshot()


@router.post("/start", response_model=ActionResponse)
async def start_timer(
    body: StartRequest | None = None,
    controller: TrackerController = Depends(get_controller),
):
    """Start a new work session, optionally at a manual HH:MM start time"""
    return controller.start_timer(body.start_time if body else None)


@router.post("/pause", response_model=ActionResponse)
async def pause_timer(controller: TrackerController = Depends(get_controller)):
    """Pause the current session"""
    return controller.pause_timer()


@router.post("/continue", response_model=ActionResponse)
async def continue_timer(controller: TrackerController = Depends(get_controller)):
    """Resume from pause"""
    return controller.resume_timer()


@router.post("/stop", response_model=ActionResponse)
async def stop_timer(controller: TrackerController = Depends(get_controller)):
    """Stop the session; it stays pending until committed or reset"""
    return controller.stop_timer()


@router.post("/reset", response_model=ActionResponse)
async def reset_timer(controller: TrackerController = Depends(get_controller)):
    """Stop without saving (discard session)"""
    return controller.reset_timer()


@router.get("/entries", response_model=EntryListResponse, response_model_by_alias=False)
async def list_entries(controller: TrackerController = Depends(get_controller)):
    """List all entries, most recent first, with the total balance"""
    return controller.list_entries()


@router.post("/entries", response_model=EntryActionResponse, response_model_by_alias=False)
async def commit_entry(
    body: EntryRequest, controller: TrackerController = Depends(get_controller)
):
    """Save the entry for a date; overwriting requires confirm=true"""
    return controller.commit_entry(
        body.date, body.start_time, body.end_time, StaticConfirmer(body.confirm)
    )


@router.post("/entries/preview", response_model=EntryPreview)
async def preview_entry(
    body: EntryRequest, controller: TrackerController = Depends(get_controller)
):
    """Compute worked time and difference of an entry without saving it"""
    return controller.preview_entry(body.date, body.start_time, body.end_time)


@router.delete("/entries/{entry_id}", response_model=ActionResponse)
async def delete_entry(
    entry_id: int, controller: TrackerController = Depends(get_controller)
):
    """Delete an entry by ID"""
    result = controller.delete_entry(entry_id)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.message)
    return result


@router.delete("/entries", response_model=ActionResponse)
async def clear_entries(
    confirm: bool = False, controller: TrackerController = Depends(get_controller)
):
    """Delete all entries; requires confirm=true"""
    return controller.clear_entries(StaticConfirmer(confirm))


@router.get("/settings", response_model=Settings, response_model_by_alias=False)
async def get_settings(controller: TrackerController = Depends(get_controller)):
    return controller.settings


@router.put("/settings", response_model=ActionResponse)
async def update_settings(
    body: SettingsRequest, controller: TrackerController = Depends(get_controller)
):
    return controller.update_settings(body.target_minutes, body.break_minutes)
