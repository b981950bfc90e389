from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
import logging

from dub_schedule.config import settings
from dub_schedule.database import get_db, session_scope
from dub_schedule.schemas import (
    DubScheduleResponse,
    PreferencesResponse,
    PreferencesSchema,
    PreferencesUpdate,
    ScheduleRenderRequest,
    ScheduleRenderResponse,
)
from dub_schedule.services.dub_refresh_service import refresh_dub_schedule
from dub_schedule.services.preference_service import (
    default_preferences,
    describe_filter_change,
    describe_format_change,
    load_preferences,
    save_preferences,
)
from dub_schedule.services.reconciliation_service import sort_chronologically
from dub_schedule.services.render_service import render_schedule, to_schema
from dub_schedule.services.schedule_types import Preferences
from dub_schedule.services.scheduler_service import dub_scheduler
from dub_schedule.services.snapshot_store import get_snapshot_store
from dub_schedule.utils.timezone import format_iso_utc


logger = logging.getLogger(__name__)

main_router = APIRouter()


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = dub_scheduler.get_next_run_time()

    return {
        "service": "Dub Schedule Service",
        "version": "0.1.0",
        "next_scheduled_refresh": next_run.isoformat() if next_run else None,
        "endpoints": {
            "refresh": "/refresh - Manually trigger a dub schedule refresh",
            "dub": "/schedule/dub - Current dub schedule snapshot",
            "render": "/schedule/render - Merge a host schedule with the dub snapshot (POST)",
            "preferences": "/preferences - Read or update display preferences",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    next_run = dub_scheduler.get_next_run_time()
    store = get_snapshot_store()
    snapshot = store.snapshot
    return {
        "status": "ok",
        "scheduler_running": dub_scheduler.is_running(),
        "refresh_in_progress": store.is_refreshing(),
        "snapshot_generation": snapshot.generation,
        "snapshot_items": len(snapshot.items),
        "snapshot_built_at": snapshot.built_at.isoformat() if snapshot.built_at else None,
        "next_refresh": next_run.isoformat() if next_run else None
    }


@main_router.post("/refresh")
async def trigger_refresh() -> dict:
    """
    Manually trigger a dub schedule refresh

    This will fetch both dub feeds and the AniList collection and rebuild the snapshot
    """
    logger.info("Manual dub schedule refresh triggered via API")
    result = await refresh_dub_schedule()

    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])

    return result


@main_router.get("/schedule/dub", response_model=DubScheduleResponse)
async def get_dub_schedule() -> DubScheduleResponse:
    """Current dub snapshot, chronologically ordered"""
    snapshot = get_snapshot_store().snapshot
    items = [to_schema(item) for item in sort_chronologically(snapshot.items)]
    return DubScheduleResponse(
        generation=snapshot.generation,
        built_at=format_iso_utc(snapshot.built_at) if snapshot.built_at else None,
        dub_prefix_style=snapshot.dub_prefix_style,
        total_items=len(items),
        items=items,
    )


@main_router.post("/schedule/render", response_model=ScheduleRenderResponse)
async def render_host_schedule(request: ScheduleRenderRequest) -> ScheduleRenderResponse:
    """
    Replace the host's schedule with the filtered sub/dub combination

    Always answers with a usable list; internal failures fall back to the original items
    """
    try:
        async with session_scope() as session:
            preferences = await load_preferences(session, settings)
    except Exception as exc:
        logger.error(f"Could not load preferences, using defaults: {exc}", exc_info=True)
        preferences = default_preferences(settings)

    items = render_schedule(request.items, get_snapshot_store().snapshot, preferences)
    return ScheduleRenderResponse(
        filter_mode=preferences.filter_mode,
        dub_prefix_style=preferences.dub_prefix_style,
        total_items=len(items),
        items=items,
    )


@main_router.get("/preferences", response_model=PreferencesSchema)
async def get_preferences(db: Annotated[AsyncSession, Depends(get_db)]) -> PreferencesSchema:
    """Current display preferences"""
    preferences = await load_preferences(db, settings)
    return PreferencesSchema(
        filter_mode=preferences.filter_mode,
        dub_prefix_style=preferences.dub_prefix_style,
    )


@main_router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    update: PreferencesUpdate,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> PreferencesResponse:
    """
    Update display preferences

    Any change schedules an immediate refresh so the snapshot is rebuilt with the new marker
    """
    current = await load_preferences(db, settings)
    updated = Preferences(
        filter_mode=update.filter_mode or current.filter_mode,
        dub_prefix_style=update.dub_prefix_style or current.dub_prefix_style,
    )

    messages = []
    if updated.filter_mode is not current.filter_mode:
        messages.append(describe_filter_change(updated.filter_mode))
    if updated.dub_prefix_style is not current.dub_prefix_style:
        messages.append(describe_format_change(updated.dub_prefix_style))

    if messages:
        await save_preferences(db, updated)
        await db.commit()
        background_tasks.add_task(refresh_dub_schedule, updated)
        for message in messages:
            logger.info(message)

    return PreferencesResponse(
        filter_mode=updated.filter_mode,
        dub_prefix_style=updated.dub_prefix_style,
        refresh_scheduled=bool(messages),
        messages=messages,
    )
