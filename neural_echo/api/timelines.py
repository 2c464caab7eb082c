"""Timeline tree endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from neural_echo.engine import EngineContext
from neural_echo.errors import UnknownTimeline

from .deps import get_engine
from .models import coerce_id

router = APIRouter()


@router.get("/timelines")
async def list_timelines(engine: EngineContext = Depends(get_engine)):
    """All timelines plus the current pointer."""
    return {
        "current_timeline_id": engine.state.current.current_timeline_id,
        "timelines": engine.timelines.timelines(),
    }


@router.get("/timelines/{timeline_id}/ancestry")
async def timeline_ancestry(timeline_id: str, engine: EngineContext = Depends(get_engine)):
    """Path from the root timeline down to this one."""
    try:
        return engine.timelines.ancestry(coerce_id(timeline_id))
    except UnknownTimeline:
        raise HTTPException(404, "Timeline not found")


@router.post("/timelines/{timeline_id}/switch")
async def switch_timeline(timeline_id: str, engine: EngineContext = Depends(get_engine)):
    """Move the current-timeline pointer. The current node is unchanged."""
    try:
        return await engine.controller.switch_timeline(coerce_id(timeline_id))
    except UnknownTimeline:
        raise HTTPException(404, "Timeline not found")
