"""FastAPI API endpoints under /api.

Endpoint groups: narrative position (state, nodes, choices, advance,
history), timelines (list, ancestry, switch) and the world model (entities,
relationships, summaries). Every mutating endpoint goes through the engine's
StateController, so HTTP requests are serialised like any other action.
"""

from fastapi import APIRouter

from .state import router as state_router
from .timelines import router as timelines_router
from .world import router as world_router

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


router.include_router(state_router)
router.include_router(timelines_router)
router.include_router(world_router)
