"""Narrative position endpoints: current state, choices, auto-advance, history."""

from fastapi import APIRouter, Depends, HTTPException

from neural_echo.engine import EngineContext
from neural_echo.errors import NoNextNode, UnknownChoice

from .deps import get_engine
from .models import AdvanceBody, StateView, UpdateVariables, coerce_id

router = APIRouter()


def _state_view(engine: EngineContext) -> StateView:
    controller = engine.controller
    node = controller.current_node()
    return StateView(
        game_state=controller.state,
        node=node,
        choices=controller.current_choices(),
        timeline=engine.timelines.get_current_timeline(),
        storyline=engine.graph.get_storyline_for_node(node.id),
    )


@router.get("/state")
async def get_state(engine: EngineContext = Depends(get_engine)) -> StateView:
    """Current node, its available choices, and the current timeline."""
    return _state_view(engine)


@router.patch("/state/variables")
async def update_variables(body: UpdateVariables, engine: EngineContext = Depends(get_engine)):
    """Deep-merge narrative variables into the game state."""
    return await engine.controller.set_variables(body.variables)


@router.get("/nodes/{node_id}")
async def get_node(node_id: str, engine: EngineContext = Depends(get_engine)):
    """Get a node with its choices."""
    key = coerce_id(node_id)
    node = engine.graph.get_node(key)
    if node is None:
        raise HTTPException(404, "Node not found")
    return {"node": node, "choices": engine.graph.get_choices(key)}


@router.post("/choices/{choice_id}")
async def apply_choice(choice_id: str, engine: EngineContext = Depends(get_engine)):
    """Take a choice on the current node."""
    try:
        return await engine.controller.apply_choice(coerce_id(choice_id))
    except UnknownChoice as e:
        raise HTTPException(409, str(e))


@router.post("/advance")
async def advance(body: AdvanceBody | None = None, engine: EngineContext = Depends(get_engine)):
    """Continue past a non-choice node."""
    from_node_id = body.from_node_id if body else None
    try:
        node = await engine.controller.advance(from_node_id)
    except NoNextNode as e:
        raise HTTPException(409, str(e))
    return {"node": node}


@router.get("/history")
async def get_history(engine: EngineContext = Depends(get_engine)):
    """Ordered visit log."""
    return engine.history.all()
