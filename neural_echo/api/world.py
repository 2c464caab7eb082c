"""World model endpoints: entities and relationships."""

from fastapi import APIRouter, Depends, HTTPException

from neural_echo.engine import EngineContext
from neural_echo.errors import UnknownEntity

from .deps import get_engine
from .models import UpdateRelationship, coerce_id

router = APIRouter()


@router.get("/entities")
async def list_entities(engine: EngineContext = Depends(get_engine)):
    """All entities in the world model."""
    return engine.relationships.get_entities()


@router.get("/entities/{entity_id}/relationships")
async def entity_relationships(entity_id: str, engine: EngineContext = Depends(get_engine)):
    """Relationships in either direction for one entity."""
    key = coerce_id(entity_id)
    if engine.relationships.get_entity(key) is None:
        raise HTTPException(404, "Entity not found")
    return engine.relationships.get_relationships_for(key)


@router.get("/entities/{entity_id}/summary")
async def entity_summary(entity_id: str, engine: EngineContext = Depends(get_engine)):
    """Structured relationship descriptions for narrative summaries."""
    try:
        return engine.relationships.describe_relationships(coerce_id(entity_id))
    except UnknownEntity:
        raise HTTPException(404, "Entity not found")


@router.put("/relationships")
async def update_relationship(body: UpdateRelationship, engine: EngineContext = Depends(get_engine)):
    """Upsert a relationship by (from, to, type); strength is clamped to [0, 1]."""
    try:
        return await engine.controller.update_relationship(
            body.from_entity_id, body.to_entity_id, body.type, body.strength
        )
    except UnknownEntity as e:
        raise HTTPException(404, str(e))
