"""
Entity Network API Endpoints

Read side of the co-occurrence graph, consumed by the network viewport and
entity detail pages.
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from backend.config import settings
from backend.db_pool import get_cooccurrence_store
from backend.middleware.rbac import CurrentUser, get_current_user
from cooccurrence.projection import NetworkFilters, entity_neighbors, project_network
from cooccurrence.storage import CooccurrenceStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/network", tags=["Entity Network"])


# Response Models
class NetworkNodeResponse(BaseModel):
    id: str
    name: str
    entity_type: str
    degree: int


class NetworkEdgeResponse(BaseModel):
    source: str
    target: str
    weight: float
    invite_count: int
    response_count: int
    shared_cases_count: int
    jaccard_score: float


class NetworkResponse(BaseModel):
    nodes: List[NetworkNodeResponse]
    edges: List[NetworkEdgeResponse]
    type_counts: Dict[str, int]
    highlighted_id: Optional[str] = None


class NeighborResponse(BaseModel):
    id: str
    name: str
    entity_type: str
    shared_cases_count: int
    jaccard_score: float
    invite_count: int
    response_count: int


def parse_entity_types(raw: Optional[str]) -> tuple:
    """'organization, person' -> ('organization', 'person'); blank -> ()"""
    if not raw:
        return ()
    return tuple(t.strip() for t in raw.split(",") if t.strip())


@router.get("", response_model=NetworkResponse)
async def get_entity_network(
    min_strength: float = Query(settings.NETWORK_DEFAULT_MIN_STRENGTH, ge=0, le=1),
    limit: int = Query(settings.NETWORK_DEFAULT_LIMIT, ge=1),
    entity_types: Optional[str] = Query(None, description="Comma-separated entity types"),
    entity_id: Optional[str] = Query(None, description="Centre the network on this entity"),
    search: Optional[str] = Query(None, description="Highlight the first node whose name matches"),
    user: CurrentUser = Depends(get_current_user),
    store: CooccurrenceStore = Depends(get_cooccurrence_store),
):
    """
    Filtered co-occurrence network: at most `limit` nodes (clamped to the
    configured maximum), highest degree first.
    """
    max_nodes = min(limit, settings.NETWORK_MAX_LIMIT)
    filters = NetworkFilters(
        min_strength=min_strength,
        max_nodes=max_nodes,
        entity_types=parse_entity_types(entity_types),
        search_term=search or "",
        entity_id=entity_id,
    )

    try:
        rows = await store.load_network_rows(
            min_strength,
            max_nodes * settings.NETWORK_ROW_FACTOR,
            entity_id=entity_id,
        )
        ids = sorted({r["entity_a_id"] for r in rows} | {r["entity_b_id"] for r in rows})
        entities = await store.load_entities(ids)
        type_counts = await store.load_type_counts()

        graph = project_network(rows, entities, filters, type_counts=type_counts)
        logger.info(
            f"Network for {user.user_id}: {len(graph.nodes)} nodes, {len(graph.edges)} edges "
            f"(min_strength={min_strength}, limit={max_nodes})"
        )
        return graph.to_dict()

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error loading entity network: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load entity network: {str(e)}"
        )


@router.get("/entities/{entity_id}/neighbors", response_model=List[NeighborResponse])
async def get_entity_neighbors(
    entity_id: str,
    limit: int = Query(settings.NEIGHBORS_DEFAULT_LIMIT, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    store: CooccurrenceStore = Depends(get_cooccurrence_store),
):
    """Strongest co-occurring entities for one entity."""
    try:
        rows = await store.load_neighbor_rows(entity_id, limit)
        ids = sorted(
            r["entity_b_id"] if r["entity_a_id"] == entity_id else r["entity_a_id"]
            for r in rows
        )
        entities = await store.load_entities(ids)
        return entity_neighbors(rows, entities, entity_id, limit=limit)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error loading neighbors for {entity_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load neighbors: {str(e)}"
        )
