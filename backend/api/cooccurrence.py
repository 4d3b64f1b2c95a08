"""
Co-occurrence Compute API Endpoints

Admin-triggered recompute of the entity co-occurrence table.

Security:
- Requires a bearer token whose user holds the admin role
- Authorization happens before any engine work

Behaviour:
- dry_run=true returns statistics only, nothing is written
- dry_run=false deletes every pair row and re-inserts in batches
- One run at a time per process; a concurrent request gets 409
"""
import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from backend.db_pool import get_cooccurrence_store
from backend.middleware.rbac import CurrentUser, require_admin
from cooccurrence.engine import CooccurrenceEngine
from cooccurrence.errors import ComputeInProgressError, CooccurrenceError
from cooccurrence.storage import CooccurrenceStore

logger = logging.getLogger(__name__)

# Shared by every request in this process
compute_lock = asyncio.Lock()


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

router = APIRouter(
    prefix="/api/admin/cooccurrence",
    tags=["Co-occurrence"]
)


# ============================================================================
# REQUEST / RESPONSE SCHEMAS
# ============================================================================

class ComputeRequest(BaseModel):
    dry_run: bool = False


class StrongestPairResponse(BaseModel):
    entity_a_id: str
    entity_b_id: str
    cooccurrence_count: int
    jaccard_score: float
    strength: float


class CooccurrenceStatsResponse(BaseModel):
    total_pairs: int
    avg_jaccard: float
    max_count: int
    strongest: List[StrongestPairResponse]


class ComputeResponse(BaseModel):
    """Dry run: {dry_run, stats}. Commit: {success, inserted, stats}."""
    dry_run: Optional[bool] = None
    success: Optional[bool] = None
    inserted: Optional[int] = None
    stats: CooccurrenceStatsResponse


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/compute", response_model=ComputeResponse, response_model_exclude_none=True)
async def compute_cooccurrence(
    request: Optional[ComputeRequest] = None,
    admin: CurrentUser = Depends(require_admin),
    store: CooccurrenceStore = Depends(get_cooccurrence_store),
):
    """
    Recompute entity co-occurrence from remiss invitees and responses.

    Returns statistics for a dry run, or the inserted row count plus
    statistics for a commit.
    """
    dry_run = request.dry_run if request is not None else False
    logger.info(f"Co-occurrence compute requested by {admin.user_id} (dry_run={dry_run})")

    try:
        if not dry_run:
            await store.ensure_tables_exist()

        engine = CooccurrenceEngine(store, lock=compute_lock)
        result = await engine.run(dry_run=dry_run)
        return result.to_dict()

    except ComputeInProgressError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    except CooccurrenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing co-occurrence: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute co-occurrence: {str(e)}"
        )
