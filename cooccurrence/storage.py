"""
Co-occurrence Store

Raw-SQL storage boundary over an asyncpg pool. Reads participation facts and
case metadata for the engine, writes the entity_cooccurrence table, and serves
the network read endpoints.

Tables read:
- remiss_invitees (remiss_id, entity_id)
- remiss_responses (remiss_id, entity_id)
- remiss_documents (id, created_at, remiss_deadline)
- entities (id, name, entity_type)

Table written:
- entity_cooccurrence (one row per canonical entity pair)
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import asyncpg

from .evidence import resolve_case_date
from .models import CooccurrenceRow, Entity, ParticipationFact, ParticipationKind

logger = logging.getLogger(__name__)


INSERT_PAIR_SQL = """
    INSERT INTO entity_cooccurrence
        (entity_a_id, entity_b_id, invite_cooccurrence_count,
         response_cooccurrence_count, cooccurrence_count, jaccard_score,
         relationship_strength, shared_cases, total_shared_case_count,
         first_cooccurrence_date, last_cooccurrence_date, updated_at)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
"""

# pg advisory lock key shared by every process that recomputes the table
COMPUTE_LOCK_KEY = 734_201_001

NETWORK_COLUMNS = """
    entity_a_id, entity_b_id, cooccurrence_count, invite_cooccurrence_count,
    response_cooccurrence_count, relationship_strength, total_shared_case_count,
    jaccard_score
"""


class CooccurrenceStore:
    """
    asyncpg-backed storage for the co-occurrence engine and graph reads.

    Usage:
        pool = await asyncpg.create_pool(dsn=...)
        store = CooccurrenceStore(pool)
        facts = await store.fetch_participation()
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def ensure_tables_exist(self) -> None:
        """Ensure the entity_cooccurrence table exists."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS entity_cooccurrence (
                    entity_a_id TEXT NOT NULL,
                    entity_b_id TEXT NOT NULL,
                    invite_cooccurrence_count INTEGER NOT NULL DEFAULT 0,
                    response_cooccurrence_count INTEGER NOT NULL DEFAULT 0,
                    cooccurrence_count INTEGER NOT NULL DEFAULT 0,
                    jaccard_score NUMERIC(6,4) DEFAULT 0,
                    relationship_strength NUMERIC(4,2) DEFAULT 0,
                    shared_cases TEXT[] DEFAULT '{}',
                    total_shared_case_count INTEGER DEFAULT 0,
                    first_cooccurrence_date DATE,
                    last_cooccurrence_date DATE,
                    updated_at TIMESTAMPTZ DEFAULT NOW(),
                    PRIMARY KEY (entity_a_id, entity_b_id),
                    CHECK (entity_a_id < entity_b_id)
                )
            """)
        logger.info("Table entity_cooccurrence verified/created")

    # ------------------------------------------------------------------
    # Engine inputs
    # ------------------------------------------------------------------

    async def fetch_participation(self) -> List[ParticipationFact]:
        """Load every resolved invitee and respondent as participation facts."""
        facts: List[ParticipationFact] = []
        async with self.pool.acquire() as conn:
            invitees = await conn.fetch(
                "SELECT remiss_id, entity_id FROM remiss_invitees WHERE entity_id IS NOT NULL"
            )
            responses = await conn.fetch(
                "SELECT remiss_id, entity_id FROM remiss_responses WHERE entity_id IS NOT NULL"
            )

        for row in invitees:
            facts.append(ParticipationFact(
                case_id=str(row["remiss_id"]),
                entity_id=str(row["entity_id"]),
                kind=ParticipationKind.INVITED,
            ))
        for row in responses:
            facts.append(ParticipationFact(
                case_id=str(row["remiss_id"]),
                entity_id=str(row["entity_id"]),
                kind=ParticipationKind.RESPONDED,
            ))

        logger.info(f"Loaded {len(invitees)} invitee and {len(responses)} response facts")
        return facts

    async def fetch_case_dates(self) -> Dict[str, datetime]:
        """case_id -> recency date (deadline, else creation time). Undated cases are omitted."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT id, created_at, remiss_deadline FROM remiss_documents")

        case_dates: Dict[str, datetime] = {}
        for row in rows:
            resolved = resolve_case_date(row["remiss_deadline"], row["created_at"])
            if resolved is not None:
                case_dates[str(row["id"])] = resolved
        return case_dates

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def try_acquire_compute_lock(self):
        """
        Hold the cross-process compute lock for the duration of the block.

        Yields True when acquired, False when another session holds it. The
        advisory lock is tied to one pooled connection, kept until exit.
        """
        async with self.pool.acquire() as conn:
            acquired = await conn.fetchval("SELECT pg_try_advisory_lock($1)", COMPUTE_LOCK_KEY)
            try:
                yield bool(acquired)
            finally:
                if acquired:
                    await conn.fetchval("SELECT pg_advisory_unlock($1)", COMPUTE_LOCK_KEY)

    async def delete_all_pairs(self) -> None:
        async with self.pool.acquire() as conn:
            status = await conn.execute("DELETE FROM entity_cooccurrence")
        logger.info(f"Cleared entity_cooccurrence ({status})")

    async def insert_pairs(self, rows: Sequence[CooccurrenceRow]) -> int:
        """Insert one batch of rows. Returns the number of rows written."""
        if not rows:
            return 0
        async with self.pool.acquire() as conn:
            await conn.executemany(INSERT_PAIR_SQL, [row.to_record() for row in rows])
        return len(rows)

    # ------------------------------------------------------------------
    # Network reads
    # ------------------------------------------------------------------

    async def load_network_rows(
        self,
        min_strength: float,
        limit: int,
        entity_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Strongest pair rows at or above min_strength, optionally touching one entity."""
        if entity_id:
            query = f"""
                SELECT {NETWORK_COLUMNS}
                FROM entity_cooccurrence
                WHERE relationship_strength >= $1
                  AND (entity_a_id = $3 OR entity_b_id = $3)
                ORDER BY relationship_strength DESC, entity_a_id, entity_b_id
                LIMIT $2
            """
            args = (min_strength, limit, entity_id)
        else:
            query = f"""
                SELECT {NETWORK_COLUMNS}
                FROM entity_cooccurrence
                WHERE relationship_strength >= $1
                ORDER BY relationship_strength DESC, entity_a_id, entity_b_id
                LIMIT $2
            """
            args = (min_strength, limit)

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
        return [_pair_record(row) for row in rows]

    async def load_neighbor_rows(self, entity_id: str, limit: int) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {NETWORK_COLUMNS}
                FROM entity_cooccurrence
                WHERE entity_a_id = $1 OR entity_b_id = $1
                ORDER BY relationship_strength DESC, entity_a_id, entity_b_id
                LIMIT $2
                """,
                entity_id,
                limit,
            )
        return [_pair_record(row) for row in rows]

    async def load_entities(self, entity_ids: Sequence[str]) -> Dict[str, Entity]:
        if not entity_ids:
            return {}
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id, name, entity_type FROM entities WHERE id::text = ANY($1::text[])",
                list(entity_ids),
            )
        return {
            str(row["id"]): Entity(id=str(row["id"]), name=row["name"], entity_type=row["entity_type"])
            for row in rows
        }

    async def load_type_counts(self) -> Dict[str, int]:
        """Entity type -> number of entities appearing in any persisted pair."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT e.entity_type, COUNT(*) AS entity_count
                FROM entities e
                WHERE e.id::text IN (
                    SELECT entity_a_id FROM entity_cooccurrence
                    UNION
                    SELECT entity_b_id FROM entity_cooccurrence
                )
                GROUP BY e.entity_type
            """)
        return {row["entity_type"]: row["entity_count"] for row in rows}


def _pair_record(row) -> Dict[str, Any]:
    return {
        "entity_a_id": row["entity_a_id"],
        "entity_b_id": row["entity_b_id"],
        "cooccurrence_count": row["cooccurrence_count"] or 0,
        "invite_cooccurrence_count": row["invite_cooccurrence_count"] or 0,
        "response_cooccurrence_count": row["response_cooccurrence_count"] or 0,
        "relationship_strength": float(row["relationship_strength"] or 0),
        "total_shared_case_count": row["total_shared_case_count"] or 0,
        "jaccard_score": float(row["jaccard_score"] or 0),
    }
