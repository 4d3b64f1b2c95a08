"""
Co-occurrence Engine

Full-corpus batch computation of the entity co-occurrence graph:

    participation facts -> pair case sets -> Jaccard scores -> capped evidence
    -> stats (dry run) or delete-all + batched insert (commit)

Every run is a full recompute. Commit deletes all existing rows before
inserting the fresh set, so a failure during insert leaves the table empty or
partially populated until the next successful run. Runs are guarded by an
optional single-flight lock so two runs never interleave that window.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .aggregator import PairAggregator, group_by_case, participation_by_entity
from .errors import CommitError, ComputeInProgressError, DataFetchError
from .evidence import MAX_SHARED_CASES, cap_shared_cases, date_bounds
from .models import (
    CooccurrenceRow,
    CooccurrenceRunResult,
    CooccurrenceStats,
    ParticipationFact,
    ParticipationKind,
    StrongestPair,
)
from .scoring import JACCARD_DECIMALS, SimilarityScorer, round_half_up

logger = logging.getLogger(__name__)

# Rows per insert batch
BATCH_SIZE = 500

# Pairs listed in the stats payload
STRONGEST_PAIR_COUNT = 5


class EngineState(str, Enum):
    IDLE = "idle"
    AGGREGATING = "aggregating"
    SCORING = "scoring"
    DRY_RUN_REPORT = "dry_run_report"
    COMMIT_PENDING = "commit_pending"
    COMMITTED = "committed"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_rows(
    facts: Iterable[ParticipationFact],
    case_dates: Mapping[str, datetime],
    max_shared_cases: int = MAX_SHARED_CASES,
    now: Optional[datetime] = None,
) -> List[CooccurrenceRow]:
    """
    Aggregate, score and cap every co-occurring pair.

    Rows are ordered by relationship_strength descending, then by
    (entity_a_id, entity_b_id), so repeated runs over the same input produce
    identical output.

    Args:
        facts: Participation facts (unresolved entity ids are skipped)
        case_dates: case_id -> recency date
        max_shared_cases: Evidence cap per pair
        now: Timestamp written to updated_at

    Returns:
        List of CooccurrenceRow
    """
    now = now or _utcnow()
    grouped = group_by_case(facts)
    invited = grouped[ParticipationKind.INVITED]
    responded = grouped[ParticipationKind.RESPONDED]

    pairs = PairAggregator().aggregate(invited, responded)
    scorer = SimilarityScorer(participation_by_entity(invited, responded))

    rows: List[CooccurrenceRow] = []
    for (entity_a, entity_b), pair in pairs.items():
        all_cases = pair.all_case_ids
        jaccard_score, strength = scorer.score(entity_a, entity_b, pair)
        first_date, last_date = date_bounds(all_cases, case_dates)

        rows.append(CooccurrenceRow(
            entity_a_id=entity_a,
            entity_b_id=entity_b,
            invite_cooccurrence_count=len(pair.invite_case_ids),
            response_cooccurrence_count=len(pair.response_case_ids),
            cooccurrence_count=len(all_cases),
            jaccard_score=jaccard_score,
            relationship_strength=strength,
            shared_cases=cap_shared_cases(all_cases, case_dates, max_shared_cases),
            total_shared_case_count=len(all_cases),
            first_cooccurrence_date=first_date,
            last_cooccurrence_date=last_date,
            updated_at=now,
        ))

    rows.sort(key=lambda r: (-r.relationship_strength, r.entity_a_id, r.entity_b_id))
    return rows


def compute_stats(rows: List[CooccurrenceRow]) -> CooccurrenceStats:
    """Summary statistics over rows already sorted strongest-first."""
    if not rows:
        return CooccurrenceStats(total_pairs=0, avg_jaccard=0.0, max_count=0, strongest=())

    avg_jaccard = round_half_up(sum(r.jaccard_score for r in rows) / len(rows), JACCARD_DECIMALS)
    strongest = tuple(
        StrongestPair(
            entity_a_id=r.entity_a_id,
            entity_b_id=r.entity_b_id,
            cooccurrence_count=r.cooccurrence_count,
            jaccard_score=r.jaccard_score,
            strength=r.relationship_strength,
        )
        for r in rows[:STRONGEST_PAIR_COUNT]
    )
    return CooccurrenceStats(
        total_pairs=len(rows),
        avg_jaccard=avg_jaccard,
        max_count=max(r.cooccurrence_count for r in rows),
        strongest=strongest,
    )


class CooccurrenceEngine:
    """
    Orchestrates one co-occurrence run against a store.

    The store must provide fetch_participation(), fetch_case_dates(),
    delete_all_pairs() and insert_pairs(rows) coroutines plus the
    try_acquire_compute_lock() context manager (see CooccurrenceStore).
    Authorization is the caller's concern.

    Two locks guard a run: the optional in-process asyncio.Lock and the
    store's cross-process advisory lock, shared with the batch CLI.

    Usage:
        engine = CooccurrenceEngine(CooccurrenceStore(pool), lock=compute_lock)
        result = await engine.run(dry_run=True)
        result.stats.total_pairs
    """

    def __init__(
        self,
        store,
        batch_size: int = BATCH_SIZE,
        max_shared_cases: int = MAX_SHARED_CASES,
        lock: Optional[asyncio.Lock] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.batch_size = batch_size
        self.max_shared_cases = max_shared_cases
        self.lock = lock
        self.clock = clock
        self.state = EngineState.IDLE
        self.history: List[EngineState] = [EngineState.IDLE]
        self.error: Optional[Exception] = None

    def _transition(self, state: EngineState) -> None:
        logger.info(f"Co-occurrence engine: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def run(self, dry_run: bool = False) -> CooccurrenceRunResult:
        """
        Run a full recompute.

        Raises:
            ComputeInProgressError: Another run holds either lock
            DataFetchError: Inputs could not be loaded (nothing written)
            CommitError: Delete or a batch insert failed
        """
        if self.lock is None:
            return await self._run_exclusive(dry_run)

        if self.lock.locked():
            raise ComputeInProgressError("A co-occurrence compute run is already in progress")
        async with self.lock:
            return await self._run_exclusive(dry_run)

    async def _run_exclusive(self, dry_run: bool) -> CooccurrenceRunResult:
        async with self.store.try_acquire_compute_lock() as acquired:
            if not acquired:
                logger.warning("Co-occurrence compute lock held by another process")
                raise ComputeInProgressError(
                    "A co-occurrence compute run is already in progress in another process"
                )
            return await self._run(dry_run)

    async def _run(self, dry_run: bool) -> CooccurrenceRunResult:
        self.state = EngineState.IDLE
        self.history = [EngineState.IDLE]
        self.error = None
        started = self.clock()

        logger.info("=" * 70)
        logger.info(f"ENTITY CO-OCCURRENCE COMPUTE (dry_run={dry_run})")
        logger.info("=" * 70)

        try:
            self._transition(EngineState.AGGREGATING)
            try:
                facts = await self.store.fetch_participation()
                case_dates = await self.store.fetch_case_dates()
            except Exception as e:
                raise DataFetchError(f"Participation fetch failed: {e}") from e
            logger.info(f"  {len(facts)} participation facts, {len(case_dates)} dated cases")

            self._transition(EngineState.SCORING)
            rows = build_rows(facts, case_dates, self.max_shared_cases, now=started)
            stats = compute_stats(rows)
            logger.info(
                f"  {stats.total_pairs} pairs, avg jaccard {stats.avg_jaccard}, "
                f"max count {stats.max_count}"
            )

            if dry_run:
                self._transition(EngineState.DRY_RUN_REPORT)
                return CooccurrenceRunResult(dry_run=True, stats=stats)

            self._transition(EngineState.COMMIT_PENDING)
            inserted = await self._commit(rows)
            self._transition(EngineState.COMMITTED)

            elapsed = (self.clock() - started).total_seconds()
            logger.info(f"COMPUTE COMPLETE in {elapsed:.1f}s: inserted {inserted} co-occurrence pairs")
            return CooccurrenceRunResult(dry_run=False, stats=stats, inserted=inserted)

        except Exception as e:
            self.error = e
            self._transition(EngineState.FAILED)
            logger.error(f"Co-occurrence compute failed: {e}", exc_info=True)
            raise

    async def _commit(self, rows: List[CooccurrenceRow]) -> int:
        """Delete every persisted pair, then insert rows in fixed-size batches."""
        try:
            await self.store.delete_all_pairs()
        except Exception as e:
            raise CommitError(f"Delete failed: {e}") from e

        inserted = 0
        for batch_index, offset in enumerate(range(0, len(rows), self.batch_size)):
            batch = rows[offset:offset + self.batch_size]
            try:
                await self.store.insert_pairs(batch)
            except Exception as e:
                logger.error(f"Insert batch {batch_index} failed: {e}")
                raise CommitError(
                    f"Insert failed at batch {batch_index}: {e}", batch_index=batch_index
                ) from e
            inserted += len(batch)
            logger.info(f"  Inserted pairs batch {batch_index}: {inserted}/{len(rows)}")

        return inserted

    def summary(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "history": [s.value for s in self.history],
            "error": str(self.error) if self.error else None,
        }
