"""
Pair Aggregator

Turns per-case participation sets into per-pair co-occurrence case sets.

Cost is O(sum(k_i^2)) over case sizes k_i: a single case with thousands of
participants dominates the run. No special casing is done for large cases.
"""

import logging
from collections import defaultdict
from itertools import combinations
from typing import Dict, Iterable, Mapping, Set

from .models import (
    PairCooccurrence,
    PairKey,
    ParticipationFact,
    ParticipationKind,
    canonical_pair,
)

logger = logging.getLogger(__name__)

CaseParticipants = Dict[str, Set[str]]


def group_by_case(facts: Iterable[ParticipationFact]) -> Dict[ParticipationKind, CaseParticipants]:
    """
    Group participation facts into case_id -> entity set maps, one per kind.

    Facts without an entity id (unresolved participants) are skipped.
    """
    grouped: Dict[ParticipationKind, CaseParticipants] = {
        ParticipationKind.INVITED: defaultdict(set),
        ParticipationKind.RESPONDED: defaultdict(set),
    }
    for fact in facts:
        if not fact.entity_id:
            continue
        grouped[fact.kind][fact.case_id].add(fact.entity_id)
    return {kind: dict(cases) for kind, cases in grouped.items()}


class PairAggregator:
    """
    Accumulates, per unordered entity pair, the cases they shared as invitees
    and the cases they shared as respondents.

    Usage:
        aggregator = PairAggregator()
        pairs = aggregator.aggregate(invited_by_case, responded_by_case)
        pairs[("A", "B")].invite_case_ids
    """

    def __init__(self):
        self._pairs: Dict[PairKey, PairCooccurrence] = {}

    def _ensure_pair(self, a: str, b: str) -> PairCooccurrence:
        key = canonical_pair(a, b)
        pair = self._pairs.get(key)
        if pair is None:
            pair = PairCooccurrence()
            self._pairs[key] = pair
        return pair

    def add_case(self, case_id: str, entity_ids: Iterable[str], kind: ParticipationKind) -> int:
        """
        Record one case's participants. Returns the number of pairs touched.

        Cases with fewer than two distinct participants contribute nothing.
        """
        touched = 0
        for a, b in combinations(sorted(set(entity_ids)), 2):
            pair = self._ensure_pair(a, b)
            if kind is ParticipationKind.INVITED:
                pair.invite_case_ids.add(case_id)
            else:
                pair.response_case_ids.add(case_id)
            touched += 1
        return touched

    def aggregate(
        self,
        invited: Mapping[str, Iterable[str]],
        responded: Mapping[str, Iterable[str]],
    ) -> Dict[PairKey, PairCooccurrence]:
        """
        Aggregate both participation maps and return the pair table.

        Args:
            invited: case_id -> entity ids invited to that case
            responded: case_id -> entity ids that responded to that case

        Returns:
            Dict keyed by canonical (entity_a_id, entity_b_id)
        """
        for case_id, entity_ids in invited.items():
            self.add_case(case_id, entity_ids, ParticipationKind.INVITED)
        for case_id, entity_ids in responded.items():
            self.add_case(case_id, entity_ids, ParticipationKind.RESPONDED)

        logger.info(f"Aggregated {len(self._pairs)} unique entity pairs")
        return self._pairs

    @property
    def pairs(self) -> Dict[PairKey, PairCooccurrence]:
        return self._pairs


def participation_by_entity(
    invited: Mapping[str, Iterable[str]],
    responded: Mapping[str, Iterable[str]],
) -> Dict[str, Set[str]]:
    """entity_id -> every case the entity took part in, under either kind."""
    participation: Dict[str, Set[str]] = defaultdict(set)
    for cases in (invited, responded):
        for case_id, entity_ids in cases.items():
            for entity_id in entity_ids:
                participation[entity_id].add(case_id)
    return dict(participation)
