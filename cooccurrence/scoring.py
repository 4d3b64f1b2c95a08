"""
Similarity scoring for entity pairs.
"""

import math
from typing import Mapping, Set, Tuple

from .models import PairCooccurrence, canonical_pair

JACCARD_DECIMALS = 4
STRENGTH_DECIMALS = 2


def round_half_up(value: float, decimals: int) -> float:
    """
    floor(value * 10**decimals + 0.5): halves go up (0.125 -> 0.13), where
    round() would give 0.12.
    """
    scale = 10 ** decimals
    return math.floor(value * scale + 0.5) / scale


def jaccard(intersection: int, total_a: int, total_b: int) -> float:
    """
    Jaccard similarity from set sizes: |A & B| / |A | B|.

    Returns 0.0 when the union is empty.
    """
    union = total_a + total_b - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def relationship_strength(jaccard_score: float) -> float:
    """Strength is the rounded Jaccard score; kept separate so it can be reweighted."""
    return round_half_up(jaccard_score, STRENGTH_DECIMALS)


class SimilarityScorer:
    """
    Scores pairs against each entity's total participation.

    total(X) is the number of distinct cases X took part in under either kind.
    The intersection is the number of distinct cases the pair shared, so a case
    where the pair matched as invitees and as respondents counts once.
    """

    def __init__(self, participation: Mapping[str, Set[str]]):
        self._participation = participation

    def total(self, entity_id: str) -> int:
        return len(self._participation.get(entity_id, ()))

    def score(self, a: str, b: str, pair: PairCooccurrence) -> Tuple[float, float]:
        """
        Score one pair. Argument order does not matter.

        Returns:
            (jaccard_score rounded to 4 decimals, relationship_strength)
        """
        a, b = canonical_pair(a, b)
        raw = jaccard(len(pair.all_case_ids), self.total(a), self.total(b))
        return round_half_up(raw, JACCARD_DECIMALS), relationship_strength(raw)
