"""
Data types shared by the co-occurrence engine, the store and the projector.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple


class EntityType(str, Enum):
    """Closed set of participant types produced by entity resolution."""
    ORGANIZATION = "organization"
    PERSON = "person"
    COMMITTEE = "committee"
    GOVERNMENT_BODY = "government_body"
    POLITICAL_PARTY = "political_party"


class ParticipationKind(str, Enum):
    INVITED = "invited"
    RESPONDED = "responded"


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    entity_type: str


@dataclass(frozen=True)
class ParticipationFact:
    """One (case, entity, kind) participation row."""
    case_id: str
    entity_id: Optional[str]
    kind: ParticipationKind


PairKey = Tuple[str, str]


def canonical_pair(a: str, b: str) -> PairKey:
    """Order a pair so (A, B) and (B, A) map to the same key."""
    return (a, b) if a < b else (b, a)


@dataclass
class PairCooccurrence:
    """Cases in which one unordered pair co-occurred, split by participation kind."""
    invite_case_ids: Set[str] = field(default_factory=set)
    response_case_ids: Set[str] = field(default_factory=set)

    @property
    def all_case_ids(self) -> Set[str]:
        return self.invite_case_ids | self.response_case_ids


@dataclass
class CooccurrenceRow:
    """
    Persisted pair row (table entity_cooccurrence).

    jaccard_score keeps 4 decimals, relationship_strength 2 decimals, and
    shared_cases holds at most MAX_SHARED_CASES ids, most recent first.
    """
    entity_a_id: str
    entity_b_id: str
    invite_cooccurrence_count: int
    response_cooccurrence_count: int
    cooccurrence_count: int
    jaccard_score: float
    relationship_strength: float
    shared_cases: List[str]
    total_shared_case_count: int
    first_cooccurrence_date: Optional[date]
    last_cooccurrence_date: Optional[date]
    updated_at: datetime

    # Column order used by the batch insert
    COLUMNS = (
        "entity_a_id",
        "entity_b_id",
        "invite_cooccurrence_count",
        "response_cooccurrence_count",
        "cooccurrence_count",
        "jaccard_score",
        "relationship_strength",
        "shared_cases",
        "total_shared_case_count",
        "first_cooccurrence_date",
        "last_cooccurrence_date",
        "updated_at",
    )

    def to_record(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, column) for column in self.COLUMNS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_a_id": self.entity_a_id,
            "entity_b_id": self.entity_b_id,
            "invite_cooccurrence_count": self.invite_cooccurrence_count,
            "response_cooccurrence_count": self.response_cooccurrence_count,
            "cooccurrence_count": self.cooccurrence_count,
            "jaccard_score": self.jaccard_score,
            "relationship_strength": self.relationship_strength,
            "shared_cases": list(self.shared_cases),
            "total_shared_case_count": self.total_shared_case_count,
            "first_cooccurrence_date": (
                self.first_cooccurrence_date.isoformat() if self.first_cooccurrence_date else None
            ),
            "last_cooccurrence_date": (
                self.last_cooccurrence_date.isoformat() if self.last_cooccurrence_date else None
            ),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class StrongestPair:
    entity_a_id: str
    entity_b_id: str
    cooccurrence_count: int
    jaccard_score: float
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_a_id": self.entity_a_id,
            "entity_b_id": self.entity_b_id,
            "cooccurrence_count": self.cooccurrence_count,
            "jaccard_score": self.jaccard_score,
            "strength": self.strength,
        }


@dataclass(frozen=True)
class CooccurrenceStats:
    total_pairs: int
    avg_jaccard: float
    max_count: int
    strongest: Tuple[StrongestPair, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_pairs": self.total_pairs,
            "avg_jaccard": self.avg_jaccard,
            "max_count": self.max_count,
            "strongest": [pair.to_dict() for pair in self.strongest],
        }


@dataclass(frozen=True)
class CooccurrenceRunResult:
    """Outcome of one engine run (dry run or commit)."""
    dry_run: bool
    stats: CooccurrenceStats
    inserted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        if self.dry_run:
            return {"dry_run": True, "stats": self.stats.to_dict()}
        return {"success": True, "inserted": self.inserted, "stats": self.stats.to_dict()}
