"""
Graph Projector

Turns persisted pair rows plus filter parameters into a bounded
{nodes, edges} view for the network viewport.

Guarantees of every projected graph:
- every edge weight >= min_strength
- node count <= max_nodes (plus the centred entity, when one is requested)
- every edge connects two returned nodes
- node degree counts returned edges only
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from .models import Entity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkFilters:
    min_strength: float = 0.1
    max_nodes: int = 200
    entity_types: Tuple[str, ...] = ()  # empty = all types
    search_term: str = ""  # display only, never filters
    entity_id: Optional[str] = None


@dataclass(frozen=True)
class NetworkNode:
    id: str
    name: str
    entity_type: str
    degree: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "entity_type": self.entity_type, "degree": self.degree}


@dataclass(frozen=True)
class NetworkEdge:
    source: str
    target: str
    weight: float
    invite_count: int = 0
    response_count: int = 0
    shared_cases_count: int = 0
    jaccard_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "invite_count": self.invite_count,
            "response_count": self.response_count,
            "shared_cases_count": self.shared_cases_count,
            "jaccard_score": self.jaccard_score,
        }


@dataclass
class NetworkGraph:
    nodes: List[NetworkNode] = field(default_factory=list)
    edges: List[NetworkEdge] = field(default_factory=list)
    type_counts: Dict[str, int] = field(default_factory=dict)
    highlighted_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "type_counts": dict(self.type_counts),
            "highlighted_id": self.highlighted_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NetworkGraph":
        """Build from the JSON payload returned by the network endpoint."""
        return cls(
            nodes=[
                NetworkNode(
                    id=n["id"],
                    name=n.get("name", n["id"]),
                    entity_type=n.get("entity_type", "organization"),
                    degree=int(n.get("degree", 0)),
                )
                for n in data.get("nodes", [])
            ],
            edges=[
                NetworkEdge(
                    source=e["source"],
                    target=e["target"],
                    weight=float(e.get("weight", 0)),
                    invite_count=int(e.get("invite_count", 0)),
                    response_count=int(e.get("response_count", 0)),
                    shared_cases_count=int(e.get("shared_cases_count", 0)),
                    jaccard_score=float(e.get("jaccard_score", 0)),
                )
                for e in data.get("edges", [])
            ],
            type_counts=dict(data.get("type_counts") or {}),
            highlighted_id=data.get("highlighted_id"),
        )


def find_highlight(names: Iterable[Tuple[str, str]], search_term: str) -> Optional[str]:
    """First (id, name) whose name contains search_term, case-insensitively."""
    term = (search_term or "").strip().lower()
    if not term:
        return None
    for node_id, name in names:
        if term in (name or "").lower():
            return node_id
    return None


def _edge_from_row(row: Mapping[str, Any]) -> NetworkEdge:
    return NetworkEdge(
        source=row["entity_a_id"],
        target=row["entity_b_id"],
        weight=float(row.get("relationship_strength") or 0),
        invite_count=int(row.get("invite_cooccurrence_count") or 0),
        response_count=int(row.get("response_cooccurrence_count") or 0),
        shared_cases_count=int(row.get("total_shared_case_count") or 0),
        jaccard_score=float(row.get("jaccard_score") or 0),
    )


def project_network(
    rows: Sequence[Mapping[str, Any]],
    entities: Mapping[str, Entity],
    filters: NetworkFilters,
    type_counts: Optional[Mapping[str, int]] = None,
) -> NetworkGraph:
    """
    Project pair rows into a filtered, size-capped network.

    Args:
        rows: Pair rows (entity_a_id, entity_b_id, relationship_strength, counts),
            strongest first
        entities: entity_id -> Entity for every id referenced by rows
        filters: Strength threshold, node cap, type allow-list, search term, centre
        type_counts: Type counts over the unfiltered corpus, passed through

    Returns:
        NetworkGraph
    """
    allowed_types = set(filters.entity_types)
    visible = {
        entity_id: entity
        for entity_id, entity in entities.items()
        if not allowed_types or entity.entity_type in allowed_types
    }

    candidate_edges = [
        _edge_from_row(row)
        for row in rows
        if float(row.get("relationship_strength") or 0) >= filters.min_strength
        and row["entity_a_id"] in visible
        and row["entity_b_id"] in visible
        and row["entity_a_id"] != row["entity_b_id"]
    ]

    graph = nx.Graph()
    graph.add_edges_from((e.source, e.target) for e in candidate_edges)
    degree = dict(graph.degree())

    kept = sorted(graph.nodes, key=lambda n: (-degree[n], n))[:max(filters.max_nodes, 0)]
    if filters.entity_id and filters.entity_id in visible and filters.entity_id not in kept:
        kept.append(filters.entity_id)
    kept_set = set(kept)

    final_edges = [e for e in candidate_edges if e.source in kept_set and e.target in kept_set]
    final_degree = dict(graph.subgraph(kept_set).degree())

    nodes = [
        NetworkNode(
            id=entity_id,
            name=visible[entity_id].name,
            entity_type=visible[entity_id].entity_type,
            degree=final_degree.get(entity_id, 0),
        )
        for entity_id in kept
    ]

    logger.debug(
        f"Projected network: {len(nodes)} nodes, {len(final_edges)} edges "
        f"(from {len(rows)} rows, {len(candidate_edges)} candidate edges)"
    )

    return NetworkGraph(
        nodes=nodes,
        edges=final_edges,
        type_counts=dict(type_counts or {}),
        highlighted_id=find_highlight(((n.id, n.name) for n in nodes), filters.search_term),
    )


def entity_neighbors(
    rows: Sequence[Mapping[str, Any]],
    entities: Mapping[str, Entity],
    entity_id: str,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Strongest co-occurring neighbors of one entity.

    Rows are expected strongest first. Neighbors missing from `entities` are
    skipped.
    """
    neighbors: List[Dict[str, Any]] = []
    for row in rows:
        if entity_id not in (row["entity_a_id"], row["entity_b_id"]):
            continue
        neighbor_id = row["entity_b_id"] if row["entity_a_id"] == entity_id else row["entity_a_id"]
        entity = entities.get(neighbor_id)
        if entity is None:
            continue
        neighbors.append({
            "id": entity.id,
            "name": entity.name,
            "entity_type": entity.entity_type,
            "shared_cases_count": int(row.get("total_shared_case_count") or 0),
            "jaccard_score": float(row.get("jaccard_score") or 0),
            "invite_count": int(row.get("invite_cooccurrence_count") or 0),
            "response_count": int(row.get("response_cooccurrence_count") or 0),
        })
        if len(neighbors) >= limit:
            break
    return neighbors
