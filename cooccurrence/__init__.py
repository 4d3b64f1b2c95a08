"""
Entity Co-occurrence Engine

Builds the weighted, undirected co-occurrence graph between entities that take
part in the same remiss (consultation) cases:
- Pair aggregation per case, split by invited / responded
- Jaccard similarity and relationship strength
- Recency-ordered, capped evidence per pair
- Dry-run statistics or full delete + batched re-insert

Components:
- CooccurrenceEngine: run orchestration and state machine
- CooccurrenceStore: asyncpg storage boundary
- project_network: filtered {nodes, edges} view for the viewport
- batch_cooccurrence_build: CLI script for scheduled recomputes
"""

from .engine import CooccurrenceEngine, EngineState, build_rows, compute_stats
from .projection import NetworkFilters, NetworkGraph, entity_neighbors, project_network
from .storage import CooccurrenceStore

__all__ = [
    'CooccurrenceEngine',
    'EngineState',
    'build_rows',
    'compute_stats',
    'CooccurrenceStore',
    'NetworkFilters',
    'NetworkGraph',
    'project_network',
    'entity_neighbors',
]
