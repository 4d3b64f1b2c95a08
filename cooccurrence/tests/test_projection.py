"""
Tests for the network projector and neighbor listing
"""
import pytest

from cooccurrence.models import Entity
from cooccurrence.projection import (
    NetworkFilters,
    NetworkGraph,
    entity_neighbors,
    find_highlight,
    project_network,
)


def pair_row(a, b, strength, count=1, invites=1, responses=0):
    return {
        "entity_a_id": a,
        "entity_b_id": b,
        "relationship_strength": strength,
        "jaccard_score": strength,
        "cooccurrence_count": count,
        "total_shared_case_count": count,
        "invite_cooccurrence_count": invites,
        "response_cooccurrence_count": responses,
    }


def assert_consistent(graph):
    """Every edge endpoint is a node; every degree equals its incident edge count"""
    ids = {n.id for n in graph.nodes}
    for edge in graph.edges:
        assert edge.source in ids
        assert edge.target in ids
    for node in graph.nodes:
        incident = sum(1 for e in graph.edges if node.id in (e.source, e.target))
        assert node.degree == incident


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def entities():
    return {
        "A": Entity("A", "Naturvårdsverket", "government_body"),
        "B": Entity("B", "Svenskt Näringsliv", "organization"),
        "C": Entity("C", "Anna Andersson", "person"),
        "D": Entity("D", "Miljöpartiet", "political_party"),
        "E": Entity("E", "Lantbrukarnas Riksförbund", "organization"),
    }


@pytest.fixture
def star_rows():
    """B is the hub; D-E hangs off on its own"""
    return [
        pair_row("A", "B", 0.9, count=9),
        pair_row("B", "C", 0.6, count=6),
        pair_row("B", "E", 0.4, count=4),
        pair_row("D", "E", 0.3, count=3),
        pair_row("A", "C", 0.2, count=2),
    ]


# ============================================================================
# PROJECTION TESTS
# ============================================================================

class TestProjectNetwork:
    """Test filtering, trimming and degree computation"""

    def test_min_strength_and_max_nodes_scenario(self, entities):
        """Only the strong edge survives; its two endpoints are the whole graph"""
        rows = [
            pair_row("A", "B", 0.8),
            pair_row("B", "C", 0.2),
            pair_row("A", "C", 0.3),
        ]

        graph = project_network(rows, entities, NetworkFilters(min_strength=0.5, max_nodes=2))

        assert sorted(n.id for n in graph.nodes) == ["A", "B"]
        assert len(graph.edges) == 1
        assert (graph.edges[0].source, graph.edges[0].target) == ("A", "B")
        assert_consistent(graph)

    def test_nodes_sorted_by_degree(self, star_rows, entities):
        """Highest degree first, ties by id"""
        graph = project_network(star_rows, entities, NetworkFilters(min_strength=0.0))

        assert [n.id for n in graph.nodes] == ["B", "A", "C", "E", "D"]
        assert [n.degree for n in graph.nodes] == [3, 2, 2, 2, 1]
        assert_consistent(graph)

    def test_max_nodes_trims_and_recomputes_degree(self, star_rows, entities):
        """Degrees reflect only the edges between kept nodes"""
        graph = project_network(star_rows, entities, NetworkFilters(min_strength=0.0, max_nodes=3))

        assert [n.id for n in graph.nodes] == ["B", "A", "C"]
        assert {(e.source, e.target) for e in graph.edges} == {("A", "B"), ("B", "C"), ("A", "C")}
        assert all(n.degree == 2 for n in graph.nodes)
        assert_consistent(graph)

    def test_trimmed_node_can_end_isolated(self, entities):
        """A kept node whose partners were all trimmed stays with degree 0"""
        rows = [
            pair_row("A", "B", 0.9),
            pair_row("A", "C", 0.9),
            pair_row("B", "C", 0.9),
            pair_row("D", "E", 0.9),
        ]

        graph = project_network(rows, entities, NetworkFilters(min_strength=0.0, max_nodes=4))

        assert [n.id for n in graph.nodes] == ["A", "B", "C", "D"]
        assert graph.nodes[-1].degree == 0
        assert_consistent(graph)

    def test_entity_type_filter(self, star_rows, entities):
        """Edges touching an excluded type disappear with it"""
        filters = NetworkFilters(min_strength=0.0, entity_types=("organization", "government_body"))

        graph = project_network(star_rows, entities, filters)

        assert sorted(n.id for n in graph.nodes) == ["A", "B", "E"]
        assert {(e.source, e.target) for e in graph.edges} == {("A", "B"), ("B", "E")}
        assert_consistent(graph)

    def test_unknown_entities_dropped(self, entities):
        """Rows pointing at entities that no longer exist are ignored"""
        rows = [pair_row("A", "B", 0.9), pair_row("A", "ghost", 0.9)]

        graph = project_network(rows, entities, NetworkFilters())

        assert sorted(n.id for n in graph.nodes) == ["A", "B"]
        assert_consistent(graph)

    def test_entity_id_always_kept(self, star_rows, entities):
        """The centre entity is kept even when trimming would drop it"""
        filters = NetworkFilters(min_strength=0.0, max_nodes=1, entity_id="D")

        graph = project_network(star_rows, entities, filters)

        assert [n.id for n in graph.nodes] == ["B", "D"]
        assert graph.edges == []
        assert_consistent(graph)

    def test_search_highlights_without_filtering(self, star_rows, entities):
        """Search picks the first matching node; the node set is unchanged"""
        plain = project_network(star_rows, entities, NetworkFilters(min_strength=0.0))
        searched = project_network(star_rows, entities, NetworkFilters(min_strength=0.0, search_term="ANNA"))

        assert searched.highlighted_id == "C"
        assert [n.id for n in searched.nodes] == [n.id for n in plain.nodes]
        assert plain.highlighted_id is None

    def test_type_counts_pass_through(self, star_rows, entities):
        counts = {"organization": 12, "person": 3}

        graph = project_network(star_rows, entities, NetworkFilters(), type_counts=counts)

        assert graph.type_counts == counts

    def test_empty(self, entities):
        graph = project_network([], entities, NetworkFilters())

        assert graph.nodes == []
        assert graph.edges == []

    def test_edge_payload(self, entities):
        rows = [pair_row("A", "B", 0.75, count=7, invites=5, responses=3)]

        edge = project_network(rows, entities, NetworkFilters()).edges[0]

        assert edge.to_dict() == {
            "source": "A",
            "target": "B",
            "weight": 0.75,
            "invite_count": 5,
            "response_count": 3,
            "shared_cases_count": 7,
            "jaccard_score": 0.75,
        }

    def test_dict_round_trip(self, star_rows, entities):
        graph = project_network(star_rows, entities, NetworkFilters(min_strength=0.0, search_term="miljö"))

        assert NetworkGraph.from_dict(graph.to_dict()) == graph


# ============================================================================
# HIGHLIGHT / NEIGHBORS TESTS
# ============================================================================

class TestHighlightAndNeighbors:

    def test_find_highlight_blank(self):
        assert find_highlight([("A", "Anna")], "   ") is None

    def test_find_highlight_first_match(self):
        assert find_highlight([("A", "Skogsstyrelsen"), ("B", "Skogsindustrierna")], "skogs") == "A"

    def test_neighbors_strongest_first(self, star_rows, entities):
        """Neighbors of B in row order, each resolved to the other endpoint"""
        neighbors = entity_neighbors(star_rows, entities, "B", limit=2)

        assert [n["id"] for n in neighbors] == ["A", "C"]
        assert neighbors[0]["shared_cases_count"] == 9
        assert neighbors[0]["entity_type"] == "government_body"

    def test_neighbors_skip_unknown(self, entities):
        rows = [pair_row("A", "ghost", 0.9), pair_row("A", "B", 0.5)]

        assert [n["id"] for n in entity_neighbors(rows, entities, "A")] == ["B"]
