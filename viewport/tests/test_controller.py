"""
Tests for the viewport interaction controller

Nodes are placed at fixed positions after loading so hit tests and pointer
travel are exact. The default client rect maps client pixels 1:1 to viewBox
units.
"""
import pytest
from unittest.mock import Mock

from cooccurrence.projection import NetworkEdge, NetworkGraph, NetworkNode
from viewport.constants import MAX_ZOOM, MIN_ZOOM
from viewport.controller import InteractionState, ViewportController
from viewport.simulation import PositionState
from viewport.transform import ClientRect, Transform


def place(controller, **positions):
    for node in controller.nodes:
        if node.id in positions:
            node.x, node.y = positions[node.id]
            node.vx = node.vy = 0.0


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def graph():
    return NetworkGraph(
        nodes=[
            NetworkNode("A", "Naturvårdsverket", "government_body", 2),
            NetworkNode("B", "Svenskt Näringsliv", "organization", 1),
            NetworkNode("C", "Anna Andersson", "person", 1),
        ],
        edges=[NetworkEdge("A", "B", 0.8), NetworkEdge("A", "C", 0.3)],
    )


@pytest.fixture
def navigate():
    return Mock()


@pytest.fixture
def controller(graph, navigate):
    c = ViewportController(navigate=navigate, seed=11)
    c.load(graph)
    place(c, A=(400.0, 300.0), B=(200.0, 150.0), C=(600.0, 450.0))
    return c


# ============================================================================
# CLICK / DRAG TESTS
# ============================================================================

class TestClickAndDrag:

    def test_click_navigates_and_releases(self, controller, navigate):
        """Travel below the threshold on a node is a click"""
        assert controller.pointer_down(400, 300) == InteractionState.DRAGGING
        controller.pointer_move(401, 301)
        result = controller.pointer_up()

        navigate.assert_called_once_with("/entity/A")
        assert result.node_id == "A"
        assert result.was_drag is False
        assert result.navigated is True
        assert controller.session.find("A").state is PositionState.FREE
        assert controller.state == InteractionState.IDLE

    def test_drag_moves_node_without_navigation(self, controller, navigate):
        controller.pointer_down(400, 300)
        controller.pointer_move(410, 300)
        controller.pointer_move(420, 310)

        node = controller.session.find("A")
        assert node.state is PositionState.PINNED
        assert (node.x, node.y) == (420.0, 310.0)

        result = controller.pointer_up()

        navigate.assert_not_called()
        assert result.was_drag is True
        assert node.state is PositionState.FREE

    def test_threshold_travel_counts_as_drag(self, controller, navigate):
        """Travel equal to the threshold is a drag"""
        controller.pointer_down(400, 300)
        controller.pointer_move(402, 302)
        result = controller.pointer_up()

        assert result.was_drag is True
        navigate.assert_not_called()

    def test_travel_accumulates_back_and_forth(self, controller, navigate):
        """Returning to the start still counts the distance travelled"""
        controller.pointer_down(400, 300)
        controller.pointer_move(403, 300)
        controller.pointer_move(400, 300)

        assert controller.travel == 6
        assert controller.pointer_up().was_drag is True
        navigate.assert_not_called()

    def test_frozen_drag_keeps_pin(self, controller, navigate):
        """While frozen a dropped node stays exactly where it was released"""
        controller.set_frozen(True)
        controller.pointer_down(400, 300)
        controller.pointer_move(450, 320)
        controller.pointer_up()

        node = controller.session.find("A")
        assert node.state is PositionState.PINNED
        assert (node.x, node.y) == (450.0, 320.0)
        assert node.pin == (450.0, 320.0)

    def test_frozen_click_still_navigates(self, controller, navigate):
        controller.set_frozen(True)
        controller.pointer_down(400, 300)
        controller.pointer_up()

        navigate.assert_called_once_with("/entity/A")

    def test_drag_start_warms_simulation(self, controller):
        controller.session.stop()

        controller.pointer_down(400, 300)

        assert controller.session.alpha_target == 0.3
        assert controller.session.running is True

        controller.pointer_up()
        assert controller.session.alpha_target == 0.0

    def test_drag_under_zoom_uses_sim_space(self, controller):
        """Pointer positions are inverted through the current transform"""
        controller.transform = Transform(x=100, y=50, k=2)
        # A at sim (400, 300) is drawn at client (900, 650)
        controller.pointer_down(900, 650)
        controller.pointer_move(920, 650)

        node = controller.session.find("A")
        assert (node.x, node.y) == (410.0, 300.0)

    def test_secondary_button_ignored(self, controller, navigate):
        assert controller.pointer_down(400, 300, button=2) == InteractionState.IDLE
        controller.pointer_up()

        navigate.assert_not_called()

    def test_topmost_node_wins(self, controller, navigate):
        """Overlapping nodes: the one drawn last is hit"""
        place(controller, B=(400.0, 300.0), C=(400.0, 300.0))

        controller.pointer_down(400, 300)
        controller.pointer_up()

        navigate.assert_called_once_with("/entity/C")

    def test_hit_slop(self, controller):
        """A (radius 20) is hit up to 24px from its centre"""
        assert controller.node_at(424, 300).id == "A"
        assert controller.node_at(425, 300) is None


# ============================================================================
# PAN / ZOOM TESTS
# ============================================================================

class TestPanAndZoom:

    def test_pan_on_empty_space(self, controller, navigate):
        assert controller.pointer_down(50, 50) == InteractionState.PANNING
        controller.pointer_move(80, 70)

        assert (controller.transform.x, controller.transform.y, controller.transform.k) == (30, 20, 1.0)

        controller.pointer_up()
        navigate.assert_not_called()

    def test_pan_scales_client_delta(self, controller):
        controller.set_client_rect(ClientRect(width=400, height=300))

        controller.pointer_down(10, 10)
        controller.pointer_move(20, 15)

        assert (controller.transform.x, controller.transform.y) == (20, 10)

    def test_zoom_clamped(self, controller):
        for _ in range(100):
            controller.wheel(400, 300, delta_y=-100)
        assert controller.transform.k == MAX_ZOOM

        for _ in range(100):
            controller.wheel(400, 300, delta_y=100)
        assert controller.transform.k == MIN_ZOOM

    def test_zoom_to_cursor(self, controller):
        rect = controller.client_rect
        before = controller.transform.to_sim_space((250, 175), rect)

        controller.wheel(250, 175, delta_y=-1)

        after = controller.transform.to_sim_space((250, 175), rect)
        assert controller.transform.k == pytest.approx(1.1)
        assert after[0] == pytest.approx(before[0])
        assert after[1] == pytest.approx(before[1])

    def test_reset_view(self, controller):
        controller.wheel(250, 175, delta_y=-1)
        controller.pointer_down(10, 10)
        controller.pointer_move(60, 60)
        controller.pointer_up()

        controller.reset_view()

        assert controller.transform == Transform()


# ============================================================================
# LIFECYCLE / VIEW STATE TESTS
# ============================================================================

class TestLifecycle:

    def test_load_replaces_session(self, controller, graph):
        old = controller.session

        controller.load(graph)

        assert old.closed is True
        assert controller.session is not old
        assert controller.session.running is True

    def test_empty_graph_has_no_session(self, controller):
        controller.load(NetworkGraph())

        assert controller.session is None
        assert controller.tick() is False
        assert controller.scene().circles == []

    def test_unmount(self, controller):
        session = controller.session

        controller.unmount()

        assert session.closed is True
        assert controller.session is None

    def test_freeze_stops_ticks_and_resume_restarts(self, controller):
        assert controller.toggle_freeze() is True
        assert controller.tick() is False
        assert controller.session.running is False

        assert controller.toggle_freeze() is False
        assert controller.session.alpha == pytest.approx(0.3)
        assert controller.tick() is True

    def test_frame_published_from_ticks(self, graph, navigate):
        c = ViewportController(navigate=navigate, ticks_per_render_frame=1, seed=2)
        c.load(graph)

        c.tick()

        assert c.frame.tick == 1

    def test_hover_and_tooltip(self, controller):
        controller.frame = controller.session.snapshot()

        assert controller.hover(405, 300) == "A"
        assert controller.scene().tooltip.node_id == "A"

        assert controller.hover(10, 10) is None
        assert controller.scene().tooltip is None

    def test_search_highlight(self, controller):
        assert controller.set_search_term("näringsliv") == "B"
        assert controller.set_search_term("  ") is None
