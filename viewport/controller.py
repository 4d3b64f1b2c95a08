"""
Viewport interaction controller.

Owns the pan/zoom transform, the pointer state machine and the lifecycle of
the SimulationSession for the currently loaded dataset:

    IDLE --pointer_down on node--> DRAGGING --pointer_up--> IDLE
    IDLE --pointer_down elsewhere--> PANNING --pointer_up--> IDLE

The frozen flag is orthogonal: it stops force integration but leaves drag,
pan and zoom available. The host feeds pointer events in client pixels and
calls tick() once per animation frame.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from cooccurrence.projection import find_highlight

from .constants import (
    DRAG_ALPHA_TARGET,
    DRAG_THRESHOLD,
    HIT_SLOP,
    HOVER_SLOP,
    RESUME_ALPHA,
    TICKS_PER_RENDER_FRAME,
    ZOOM_IN_FACTOR,
    ZOOM_OUT_FACTOR,
    node_radius,
)
from .render import Scene, render_scene
from .simulation import SimNode, SimulationSession, SimulationSnapshot
from .transform import IDENTITY, ClientRect, Transform

logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0


class InteractionState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PANNING = "panning"


@dataclass(frozen=True)
class PointerUpResult:
    """Outcome of a pointer-up: which node (if any) was held and whether it was a click."""
    node_id: Optional[str] = None
    was_drag: bool = False
    navigated: bool = False


def entity_path(entity_id: str) -> str:
    return f"/entity/{entity_id}"


class ViewportController:
    """
    Usage:
        controller = ViewportController(navigate=router.push)
        controller.load(graph)
        controller.pointer_down(120, 80)
        controller.pointer_move(160, 90)
        controller.pointer_up()
        scene = controller.scene()
    """

    def __init__(
        self,
        navigate: Callable[[str], None],
        client_rect: Optional[ClientRect] = None,
        ticks_per_render_frame: int = TICKS_PER_RENDER_FRAME,
        drag_threshold: float = DRAG_THRESHOLD,
        seed: Optional[int] = None,
    ):
        self.navigate = navigate
        self.client_rect = client_rect or ClientRect()
        self.ticks_per_render_frame = ticks_per_render_frame
        self.drag_threshold = drag_threshold
        self.seed = seed

        self.transform: Transform = IDENTITY
        self.state = InteractionState.IDLE
        self.frozen = False
        self.session: Optional[SimulationSession] = None
        self.frame: Optional[SimulationSnapshot] = None
        self.hovered_id: Optional[str] = None
        self.search_term = ""

        self._drag_node: Optional[SimNode] = None
        self._last_pointer = (0.0, 0.0)
        self._pointer_start = (0.0, 0.0)
        self._start_transform: Transform = IDENTITY
        self._travel = 0.0

    # ------------------------------------------------------------------
    # Dataset lifecycle
    # ------------------------------------------------------------------

    def load(self, graph) -> None:
        """Replace the dataset. The previous session is closed, never reused."""
        self._teardown()
        if not graph.nodes:
            logger.info("Empty graph loaded, no simulation started")
            return

        self.session = SimulationSession.from_graph(
            graph,
            seed=self.seed,
            ticks_per_render_frame=self.ticks_per_render_frame,
            on_publish=self._on_publish,
        )
        self.frame = self.session.snapshot()
        self.frozen = False
        logger.info(f"Simulation started: {len(self.session.nodes)} nodes, {len(self.session.links)} links")

    def unmount(self) -> None:
        self._teardown()

    def _teardown(self) -> None:
        if self.session is not None:
            self.session.close()
        self.session = None
        self.frame = None
        self.hovered_id = None
        self._drag_node = None
        self.state = InteractionState.IDLE

    def _on_publish(self, snapshot: SimulationSnapshot) -> None:
        self.frame = snapshot

    def set_client_rect(self, rect: ClientRect) -> None:
        self.client_rect = rect

    @property
    def nodes(self) -> List[SimNode]:
        return self.session.nodes if self.session is not None else []

    # ------------------------------------------------------------------
    # Simulation activity
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """Advance the simulation by one step unless frozen or settled."""
        if self.session is None or self.frozen:
            return False
        return self.session.step()

    def set_frozen(self, frozen: bool) -> None:
        self.frozen = frozen
        if self.session is None:
            return
        if frozen:
            self.session.stop()
        else:
            self.session.set_alpha(RESUME_ALPHA).restart()

    def toggle_freeze(self) -> bool:
        self.set_frozen(not self.frozen)
        return self.frozen

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------

    def node_at(self, client_x: float, client_y: float, slop: float = HIT_SLOP) -> Optional[SimNode]:
        """Topmost node within radius + slop of the pointer, searching in reverse draw order."""
        x, y = self.transform.to_sim_space((client_x, client_y), self.client_rect)
        nodes = self.nodes
        max_degree = max((n.degree for n in nodes), default=0)
        for node in reversed(nodes):
            reach = node_radius(node.degree, max_degree) + slop
            dx = x - node.x
            dy = y - node.y
            if dx * dx + dy * dy <= reach * reach:
                return node
        return None

    # ------------------------------------------------------------------
    # Pointer state machine
    # ------------------------------------------------------------------

    def pointer_down(self, client_x: float, client_y: float, button: int = PRIMARY_BUTTON) -> InteractionState:
        if button != PRIMARY_BUTTON:
            return self.state

        self._pointer_start = (client_x, client_y)
        self._last_pointer = (client_x, client_y)
        self._start_transform = self.transform
        self._travel = 0.0

        node = self.node_at(client_x, client_y)
        if node is not None:
            self._drag_node = node
            node.pin_at(node.x, node.y)
            if self.session is not None and not self.frozen:
                self.session.set_alpha_target(DRAG_ALPHA_TARGET).restart()
            self.state = InteractionState.DRAGGING
        else:
            self.state = InteractionState.PANNING
        return self.state

    def pointer_move(self, client_x: float, client_y: float) -> None:
        if self.state is InteractionState.IDLE:
            return

        self._travel += abs(client_x - self._last_pointer[0]) + abs(client_y - self._last_pointer[1])
        self._last_pointer = (client_x, client_y)

        if self.state is InteractionState.DRAGGING and self._drag_node is not None:
            x, y = self.transform.to_sim_space((client_x, client_y), self.client_rect)
            self._drag_node.pin_at(x, y)
            if self.session is not None:
                self.frame = self.session.snapshot()
        elif self.state is InteractionState.PANNING:
            sx, sy = self.client_rect.scale
            self.transform = self._start_transform.panned(
                (client_x - self._pointer_start[0]) * sx,
                (client_y - self._pointer_start[1]) * sy,
            )

    @property
    def travel(self) -> float:
        return self._travel

    def pointer_up(self) -> PointerUpResult:
        was_drag = self._travel >= self.drag_threshold
        result = PointerUpResult(was_drag=was_drag)

        if self.state is InteractionState.DRAGGING and self._drag_node is not None:
            node = self._drag_node
            if not self.frozen:
                node.release()
            navigated = False
            if not was_drag:
                self.navigate(entity_path(node.id))
                navigated = True
            if self.session is not None:
                self.session.set_alpha_target(0.0)
            result = PointerUpResult(node_id=node.id, was_drag=was_drag, navigated=navigated)

        self._drag_node = None
        self.state = InteractionState.IDLE
        return result

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def wheel(self, client_x: float, client_y: float, delta_y: float) -> Transform:
        """Zoom by one step around the cursor. Negative delta zooms in."""
        anchor = self.client_rect.client_to_viewbox((client_x, client_y))
        factor = ZOOM_IN_FACTOR if delta_y < 0 else ZOOM_OUT_FACTOR
        self.transform = self.transform.zoomed_at(anchor, factor)
        return self.transform

    def reset_view(self) -> None:
        self.transform = IDENTITY

    def hover(self, client_x: float, client_y: float) -> Optional[str]:
        node = self.node_at(client_x, client_y, slop=HOVER_SLOP)
        self.hovered_id = node.id if node is not None else None
        return self.hovered_id

    def set_search_term(self, term: str) -> Optional[str]:
        self.search_term = term
        return self.highlighted_id

    @property
    def highlighted_id(self) -> Optional[str]:
        return find_highlight(((node.id, node.name) for node in self.nodes), self.search_term)

    def scene(self) -> Scene:
        """Drawable scene for the most recently published frame."""
        if self.frame is None:
            return Scene(transform=self.transform)
        return render_scene(
            self.frame.nodes,
            self.frame.links,
            transform=self.transform,
            highlighted_id=self.highlighted_id,
            hovered_id=self.hovered_id,
            client_rect=self.client_rect,
        )
