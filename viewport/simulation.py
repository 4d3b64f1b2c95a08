"""
Force-directed simulation for the network viewport.

A SimulationSession is created for one filtered dataset and closed when the
dataset changes or the viewport goes away; it is never reused. Each tick
integrates four forces (link attraction, many-body repulsion, centering,
collision) with alpha cooling, and every `ticks_per_render_frame`-th tick a
snapshot is published to the subscriber.

Node position ownership is explicit: a FREE node is moved by the solver, a
PINNED node is held at its pin and skipped by integration. Pins are set and
released only by the viewport controller.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    CHARGE_STRENGTH,
    COLLIDE_PADDING,
    INITIAL_JITTER,
    SVG_H,
    SVG_W,
    TICKS_PER_RENDER_FRAME,
    node_radius,
)

logger = logging.getLogger(__name__)

ALPHA_MIN = 0.001
ALPHA_DECAY = 1 - ALPHA_MIN ** (1 / 300)
VELOCITY_DECAY = 0.4
JIGGLE = 1e-6


class PositionState(str, Enum):
    FREE = "free"
    PINNED = "pinned"


@dataclass(eq=False)
class SimNode:
    """A network node with mutable simulation state."""
    id: str
    name: str
    entity_type: str
    degree: int
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    radius: float = 4.0
    state: PositionState = PositionState.FREE
    pin: Optional[Tuple[float, float]] = None

    @property
    def is_pinned(self) -> bool:
        return self.state is PositionState.PINNED

    @property
    def fx(self) -> Optional[float]:
        return self.pin[0] if self.is_pinned else None

    @property
    def fy(self) -> Optional[float]:
        return self.pin[1] if self.is_pinned else None

    def pin_at(self, x: float, y: float) -> None:
        """Hand position ownership to the pointer; the node snaps to (x, y)."""
        self.state = PositionState.PINNED
        self.pin = (x, y)
        self.x, self.y = x, y
        self.vx = self.vy = 0.0

    def release(self) -> None:
        """Hand position ownership back to the solver."""
        self.state = PositionState.FREE
        self.pin = None


@dataclass(eq=False)
class SimLink:
    source: SimNode
    target: SimNode
    weight: float
    invite_count: int = 0
    response_count: int = 0
    shared_cases_count: int = 0


@dataclass(frozen=True)
class SimulationSnapshot:
    """Positions at one published tick. Nodes and links are copies, safe to hold across ticks."""
    tick: int
    nodes: Tuple[SimNode, ...]
    links: Tuple[SimLink, ...]


def link_distance(weight: float) -> float:
    """Heavier edges rest shorter."""
    return 100.0 / (1.0 + weight * 2.0)


class ForceSolver:
    """
    Vectorised force accumulation over node arrays.

    Forces only modify velocities (and, for centering, positions); the
    session integrates afterwards.
    """

    def __init__(
        self,
        nodes: Sequence[SimNode],
        links: Sequence[SimLink],
        center: Tuple[float, float],
        charge: float,
        collide_radii: np.ndarray,
        rng: np.random.Generator,
    ):
        index = {node.id: i for i, node in enumerate(nodes)}
        self.n = len(nodes)
        self.center = center
        self.charge = charge
        self.radii = collide_radii
        self.rng = rng

        self.src = np.array([index[link.source.id] for link in links], dtype=int)
        self.tgt = np.array([index[link.target.id] for link in links], dtype=int)
        weights = np.array([link.weight for link in links], dtype=float)
        self.distance = link_distance(weights)
        self.strength = weights

        count = np.zeros(self.n)
        np.add.at(count, self.src, 1)
        np.add.at(count, self.tgt, 1)
        if len(links):
            self.bias = count[self.src] / (count[self.src] + count[self.tgt])
        else:
            self.bias = np.zeros(0)

        self.pair_i, self.pair_j = np.triu_indices(self.n, k=1)

    def _jiggle(self, values: np.ndarray) -> np.ndarray:
        zero = values == 0
        if zero.any():
            values = values.copy()
            values[zero] = (self.rng.random(zero.sum()) - 0.5) * JIGGLE
        return values

    def apply(self, alpha: float, x, y, vx, vy) -> None:
        self._link(alpha, x, y, vx, vy)
        self._many_body(alpha, x, y, vx, vy)
        self._center(x, y)
        self._collide(x, y, vx, vy)

    def _link(self, alpha, x, y, vx, vy) -> None:
        if not len(self.src):
            return
        s, t = self.src, self.tgt
        dx = self._jiggle(x[t] + vx[t] - x[s] - vx[s])
        dy = self._jiggle(y[t] + vy[t] - y[s] - vy[s])
        length = np.sqrt(dx * dx + dy * dy)
        factor = (length - self.distance) / length * alpha * self.strength
        dx, dy = dx * factor, dy * factor
        np.add.at(vx, t, -dx * self.bias)
        np.add.at(vy, t, -dy * self.bias)
        np.add.at(vx, s, dx * (1 - self.bias))
        np.add.at(vy, s, dy * (1 - self.bias))

    def _many_body(self, alpha, x, y, vx, vy) -> None:
        if self.n < 2:
            return
        dx = x[np.newaxis, :] - x[:, np.newaxis]
        dy = y[np.newaxis, :] - y[:, np.newaxis]
        off_diagonal = ~np.eye(self.n, dtype=bool)
        coincident = (dx == 0) & (dy == 0) & off_diagonal
        if coincident.any():
            # Antisymmetric so coincident pairs are pushed in opposite directions
            jitter = np.triu((self.rng.random((self.n, self.n)) - 0.5) * JIGGLE, 1)
            jitter = jitter - jitter.T
            dx = dx.copy()
            dx[coincident] = jitter[coincident]
        l2 = dx * dx + dy * dy
        # Soften very close pairs, as d3's distanceMin does
        l2 = np.where(l2 < 1.0, np.sqrt(l2), l2)
        l2[~off_diagonal] = np.inf
        w = self.charge * alpha / l2
        vx += (dx * w).sum(axis=1)
        vy += (dy * w).sum(axis=1)

    def _center(self, x, y) -> None:
        if not self.n:
            return
        x -= x.mean() - self.center[0]
        y -= y.mean() - self.center[1]

    def _collide(self, x, y, vx, vy) -> None:
        if self.n < 2:
            return
        i, j = self.pair_i, self.pair_j
        px, py = x + vx, y + vy
        dx = px[i] - px[j]
        dy = py[i] - py[j]
        r = self.radii[i] + self.radii[j]
        l2 = dx * dx + dy * dy
        overlap = l2 < r * r
        if not overlap.any():
            return
        i, j, dx, dy, r = i[overlap], j[overlap], dx[overlap], dy[overlap], r[overlap]
        dx = self._jiggle(dx)
        l2 = dx * dx + dy * dy
        length = np.sqrt(l2)
        factor = (r - length) / length
        dx, dy = dx * factor, dy * factor
        ri2 = self.radii[i] ** 2
        rj2 = self.radii[j] ** 2
        share = rj2 / (ri2 + rj2)
        np.add.at(vx, i, dx * share)
        np.add.at(vy, i, dy * share)
        np.add.at(vx, j, -dx * (1 - share))
        np.add.at(vy, j, -dy * (1 - share))


class SimulationSession:
    """
    One running simulation over one dataset.

    Usage:
        session = SimulationSession(nodes, links, on_publish=render, seed=7)
        while session.running:
            session.step()     # once per animation frame
        session.close()
    """

    def __init__(
        self,
        nodes: List[SimNode],
        links: List[SimLink],
        on_publish: Optional[Callable[[SimulationSnapshot], None]] = None,
        ticks_per_render_frame: int = TICKS_PER_RENDER_FRAME,
        center: Tuple[float, float] = (SVG_W / 2, SVG_H / 2),
        charge: float = CHARGE_STRENGTH,
        seed: Optional[int] = None,
    ):
        if ticks_per_render_frame < 1:
            raise ValueError("ticks_per_render_frame must be >= 1")

        self.nodes = nodes
        self.links = links
        self.on_publish = on_publish
        self.ticks_per_render_frame = ticks_per_render_frame
        self.rng = np.random.default_rng(seed)

        self.alpha = 1.0
        self.alpha_target = 0.0
        self.tick_count = 0
        self.running = True
        self.closed = False

        max_degree = max((node.degree for node in nodes), default=0)
        for node in nodes:
            node.radius = node_radius(node.degree, max_degree)

        self.solver = ForceSolver(
            nodes,
            links,
            center=center,
            charge=charge,
            collide_radii=np.array([node.radius + COLLIDE_PADDING for node in nodes], dtype=float),
            rng=self.rng,
        )

    @classmethod
    def from_graph(cls, graph, seed: Optional[int] = None, **kwargs) -> "SimulationSession":
        """
        Build a session from a NetworkGraph, placing nodes randomly around the
        centre. Edges whose endpoints are missing are dropped.
        """
        rng = np.random.default_rng(seed)
        offsets = (rng.random((len(graph.nodes), 2)) - 0.5) * INITIAL_JITTER
        nodes = [
            SimNode(
                id=n.id,
                name=n.name,
                entity_type=n.entity_type,
                degree=n.degree,
                x=SVG_W / 2 + float(dx),
                y=SVG_H / 2 + float(dy),
            )
            for n, (dx, dy) in zip(graph.nodes, offsets)
        ]
        by_id = {node.id: node for node in nodes}
        links = [
            SimLink(
                source=by_id[e.source],
                target=by_id[e.target],
                weight=e.weight,
                invite_count=e.invite_count,
                response_count=e.response_count,
                shared_cases_count=e.shared_cases_count,
            )
            for e in graph.edges
            if e.source in by_id and e.target in by_id
        ]
        dropped = len(graph.edges) - len(links)
        if dropped:
            logger.warning(f"Dropped {dropped} edges referencing nodes outside the dataset")
        return cls(nodes, links, seed=seed, **kwargs)

    # ------------------------------------------------------------------
    # Activity control
    # ------------------------------------------------------------------

    def set_alpha(self, alpha: float) -> "SimulationSession":
        self.alpha = alpha
        return self

    def set_alpha_target(self, target: float) -> "SimulationSession":
        self.alpha_target = target
        return self

    def restart(self) -> "SimulationSession":
        if not self.closed:
            self.running = True
        return self

    def stop(self) -> "SimulationSession":
        self.running = False
        return self

    def close(self) -> None:
        """Tear down for good; a closed session never ticks or publishes again."""
        self.running = False
        self.closed = True
        self.on_publish = None

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------

    def step(self) -> bool:
        """
        Advance one tick. Returns False without doing anything when stopped.
        """
        if self.closed or not self.running:
            return False

        self.alpha += (self.alpha_target - self.alpha) * ALPHA_DECAY

        x = np.array([node.x for node in self.nodes], dtype=float)
        y = np.array([node.y for node in self.nodes], dtype=float)
        vx = np.array([node.vx for node in self.nodes], dtype=float)
        vy = np.array([node.vy for node in self.nodes], dtype=float)

        self.solver.apply(self.alpha, x, y, vx, vy)

        for i, node in enumerate(self.nodes):
            if node.is_pinned:
                node.x, node.y = node.pin
                node.vx = node.vy = 0.0
            else:
                node.vx = float(vx[i]) * (1 - VELOCITY_DECAY)
                node.vy = float(vy[i]) * (1 - VELOCITY_DECAY)
                node.x = float(x[i]) + node.vx
                node.y = float(y[i]) + node.vy

        self.tick_count += 1
        if self.tick_count % self.ticks_per_render_frame == 0:
            self.publish()

        if self.alpha < ALPHA_MIN:
            self.running = False
        return True

    def advance(self, ticks: int) -> int:
        """Run up to `ticks` steps; returns how many actually ran."""
        ran = 0
        for _ in range(ticks):
            if not self.step():
                break
            ran += 1
        return ran

    def snapshot(self) -> SimulationSnapshot:
        copies = {node.id: replace(node) for node in self.nodes}
        return SimulationSnapshot(
            tick=self.tick_count,
            nodes=tuple(copies[node.id] for node in self.nodes),
            links=tuple(
                replace(link, source=copies[link.source.id], target=copies[link.target.id])
                for link in self.links
            ),
        )

    def publish(self) -> None:
        if self.on_publish is not None:
            self.on_publish(self.snapshot())

    def find(self, node_id: str) -> Optional[SimNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None
