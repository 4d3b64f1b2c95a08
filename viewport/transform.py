"""
Coordinate transforms between client (screen) pixels, viewBox units and
simulation space. Pure values, no rendering surface involved.

    client  --(ClientRect scale)-->  viewBox  --(Transform inverse)-->  simulation
"""

from dataclasses import dataclass
from typing import Tuple

from .constants import MAX_ZOOM, MIN_ZOOM, SVG_H, SVG_W

Point = Tuple[float, float]


def clamp_zoom(k: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    return min(max_zoom, max(min_zoom, k))


@dataclass(frozen=True)
class ClientRect:
    """On-screen bounding box of the drawing surface and the viewBox it displays."""
    left: float = 0.0
    top: float = 0.0
    width: float = float(SVG_W)
    height: float = float(SVG_H)
    viewbox_width: float = float(SVG_W)
    viewbox_height: float = float(SVG_H)

    @property
    def scale(self) -> Point:
        """viewBox units per client pixel along (x, y)."""
        return self.viewbox_width / self.width, self.viewbox_height / self.height

    def client_to_viewbox(self, point: Point) -> Point:
        sx, sy = self.scale
        return (point[0] - self.left) * sx, (point[1] - self.top) * sy

    def viewbox_to_client(self, point: Point) -> Point:
        return (
            self.left + point[0] / self.viewbox_width * self.width,
            self.top + point[1] / self.viewbox_height * self.height,
        )


@dataclass(frozen=True)
class Transform:
    """
    Pan offset (x, y) in viewBox units and zoom factor k.

    viewBox = sim * k + offset
    """
    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "k", clamp_zoom(self.k))

    def apply(self, point: Point) -> Point:
        """Simulation space -> viewBox."""
        return point[0] * self.k + self.x, point[1] * self.k + self.y

    def invert(self, point: Point) -> Point:
        """viewBox -> simulation space."""
        return (point[0] - self.x) / self.k, (point[1] - self.y) / self.k

    def to_sim_space(self, client_point: Point, rect: ClientRect) -> Point:
        return self.invert(rect.client_to_viewbox(client_point))

    def to_client_space(self, sim_point: Point, rect: ClientRect) -> Point:
        return rect.viewbox_to_client(self.apply(sim_point))

    def panned(self, dx: float, dy: float) -> "Transform":
        """Offset by (dx, dy) viewBox units; zoom unchanged."""
        return Transform(self.x + dx, self.y + dy, self.k)

    def zoomed_at(self, anchor: Point, factor: float) -> "Transform":
        """
        Multiply zoom by factor (clamped), keeping the viewBox point `anchor`
        visually stationary.
        """
        new_k = clamp_zoom(self.k * factor)
        ratio = new_k / self.k
        return Transform(
            x=anchor[0] - (anchor[0] - self.x) * ratio,
            y=anchor[1] - (anchor[1] - self.y) * ratio,
            k=new_k,
        )

    def svg_attribute(self) -> str:
        return f"translate({self.x:.2f},{self.y:.2f}) scale({self.k:.4f})"


IDENTITY = Transform()
