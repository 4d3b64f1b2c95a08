"""
Render layer: a pure projection of simulation state into drawable shapes.

render_scene() never raises on stale or inconsistent input; edges pointing at
nodes outside the node list are dropped and logged. validate_graph() is the
strict counterpart for callers that want the inconsistency surfaced.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from cooccurrence.errors import RenderInputError

from .constants import (
    HIGHLIGHT_RADIUS_BOOST,
    LABEL_MAX_CHARS,
    LABEL_MIN_RADIUS,
    LABEL_OFFSET,
    SVG_H,
    SVG_W,
    TOOLTIP_GAP,
    node_color,
    node_radius,
    type_label,
)
from .transform import IDENTITY, ClientRect, Transform

logger = logging.getLogger(__name__)

EDGE_COLOR = 'hsl(var(--border))'
HIGHLIGHT_STROKE = 'hsl(var(--primary))'
HOVER_STROKE = 'hsl(var(--foreground))'
LABEL_COLOR = 'hsl(var(--foreground))'


@dataclass(frozen=True)
class EdgeLine:
    source_id: str
    target_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    stroke_width: float
    stroke_opacity: float


@dataclass(frozen=True)
class NodeCircle:
    node_id: str
    cx: float
    cy: float
    r: float
    fill: str
    fill_opacity: float
    stroke: Optional[str]
    stroke_width: float


@dataclass(frozen=True)
class NodeLabel:
    node_id: str
    x: float
    y: float
    text: str


@dataclass(frozen=True)
class Tooltip:
    """Client-space anchor for the hover card, centred above the node."""
    node_id: str
    x: float
    y: float
    name: str
    type_label: str
    degree: int

    @property
    def detail(self) -> str:
        return f"{self.type_label} · {self.degree} kopplingar"


@dataclass(frozen=True)
class Scene:
    transform: Transform = IDENTITY
    edges: List[EdgeLine] = field(default_factory=list)
    circles: List[NodeCircle] = field(default_factory=list)
    labels: List[NodeLabel] = field(default_factory=list)
    tooltip: Optional[Tooltip] = None


def edge_style(weight: float):
    """(stroke_width, stroke_opacity); both grow with weight."""
    return max(0.5, weight * 4), 0.4 + weight * 0.4


def truncate_label(name: str) -> str:
    if len(name) > LABEL_MAX_CHARS:
        return name[:LABEL_MAX_CHARS - 2] + '…'
    return name


def render_scene(
    nodes: Sequence,
    links: Sequence,
    transform: Transform = IDENTITY,
    highlighted_id: Optional[str] = None,
    hovered_id: Optional[str] = None,
    client_rect: Optional[ClientRect] = None,
) -> Scene:
    """
    Build the drawable scene for one frame.

    Args:
        nodes: Objects with id, name, entity_type, degree, x, y
        links: Objects with source, target (node-like, by id) and weight
        transform: Current pan/zoom
        highlighted_id: Search match, drawn enlarged with a primary ring
        hovered_id: Node under the pointer, drawn with a thin ring and a tooltip
        client_rect: On-screen rectangle; defaults to an unscaled 800x600 surface

    Returns:
        Scene with edges, circles, labels and optional tooltip
    """
    rect = client_rect or ClientRect()
    positions = {node.id: node for node in nodes}
    max_degree = max((node.degree for node in nodes), default=0)

    edges: List[EdgeLine] = []
    dropped = 0
    for link in links:
        source = positions.get(link.source.id)
        target = positions.get(link.target.id)
        if source is None or target is None:
            dropped += 1
            continue
        width, opacity = edge_style(link.weight)
        edges.append(EdgeLine(
            source_id=source.id,
            target_id=target.id,
            x1=source.x,
            y1=source.y,
            x2=target.x,
            y2=target.y,
            stroke_width=width,
            stroke_opacity=opacity,
        ))
    if dropped:
        logger.warning(f"Dropped {dropped} edges with an endpoint outside the node list")

    circles: List[NodeCircle] = []
    labels: List[NodeLabel] = []
    tooltip = None
    for node in nodes:
        r = node_radius(node.degree, max_degree)
        highlighted = node.id == highlighted_id
        hovered = node.id == hovered_id

        if highlighted:
            stroke, stroke_width = HIGHLIGHT_STROKE, 3.0
        elif hovered:
            stroke, stroke_width = HOVER_STROKE, 2.0
        else:
            stroke, stroke_width = None, 0.0

        circles.append(NodeCircle(
            node_id=node.id,
            cx=node.x,
            cy=node.y,
            r=r + HIGHLIGHT_RADIUS_BOOST if highlighted else r,
            fill=node_color(node.entity_type),
            fill_opacity=1.0 if (highlighted or hovered) else 0.8,
            stroke=stroke,
            stroke_width=stroke_width,
        ))

        if r >= LABEL_MIN_RADIUS:
            labels.append(NodeLabel(
                node_id=node.id,
                x=node.x,
                y=node.y + r + LABEL_OFFSET,
                text=truncate_label(node.name),
            ))

        if hovered:
            x, y = transform.to_client_space((node.x, node.y - r), rect)
            tooltip = Tooltip(
                node_id=node.id,
                x=x,
                y=y - TOOLTIP_GAP,
                name=node.name,
                type_label=type_label(node.entity_type),
                degree=node.degree,
            )

    return Scene(transform=transform, edges=edges, circles=circles, labels=labels, tooltip=tooltip)


def validate_graph(graph) -> None:
    """
    Strict consistency check for a NetworkGraph.

    Raises:
        RenderInputError: on duplicate node ids or an edge endpoint missing from the nodes
    """
    seen: Dict[str, int] = {}
    for node in graph.nodes:
        seen[node.id] = seen.get(node.id, 0) + 1
    duplicates = sorted(node_id for node_id, count in seen.items() if count > 1)
    if duplicates:
        raise RenderInputError(f"Duplicate node ids: {', '.join(duplicates)}")

    for edge in graph.edges:
        missing = [end for end in (edge.source, edge.target) if end not in seen]
        if missing:
            raise RenderInputError(
                f"Edge {edge.source}-{edge.target} references missing node(s): {', '.join(missing)}"
            )


def scene_to_svg(scene: Scene, title: Optional[str] = None) -> str:
    """Serialize a scene to a standalone SVG document."""

    def esc(s: str) -> str:
        return html.escape(s, quote=True)

    parts: List[str] = []
    parts.append(
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{SVG_W}" height="{SVG_H}" '
        f'viewBox="0 0 {SVG_W} {SVG_H}">'
    )
    if title:
        parts.append(f'<title>{esc(title)}</title>')
    parts.append(f'<g transform="{scene.transform.svg_attribute()}">')

    parts.append(f'<g id="edges" stroke="{EDGE_COLOR}">')
    for e in scene.edges:
        parts.append(
            f'<line x1="{e.x1:.2f}" y1="{e.y1:.2f}" x2="{e.x2:.2f}" y2="{e.y2:.2f}" '
            f'stroke-width="{e.stroke_width:.2f}" stroke-opacity="{e.stroke_opacity:.2f}"/>'
        )
    parts.append('</g>')

    parts.append('<g id="nodes">')
    for c in scene.circles:
        stroke = f' stroke="{c.stroke}" stroke-width="{c.stroke_width:.0f}"' if c.stroke else ''
        parts.append(
            f'<circle data-id="{esc(c.node_id)}" cx="{c.cx:.2f}" cy="{c.cy:.2f}" r="{c.r:.2f}" '
            f'fill="{c.fill}" fill-opacity="{c.fill_opacity:.1f}"{stroke}/>'
        )
    parts.append('</g>')

    parts.append(f'<g id="labels" font-size="8" text-anchor="middle" fill="{LABEL_COLOR}" opacity="0.7">')
    for label in scene.labels:
        parts.append(f'<text x="{label.x:.2f}" y="{label.y:.2f}">{esc(label.text)}</text>')
    parts.append('</g>')

    parts.append('</g>')
    parts.append('</svg>')
    return "\n".join(parts) + "\n"
