"""
Network viewport constants: drawing surface, interaction thresholds, node styling.
"""

from typing import Dict

from cooccurrence.models import EntityType

# Drawing surface (SVG viewBox units)
SVG_W = 800
SVG_H = 600

# Interaction
DRAG_THRESHOLD = 4  # px of pointer travel separating click from drag
HIT_SLOP = 4  # px added to node radius for hit testing
HOVER_SLOP = 6  # hover target is slightly larger than the drag target
MIN_ZOOM = 0.3
MAX_ZOOM = 4.0
ZOOM_IN_FACTOR = 1.1
ZOOM_OUT_FACTOR = 0.9

# Simulation
TICKS_PER_RENDER_FRAME = 3
INITIAL_JITTER = 200  # width of the square initial positions are drawn from
CHARGE_STRENGTH = -80.0
COLLIDE_PADDING = 2.0
DRAG_ALPHA_TARGET = 0.3
RESUME_ALPHA = 0.3

# Node styling
MIN_NODE_RADIUS = 4.0
MAX_NODE_RADIUS = 20.0
LABEL_MIN_RADIUS = 10.0
LABEL_MAX_CHARS = 20
HIGHLIGHT_RADIUS_BOOST = 4.0
LABEL_OFFSET = 12.0
TOOLTIP_GAP = 8.0

TYPE_COLORS: Dict[str, str] = {
    EntityType.ORGANIZATION.value: 'hsl(210, 70%, 50%)',
    EntityType.PERSON.value: 'hsl(140, 60%, 45%)',
    EntityType.COMMITTEE.value: 'hsl(30, 80%, 55%)',
    EntityType.GOVERNMENT_BODY.value: 'hsl(260, 50%, 55%)',
    EntityType.POLITICAL_PARTY.value: 'hsl(0, 65%, 55%)',
}

DEFAULT_NODE_COLOR = 'hsl(220, 9%, 46%)'

TYPE_LABELS: Dict[str, str] = {
    EntityType.ORGANIZATION.value: 'Organisation',
    EntityType.PERSON.value: 'Person',
    EntityType.COMMITTEE.value: 'Kommitté',
    EntityType.GOVERNMENT_BODY.value: 'Myndighet',
    EntityType.POLITICAL_PARTY.value: 'Politiskt parti',
}


def node_color(entity_type: str) -> str:
    return TYPE_COLORS.get(entity_type, DEFAULT_NODE_COLOR)


def node_radius(degree: int, max_degree: int) -> float:
    """Linear interpolation between MIN_NODE_RADIUS and MAX_NODE_RADIUS by relative degree."""
    if max_degree <= 0:
        return MIN_NODE_RADIUS
    return MIN_NODE_RADIUS + (degree / max_degree) * (MAX_NODE_RADIUS - MIN_NODE_RADIUS)


def type_label(entity_type: str) -> str:
    return TYPE_LABELS.get(entity_type, entity_type)
