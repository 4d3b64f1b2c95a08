"""
Network Viewport

Interactive force-directed view over a projected co-occurrence graph:
- Transform: client pixels <-> viewBox <-> simulation space
- SimulationSession: per-dataset force simulation with pinned/free nodes
- ViewportController: drag, pan, zoom, freeze, hover and click navigation
- render_scene / scene_to_svg: drawable shapes and headless SVG export
"""

from .controller import InteractionState, PointerUpResult, ViewportController
from .render import Scene, render_scene, scene_to_svg, validate_graph
from .simulation import PositionState, SimLink, SimNode, SimulationSession
from .transform import ClientRect, Transform

__all__ = [
    'ViewportController',
    'InteractionState',
    'PointerUpResult',
    'SimulationSession',
    'SimNode',
    'SimLink',
    'PositionState',
    'Transform',
    'ClientRect',
    'Scene',
    'render_scene',
    'scene_to_svg',
    'validate_graph',
]
