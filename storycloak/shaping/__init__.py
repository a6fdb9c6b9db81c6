"""Display shaping of attack story trees."""

from .projection import ProjectedNode, Projection
from .shaper import TreeShaper, render_text

__all__ = ["ProjectedNode", "Projection", "TreeShaper", "render_text"]
