"""Immutable display projection of an attack story tree."""

from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass(frozen=True)
class ProjectedNode:
    """One row of a projection.

    Attributes:
        node_id: Identifier of the document node shown on this row
        depth: Indentation level, relative to the zoom root when zoomed
        parent_id: Identifier of the nearest shown ancestor, if any
        has_children: Whether any row sits directly below this one
    """

    node_id: str
    depth: int
    parent_id: Optional[str]
    has_children: bool


@dataclass(frozen=True)
class Projection:
    """Ordered rows of a shaped tree plus view state.

    ``nodes`` are the rows in scope (the zoomed subtree when zoomed), ignoring
    collapse state; :attr:`visible` applies it. ``base`` always holds the full
    unzoomed rows so leaving zoom needs no access to the document.
    ``reopened`` holds zoom roots that were collapsed before zooming; leaving
    zoom collapses them again.
    """

    nodes: tuple[ProjectedNode, ...] = ()
    collapsed: frozenset[str] = field(default_factory=frozenset)
    zoom_root: Optional[str] = None
    base: tuple[ProjectedNode, ...] = ()
    reopened: frozenset[str] = field(default_factory=frozenset)

    @property
    def zoomed(self) -> bool:
        return self.zoom_root is not None

    @property
    def visible(self) -> tuple[ProjectedNode, ...]:
        """Rows not hidden under a collapsed ancestor."""
        return tuple(self._iter_visible())

    def _iter_visible(self) -> Iterator[ProjectedNode]:
        hidden_below: Optional[int] = None
        for row in self.nodes:
            if hidden_below is not None:
                if row.depth > hidden_below:
                    continue
                hidden_below = None
            yield row
            if row.has_children and row.node_id in self.collapsed:
                hidden_below = row.depth

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(row.node_id for row in self.nodes)

    def find(self, node_id: str) -> Optional[ProjectedNode]:
        """First row showing ``node_id`` within the current scope."""
        for row in self.nodes:
            if row.node_id == node_id:
                return row
        return None

    def is_expanded(self, node_id: str) -> bool:
        return node_id not in self.collapsed

    def __len__(self) -> int:
        return len(self.nodes)
