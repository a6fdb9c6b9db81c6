"""Filter-and-promote shaping, zoom and expand state for story trees.

Every operation returns a new :class:`Projection`; neither projections nor
the document are ever modified.
"""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from ..core.config import ShapingConfig
from ..document.model import StoryDocument, StoryNode
from .projection import ProjectedNode, Projection

logger = logging.getLogger(__name__)

CONNECTOR = "└── "
INDENT = "    "


class TreeShaper:
    """Build and transform display projections.

    A node whose subtitle (``title.intro``) contains one of the suppressed
    substrings is elided; its children, then its nested items, take its place
    at the same depth.

    Examples:
        >>> shaper = TreeShaper()
        >>> projection = shaper.build(document)  # doctest: +SKIP
        >>> zoomed = shaper.zoom(projection, "node-0.1")  # doctest: +SKIP
        >>> shaper.exit_zoom(zoomed) == projection  # doctest: +SKIP
        True
    """

    def __init__(self, config: Optional[ShapingConfig] = None) -> None:
        self.config = config or ShapingConfig()

    def is_suppressed(self, node: StoryNode) -> bool:
        subtitle = node.subtitle
        if not subtitle:
            return False
        return any(marker in subtitle for marker in self.config.suppressed_subtitles)

    def build(self, document: StoryDocument, filtered: bool = True) -> Projection:
        """Full projection of ``document``: no zoom, nothing collapsed."""
        rows: list[ProjectedNode] = []
        self._project(document.items, 0, None, rows, filtered)
        suppressed = document.node_count - len(rows)
        logger.debug(f"Built projection: {len(rows)} rows, {suppressed} suppressed")
        nodes = tuple(rows)
        return Projection(nodes=nodes, base=nodes)

    def _project(
        self,
        nodes: Iterable[StoryNode],
        depth: int,
        parent_id: Optional[str],
        rows: list[ProjectedNode],
        filtered: bool,
    ) -> None:
        for node in nodes:
            if filtered and self.is_suppressed(node):
                self._project(node.all_children, depth, parent_id, rows, filtered)
                continue
            index = len(rows)
            rows.append(ProjectedNode(node.id, depth, parent_id, False))
            self._project(node.all_children, depth + 1, node.id, rows, filtered)
            if len(rows) > index + 1:
                rows[index] = replace(rows[index], has_children=True)

    def zoom(self, projection: Projection, node_id: str) -> Projection:
        """Re-root the view at ``node_id``.

        The rows become the node and its descendants with depths relative to
        it, and the node itself is expanded. An id that is not in the full
        projection returns ``projection`` unchanged.
        """
        base = projection.base
        start = next((i for i, row in enumerate(base) if row.node_id == node_id), None)
        if start is None:
            logger.warning(f"Zoom target '{node_id}' not found; keeping current view")
            return projection

        root = base[start]
        end = start + 1
        while end < len(base) and base[end].depth > root.depth:
            end += 1

        nodes = tuple(
            replace(
                row,
                depth=row.depth - root.depth,
                parent_id=None if i == start else row.parent_id,
            )
            for i, row in enumerate(base[start:end], start)
        )
        logger.info(f"Zoomed to '{node_id}': {len(nodes)} rows")
        return Projection(
            nodes=nodes,
            collapsed=projection.collapsed - {node_id},
            zoom_root=node_id,
            base=base,
            reopened=projection.reopened | (projection.collapsed & {node_id}),
        )

    def exit_zoom(self, projection: Projection) -> Projection:
        """Return to the full projection, keeping collapse state.

        Zoom roots that were collapsed before zooming are collapsed again.
        """
        return Projection(
            nodes=projection.base,
            collapsed=projection.collapsed | projection.reopened,
            zoom_root=None,
            base=projection.base,
        )

    def toggle(self, projection: Projection, node_id: str) -> Projection:
        """Flip the expand state of a row that has children."""
        row = projection.find(node_id)
        if row is None or not row.has_children:
            return projection
        return replace(projection, collapsed=projection.collapsed ^ {node_id})

    def expand_all(self, projection: Projection) -> Projection:
        """Expand every row in scope (the zoomed subtree when zoomed)."""
        return replace(
            projection, collapsed=projection.collapsed - set(projection.node_ids)
        )

    def collapse_all(self, projection: Projection) -> Projection:
        """Collapse every row in scope that has children."""
        parents = {row.node_id for row in projection.nodes if row.has_children}
        return replace(projection, collapsed=projection.collapsed | parents)


def render_text(projection: Projection, document: StoryDocument) -> str:
    """Render the visible rows as an indented text tree."""
    titles = {}
    for node in document.iter_nodes():
        titles.setdefault(node.id, node)

    lines = []
    for row in projection.visible:
        node = titles.get(row.node_id)
        label = node.display_title if node is not None else row.node_id
        if node is not None and node.subtitle:
            label = f"{label} ({node.subtitle})"
        marker = " [+]" if row.has_children and row.node_id in projection.collapsed else ""
        prefix = INDENT * (row.depth - 1) + CONNECTOR if row.depth else ""
        lines.append(f"{prefix}{label}{marker}")
    return "\n".join(lines)
