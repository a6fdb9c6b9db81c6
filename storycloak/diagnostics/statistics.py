"""Node-type statistics for a loaded attack story."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..document.model import StoryDocument, StoryNode

logger = logging.getLogger(__name__)

CATEGORIES = ("process", "file", "account", "network", "registry", "other")


def classify_node(node: StoryNode) -> str:
    """Map a node to one statistics category.

    ``type`` is used when present, otherwise ``actionType``; the value is
    compared case-insensitively and anything unrecognized counts as other.
    """
    kind = (node.type or node.action_type or "").lower()
    return kind if kind in CATEGORIES else "other"


@dataclass(frozen=True)
class StoryStatistics:
    """Counts of story nodes by category.

    ``total`` always equals the sum of the six category counts, which is the
    number of nodes visited across both child collections.
    """

    processes: int = 0
    files: int = 0
    accounts: int = 0
    networks: int = 0
    registry: int = 0
    others: int = 0
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        compare=False,
    )

    @property
    def total(self) -> int:
        return (
            self.processes
            + self.files
            + self.accounts
            + self.networks
            + self.registry
            + self.others
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert statistics to dictionary for serialization."""
        return {
            "total": self.total,
            "processes": self.processes,
            "files": self.files,
            "accounts": self.accounts,
            "networks": self.networks,
            "registry": self.registry,
            "others": self.others,
            "timestamp": self.timestamp,
        }


_FIELD_BY_CATEGORY = {
    "process": "processes",
    "file": "files",
    "account": "accounts",
    "network": "networks",
    "registry": "registry",
    "other": "others",
}


def compute_statistics(document: StoryDocument) -> StoryStatistics:
    """Count every node of ``document`` by category."""
    counts = dict.fromkeys(_FIELD_BY_CATEGORY.values(), 0)
    for node in document.iter_nodes():
        counts[_FIELD_BY_CATEGORY[classify_node(node)]] += 1

    stats = StoryStatistics(**counts)
    logger.debug(f"Computed statistics: {stats.total} nodes")
    return stats
