"""Diagnostics for loaded attack stories."""

from .statistics import CATEGORIES, StoryStatistics, classify_node, compute_statistics

__all__ = ["CATEGORIES", "StoryStatistics", "classify_node", "compute_statistics"]
