"""Recovery parsing for malformed attack story exports."""

from .recovery import (
    FALLBACK_ERROR,
    ParseOutcome,
    ParseStage,
    RecoveryParser,
    StageFailure,
    cleanup_structure,
    escape_separators,
    fallback_document,
    parse,
    repair_text,
)
from .scanner import ObjectBoundary, find_object_boundary, strip_comments

__all__ = [
    "FALLBACK_ERROR",
    "ParseOutcome",
    "ParseStage",
    "RecoveryParser",
    "StageFailure",
    "cleanup_structure",
    "escape_separators",
    "fallback_document",
    "parse",
    "repair_text",
    "ObjectBoundary",
    "find_object_boundary",
    "strip_comments",
]
