"""Identifier extraction and redaction for attack stories."""

from .engine import AnonymizationEngine, AnonymizationResult
from .extractor import (
    CATEGORY_ORDER,
    AnonymizationSet,
    IdentifierExtractor,
    extract_identifiers,
)
from .redactor import Redactor

__all__ = [
    "AnonymizationEngine",
    "AnonymizationResult",
    "CATEGORY_ORDER",
    "AnonymizationSet",
    "IdentifierExtractor",
    "extract_identifiers",
    "Redactor",
]
