"""AnonymizationEngine - extract once, redact fresh copies on demand."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import AnonymizationConfig
from ..document.model import StoryDocument
from .extractor import AnonymizationSet, IdentifierExtractor
from .redactor import Redactor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnonymizationResult:
    """Result of an anonymization operation."""

    document: StoryDocument
    anonymization_set: AnonymizationSet
    substitutions: int


class AnonymizationEngine:
    """Redact sensitive identifiers from attack stories.

    The source document is never modified; :meth:`anonymize` always builds a
    new document from a redacted copy of the source's raw mapping.

    Examples:
        engine = AnonymizationEngine()
        identifiers = engine.extract(document)
        result = engine.anonymize(document, identifiers)
        result.document.to_dict()
    """

    def __init__(self, config: Optional[AnonymizationConfig] = None) -> None:
        self.config = config or AnonymizationConfig()
        self._extractor = IdentifierExtractor(self.config)

    def extract(self, document: StoryDocument) -> AnonymizationSet:
        """Collect the identifiers to redact from ``document``."""
        anonymization_set = self._extractor.extract(document)
        logger.info(
            "Extracted identifiers: "
            + ", ".join(f"{name}={len(values)}" for name, values in anonymization_set.ordered())
        )
        return anonymization_set

    def redactor(self, anonymization_set: AnonymizationSet) -> Redactor:
        return Redactor(
            anonymization_set,
            placeholder=self.config.placeholder,
            short_domain_length=self.config.short_domain_length,
        )

    def anonymize(
        self,
        document: StoryDocument,
        anonymization_set: Optional[AnonymizationSet] = None,
    ) -> AnonymizationResult:
        """Return a redacted copy of ``document``.

        Args:
            document: Source document (left untouched)
            anonymization_set: Identifiers to redact; extracted from
                ``document`` when omitted

        Returns:
            AnonymizationResult with the redacted document, the identifier set
            used and the number of substitutions made
        """
        if anonymization_set is None:
            anonymization_set = self.extract(document)

        redacted_raw, substitutions = self.redactor(anonymization_set).redact_value(
            document.raw
        )
        logger.info(f"Redacted document: {substitutions} substitutions")
        return AnonymizationResult(
            document=StoryDocument.from_dict(redacted_raw, document.node_ids()),
            anonymization_set=anonymization_set,
            substitutions=substitutions,
        )
