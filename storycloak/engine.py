"""StoryEngine - high-level API for loading, redacting and shaping stories."""

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from storycloak.anonymization.engine import AnonymizationEngine, AnonymizationResult
from storycloak.anonymization.extractor import AnonymizationSet
from storycloak.core.config import StoryCloakConfig, get_config
from storycloak.diagnostics.statistics import StoryStatistics, compute_statistics
from storycloak.document.loader import LoadResult, StoryLoader
from storycloak.document.model import StoryDocument
from storycloak.formats.reports import ReportKind, generate_report
from storycloak.formats.serialization import SerializationResult, serialize_document
from storycloak.observability.logging import trace_operation
from storycloak.parsing.recovery import RecoveryParser
from storycloak.shaping.projection import Projection
from storycloak.shaping.shaper import TreeShaper, render_text

if TYPE_CHECKING:
    from storycloak.engine_builder import StoryEngineBuilder


class StoryEngine:
    """High-level API over the parser, loader, redaction and shaping components.

    Every method is stateless with respect to the engine: documents and
    projections go in and new ones come out. :class:`storycloak.session.StorySession`
    layers the per-load view state on top.

    Examples:
        # Simple usage with defaults
        engine = StoryEngine()
        loaded = engine.load("story.jsonc")
        redacted = engine.anonymize(loaded.document)
        print(engine.render(engine.project(redacted.document), redacted.document))

        # Custom configuration
        engine = StoryEngine.builder().with_placeholder("[HIDDEN]").build()
    """

    def __init__(self, config: Optional[StoryCloakConfig] = None):
        """Initialize StoryEngine.

        Args:
            config: Configuration to use; defaults to the global configuration
        """
        self._config = config or get_config()
        self._loader = StoryLoader(config=self._config.input, parser=RecoveryParser())
        self._anonymizer = AnonymizationEngine(self._config.anonymization)
        self._shaper = TreeShaper(self._config.shaping)

    def load(self, path: Union[str, Path]) -> LoadResult:
        """Validate, read and recover a story file."""
        with trace_operation("load", path=str(path)) as attributes:
            result = self._loader.load(path)
            attributes["stage"] = result.stage
            attributes["items"] = len(result.document.items)
        return result

    def load_text(self, text: str, source: Optional[str] = None) -> LoadResult:
        """Recover a story from already-read text."""
        with trace_operation("load_text", chars=len(text)) as attributes:
            result = self._loader.load_text(text, source=source)
            attributes["stage"] = result.stage
        return result

    def statistics(self, document: StoryDocument) -> StoryStatistics:
        return compute_statistics(document)

    def extract_identifiers(self, document: StoryDocument) -> AnonymizationSet:
        return self._anonymizer.extract(document)

    def anonymize(
        self,
        document: StoryDocument,
        anonymization_set: Optional[AnonymizationSet] = None,
    ) -> AnonymizationResult:
        """Redacted copy of ``document`` (identifiers extracted if not given)."""
        with trace_operation("anonymize") as attributes:
            result = self._anonymizer.anonymize(document, anonymization_set)
            attributes["substitutions"] = result.substitutions
        return result

    def project(self, document: StoryDocument, filtered: bool = True) -> Projection:
        """Full display projection, noise nodes promoted away unless unfiltered."""
        return self._shaper.build(document, filtered=filtered)

    def render(self, projection: Projection, document: StoryDocument) -> str:
        return render_text(projection, document)

    def serialize(self, document: StoryDocument, anonymized: bool = False) -> SerializationResult:
        return serialize_document(document, anonymized=anonymized)

    def report(
        self,
        kind: ReportKind,
        document: StoryDocument,
        projection: Optional[Projection] = None,
    ) -> str:
        return generate_report(kind, document, projection)

    @classmethod
    def builder(cls) -> "StoryEngineBuilder":
        """Create a builder for advanced configuration.

        Example:
            engine = StoryEngine.builder()
                .with_placeholder("[HIDDEN]")
                .with_suppressed_subtitles(["PE metadata"])
                .build()
        """
        from storycloak.engine_builder import StoryEngineBuilder

        return StoryEngineBuilder()

    @property
    def config(self) -> StoryCloakConfig:
        """Access the engine configuration."""
        return self._config

    @property
    def shaper(self) -> TreeShaper:
        return self._shaper
