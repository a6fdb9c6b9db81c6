"""Per-load view state: redaction toggle, zoom, expand state and exports.

A :class:`StorySession` owns one loaded story. The loaded document is never
modified; the redacted view, projection and statistics are always derived
from it again when a toggle changes.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Generator, Optional, Union

from .anonymization.extractor import AnonymizationSet
from .core.exceptions import ExportError, StoryCloakError, create_export_error
from .diagnostics.statistics import StoryStatistics
from .document.loader import LoadResult
from .document.model import StoryDocument
from .engine import StoryEngine
from .formats.capture import CaptureResult, ProjectionRenderer, capture_projection
from .formats.reports import ReportKind
from .parsing.recovery import StageFailure
from .shaping.projection import Projection

logger = logging.getLogger(__name__)


def _not_loaded() -> StoryCloakError:
    return StoryCloakError(
        "No story loaded", error_code="NO_STORY_LOADED", component="session"
    )


@dataclass(frozen=True)
class SessionSnapshot:
    """What a view layer needs to draw the current state."""

    document: StoryDocument
    projection: Projection
    statistics: StoryStatistics
    redaction_enabled: bool
    stage: str
    failures: tuple[StageFailure, ...] = ()


class StorySession:
    """Hold one loaded story and the transient view state derived from it.

    Examples:
        session = StorySession()
        session.load("story.jsonc")
        session.set_redaction(True)
        session.zoom("node-0.1")
        print(session.export_command_lines())
        session.export_json("out/")
    """

    def __init__(self, engine: Optional[StoryEngine] = None, filtered: bool = True) -> None:
        """
        Args:
            engine: Engine to use; a default one is created when omitted
            filtered: Whether projections promote noise nodes away
        """
        self.engine = engine or StoryEngine()
        self.filtered = filtered
        self._clear()

    def _clear(self) -> None:
        self.load_result: Optional[LoadResult] = None
        self.original: Optional[StoryDocument] = None
        self.anonymization_set: Optional[AnonymizationSet] = None
        self.redaction_enabled = False
        self.current: Optional[StoryDocument] = None
        self.projection: Optional[Projection] = None
        self.statistics: Optional[StoryStatistics] = None

    @property
    def loaded(self) -> bool:
        return self.original is not None

    @property
    def zoomed(self) -> bool:
        return self.projection is not None and self.projection.zoomed

    # Loading

    def load(self, path: Union[str, Path]) -> LoadResult:
        """Load a story file, replacing any previous one.

        A failed load leaves the session empty and re-raises the error.
        """
        self._clear()
        return self._adopt(self.engine.load(path))

    def load_text(self, text: str, source: Optional[str] = None) -> LoadResult:
        """Load a story from already-read text, replacing any previous one."""
        self._clear()
        return self._adopt(self.engine.load_text(text, source=source))

    def _adopt(self, result: LoadResult) -> LoadResult:
        self.load_result = result
        self.original = result.document
        self.anonymization_set = self.engine.extract_identifiers(result.document)
        self.current = result.document
        self.projection = self._project(result.document)
        self.statistics = self.engine.statistics(result.document)
        return result

    def _project(self, document: StoryDocument) -> Projection:
        return self.engine.project(document, filtered=self.filtered)

    def _require_loaded(self) -> StoryDocument:
        if self.original is None:
            raise _not_loaded()
        return self.original

    # Error boundary

    def _reset_transient(self) -> None:
        if self.original is None:
            return
        self.redaction_enabled = False
        self.current = self.original
        self.projection = self._project(self.original)
        self.statistics = self.engine.statistics(self.original)

    @contextmanager
    def _boundary(self, artifact: str) -> Generator[None, None, None]:
        try:
            yield
        except ExportError:
            logger.error(f"{artifact} failed; resetting redaction and zoom")
            self._reset_transient()
            raise
        except StoryCloakError:
            raise
        except Exception as e:
            logger.error(
                f"{artifact} failed ({type(e).__name__}: {e}); resetting redaction and zoom"
            )
            self._reset_transient()
            raise create_export_error(
                f"{artifact} failed: {e}", artifact=artifact, original_error=e
            ) from e

    # View state

    def set_redaction(self, enabled: bool) -> StoryDocument:
        """Switch between the original and the redacted view.

        The projection is rebuilt for the new view; zoom and collapse state
        carry over since node identifiers are the same in both views.
        """
        original = self._require_loaded()
        with self._boundary("redaction"):
            if enabled:
                current = self.engine.anonymize(original, self.anonymization_set).document
            else:
                current = original
            projection = self._project(current)
            previous = self.projection
            if previous is not None:
                projection = replace(projection, collapsed=previous.collapsed)
                if previous.zoom_root is not None:
                    projection = self.engine.shaper.zoom(projection, previous.zoom_root)
                    projection = replace(
                        projection,
                        collapsed=previous.collapsed,
                        reopened=previous.reopened,
                    )
            self.current = current
            self.projection = projection
            self.statistics = self.engine.statistics(current)
            self.redaction_enabled = enabled
        logger.info(f"Redaction {'enabled' if enabled else 'disabled'}")
        return current

    def _update(self, projection: Projection) -> Projection:
        self.projection = projection
        return projection

    def _current_projection(self) -> Projection:
        if self.original is None or self.projection is None:
            raise _not_loaded()
        return self.projection

    def zoom(self, node_id: str) -> Projection:
        """Re-root the view at ``node_id``; unknown ids leave the view as-is."""
        projection = self._current_projection()
        with self._boundary("zoom"):
            return self._update(self.engine.shaper.zoom(projection, node_id))

    def exit_zoom(self) -> Projection:
        return self._update(self.engine.shaper.exit_zoom(self._current_projection()))

    def toggle(self, node_id: str) -> Projection:
        return self._update(self.engine.shaper.toggle(self._current_projection(), node_id))

    def expand_all(self) -> Projection:
        return self._update(self.engine.shaper.expand_all(self._current_projection()))

    def collapse_all(self) -> Projection:
        return self._update(self.engine.shaper.collapse_all(self._current_projection()))

    # Exports

    def export_json(self, output_dir: Optional[Union[str, Path]] = None) -> Path:
        """Write the current view as pretty-printed JSON.

        Returns:
            Path of the written file
        """
        self._require_loaded()
        output_dir = output_dir or self.engine.config.export.output_dir
        with self._boundary("json"):
            result = self.engine.serialize(self.current, anonymized=self.redaction_enabled)
            return result.save_to_file(output_dir)

    def export_command_lines(self) -> str:
        """Command-line report over the current view."""
        self._require_loaded()
        with self._boundary("command_lines"):
            return self.engine.report(ReportKind.COMMAND_LINES, self.current, self.projection)

    def export_scripts(self) -> str:
        """Script report over the current view."""
        self._require_loaded()
        with self._boundary("scripts"):
            return self.engine.report(ReportKind.SCRIPTS, self.current, self.projection)

    def capture(
        self,
        renderer: ProjectionRenderer,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> CaptureResult:
        """Render the current projection to a PNG file through ``renderer``."""
        self._require_loaded()
        output_dir = output_dir or self.engine.config.export.output_dir
        with self._boundary("capture"):
            return capture_projection(
                renderer,
                self.projection,
                self.current,
                zoomed=self.zoomed,
                anonymized=self.redaction_enabled,
                output_dir=output_dir,
            )

    def snapshot(self) -> SessionSnapshot:
        """Current document, projection, statistics and redaction flag."""
        result = self.load_result
        state = (self.current, self.projection, self.statistics)
        if result is None or any(part is None for part in state):
            raise _not_loaded()
        return SessionSnapshot(
            document=self.current,
            projection=self.projection,
            statistics=self.statistics,
            redaction_enabled=self.redaction_enabled,
            stage=result.stage,
            failures=result.outcome.failures,
        )
