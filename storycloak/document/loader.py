"""Input validation and loading of attack story files."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from ..core.config import InputConfig
from ..core.exceptions import (
    InputValidationError,
    StructureValidationError,
    create_input_error,
)
from ..parsing.recovery import ParseOutcome, RecoveryParser
from .model import StoryDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """A loaded document together with how it was recovered."""

    document: StoryDocument
    outcome: ParseOutcome
    source: Optional[str] = None
    size_bytes: int = 0

    @property
    def stage(self) -> str:
        return self.outcome.stage.value


def _validate_extension(path: Path, allowed: list[str]) -> None:
    suffix = path.suffix.lower()
    if suffix not in {ext.lower() for ext in allowed}:
        raise create_input_error(
            f"Unsupported file type '{path.suffix or '(none)'}': "
            f"expected one of {', '.join(allowed)}",
            file_path=str(path),
        )


def _validate_size(path: Path, max_size_bytes: int) -> int:
    try:
        size = path.stat().st_size
    except OSError as e:
        raise InputValidationError(
            f"Cannot read input file: {e}", file_path=str(path)
        ) from e
    if size > max_size_bytes:
        raise create_input_error(
            f"File is too large: {size} bytes (limit {max_size_bytes} bytes)",
            file_path=str(path),
            size_bytes=size,
        )
    return size


def validate_structure(value: Any) -> dict[str, Any]:
    """Check the minimal attack-story shape: an object with non-empty ``items``.

    Raises:
        StructureValidationError: If the value is not an object or its
            ``items`` is missing, not a list, or empty
    """
    if not isinstance(value, dict):
        raise StructureValidationError(
            f"Expected a JSON object at top level, got {type(value).__name__}"
        )
    items = value.get("items")
    if not isinstance(items, list):
        error = StructureValidationError(
            "Invalid story format: missing 'items' array", field_name="items"
        )
        if "error" in value:
            error.add_context("parser_error", value["error"])
            error.add_recovery_suggestion(
                "Copy the full response body again; the text could not be recovered"
            )
        raise error
    if not items:
        error = StructureValidationError(
            "Invalid story format: 'items' array is empty", field_name="items"
        )
        if "error" in value:
            error.add_context("parser_error", value["error"])
        raise error
    return value


class StoryLoader:
    """Validate, read, recover and shape-check attack story exports."""

    def __init__(
        self,
        config: Optional[InputConfig] = None,
        parser: Optional[RecoveryParser] = None,
    ) -> None:
        self.config = config or InputConfig()
        self.parser = parser or RecoveryParser()

    def load_text(self, text: str, source: Optional[str] = None) -> LoadResult:
        """Recover and validate already-read text.

        Raises:
            ParseRecoveryExhausted: If the repair stage itself failed
            StructureValidationError: If the recovered value is not a story
        """
        outcome = self.parser.parse(text)
        value = validate_structure(outcome.value)
        document = StoryDocument.from_dict(value)
        logger.info(
            f"Loaded story{f' from {source}' if source else ''}: "
            f"{len(document.items)} top-level items, stage '{outcome.stage.value}'"
        )
        return LoadResult(
            document=document,
            outcome=outcome,
            source=source,
            size_bytes=len(text.encode("utf-8")),
        )

    def load(self, path: Union[str, Path]) -> LoadResult:
        """Load a ``.json``/``.jsonc`` file.

        Raises:
            InputValidationError: Wrong extension, oversized or unreadable file
            ParseRecoveryExhausted: If the repair stage itself failed
            StructureValidationError: If the recovered value is not a story
        """
        path = Path(path)
        _validate_extension(path, self.config.allowed_extensions)
        if not path.is_file():
            raise create_input_error(f"Input file not found: {path}", file_path=str(path))
        size = _validate_size(path, self.config.max_size_bytes)

        try:
            text = path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as e:
            raise InputValidationError(
                f"Cannot read input file: {e}", file_path=str(path), size_bytes=size
            ) from e

        logger.debug(f"Read {size} bytes from {path}")
        result = self.load_text(text, source=str(path))
        return LoadResult(
            document=result.document,
            outcome=result.outcome,
            source=str(path),
            size_bytes=size,
        )


def load_story(path: Union[str, Path], config: Optional[InputConfig] = None) -> LoadResult:
    """Load a story file with a default :class:`StoryLoader`."""
    return StoryLoader(config=config).load(path)
