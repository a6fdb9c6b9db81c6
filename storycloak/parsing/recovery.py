"""Staged recovery parser for copy-pasted attack story exports.

Exports are usually copied by hand out of a browser developer-tools preview
pane, so they arrive truncated, with unescaped Windows paths, with JSONC
comments or trailing commas, or with stray text around the object. The
parser tries a fixed chain of stages, each of which transforms the text and
attempts a full ``json`` parse before falling through to the next:

1. ``baseline``: the text as-is
2. ``escape_normalization``: every path separator escaped uniformly
3. ``structural_cleanup``: comments and dangling commas removed
4. ``repair``: outermost object extracted and common breakages patched

When the repair stage still cannot produce valid JSON the parser returns a
fixed fallback document instead of raising.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from ..core.exceptions import ParseRecoveryExhausted
from .scanner import find_object_boundary, outside_strings, strip_comments

logger = logging.getLogger(__name__)

FALLBACK_ERROR = "Failed to parse malformed JSON"


def fallback_document() -> dict[str, Any]:
    """Return a fresh copy of the fabricated fallback document."""
    return {"error": FALLBACK_ERROR, "items": []}


class ParseStage(Enum):
    """Stages of the recovery chain, in the order they are attempted."""

    BASELINE = "baseline"
    ESCAPE_NORMALIZATION = "escape_normalization"
    STRUCTURAL_CLEANUP = "structural_cleanup"
    REPAIR = "repair"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class StageFailure:
    """A stage that was attempted and did not produce valid JSON."""

    stage: ParseStage
    error: str
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass(frozen=True)
class ParseOutcome:
    """Result of :meth:`RecoveryParser.parse`.

    Attributes:
        value: The parsed JSON value
        stage: Stage that produced ``value``
        failures: Stages attempted before ``stage``, in order
    """

    value: Any
    stage: ParseStage
    failures: tuple[StageFailure, ...] = field(default_factory=tuple)

    @property
    def recovered(self) -> bool:
        """Whether any transformation was needed to parse the text."""
        return self.stage is not ParseStage.BASELINE

    @property
    def fabricated(self) -> bool:
        """Whether ``value`` is the fixed fallback document."""
        return self.stage is ParseStage.FALLBACK


# Structural cleanup: dangling commas next to brackets.
_COMMA_BEFORE_CLOSE = re.compile(r",(\s*[}\]])")
_COMMA_AFTER_OPEN = re.compile(r"([{\[])\s*,")
# Escape normalization: a valid JSON escape, or a lone separator.
_SEPARATOR_TOKEN = re.compile(r'\\(?:[\\"/bfnrt]|u[0-9a-fA-F]{4})|[\\/]')

# Repair patterns, applied in order outside string literals.
_REPAIR_PATTERNS: list[tuple["re.Pattern[str]", str]] = [
    (re.compile(r":[ \t]*$", re.MULTILINE), ': ""'),
    (re.compile(r":\s*,"), ': "",'),
    (re.compile(r":\s*}"), ': ""}'),
    (re.compile(r":\s*]"), ': ""]'),
    (re.compile(r",\s*}"), "}"),
    (re.compile(r",\s*]"), "]"),
    (re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:"), r'\1"\2":'),
    (_COMMA_BEFORE_CLOSE, r"\1"),
]


def _escape_separator(match: "re.Match[str]") -> str:
    token = match.group(0)
    if len(token) > 1:
        return token
    return "\\\\" if token == "\\" else "\\/"


def escape_separators(text: str) -> str:
    """Escape every literal path separator.

    Lone backslashes (Windows paths shown unescaped in the preview pane) are
    doubled and bare forward slashes become ``\\/``, which JSON decodes back
    to ``/``. Valid JSON escape sequences are kept, so well-formed text
    decodes to the same value.
    """
    return _SEPARATOR_TOKEN.sub(_escape_separator, text)


def _strip_dangling_commas(text: str) -> str:
    text = _COMMA_BEFORE_CLOSE.sub(r"\1", text)
    return _COMMA_AFTER_OPEN.sub(r"\1", text)


def cleanup_structure(text: str) -> str:
    """Strip comments and commas adjacent to brackets."""
    return outside_strings(strip_comments(text), _strip_dangling_commas).strip()


def _apply_repair_patterns(text: str) -> str:
    for pattern, replacement in _REPAIR_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def repair_text(text: str) -> str:
    """Cut ``text`` down to its outermost complete object and patch it."""
    repaired = text.strip()
    boundary = find_object_boundary(repaired)
    if boundary.complete:
        logger.debug(
            f"Extracted outermost object [{boundary.start}:{boundary.end}] "
            f"from {len(repaired)} characters"
        )
        repaired = boundary.extract(repaired)
    else:
        logger.debug("No complete outer object found; repairing the full text")
    return outside_strings(repaired, _apply_repair_patterns)


class RecoveryParser:
    """Parse possibly malformed JSON/JSONC text through a fallback chain.

    Examples:
        >>> parser = RecoveryParser()
        >>> outcome = parser.parse('{"items": [1, 2,],}')
        >>> outcome.stage
        <ParseStage.STRUCTURAL_CLEANUP: 'structural_cleanup'>
        >>> outcome.value
        {'items': [1, 2]}
    """

    def __init__(self, repair: Optional[Callable[[str], str]] = None) -> None:
        """
        Args:
            repair: Text repair function used by the last stage. Defaults to
                    :func:`repair_text`; exposed for testing.
        """
        self._repair = repair or repair_text

    def parse(self, raw_text: str) -> ParseOutcome:
        """Run the recovery chain on ``raw_text``.

        Returns:
            ParseOutcome for the first stage that parsed, or the fallback
            document when every stage failed

        Raises:
            ParseRecoveryExhausted: If the repair transformation itself raised
        """
        failures: list[StageFailure] = []

        value, failure = self._attempt(ParseStage.BASELINE, raw_text)
        if failure is None:
            return ParseOutcome(value=value, stage=ParseStage.BASELINE)
        failures.append(failure)

        value, failure = self._attempt(
            ParseStage.ESCAPE_NORMALIZATION, escape_separators(raw_text)
        )
        if failure is None:
            return self._recovered(value, ParseStage.ESCAPE_NORMALIZATION, failures)
        failures.append(failure)

        cleaned = cleanup_structure(raw_text)
        value, failure = self._attempt(ParseStage.STRUCTURAL_CLEANUP, cleaned)
        if failure is None:
            return self._recovered(value, ParseStage.STRUCTURAL_CLEANUP, failures)
        failures.append(failure)

        try:
            repaired = self._repair(cleaned)
        except Exception as e:
            raise ParseRecoveryExhausted(
                f"JSON repair failed: {e}",
                stage=ParseStage.REPAIR.value,
                original_error=e,
            ) from e

        value, failure = self._attempt(ParseStage.REPAIR, repaired, strict=False)
        if failure is None:
            return self._recovered(value, ParseStage.REPAIR, failures)
        failures.append(failure)

        logger.error(
            f"All {len(failures)} parse stages failed; returning fallback document"
        )
        return ParseOutcome(
            value=fallback_document(),
            stage=ParseStage.FALLBACK,
            failures=tuple(failures),
        )

    def parse_stage(self, raw_text: str, stage: ParseStage) -> Any:
        """Parse ``raw_text`` with a single stage's transformation only.

        Raises:
            json.JSONDecodeError: If the stage's output is not valid JSON
            ValueError: For :attr:`ParseStage.FALLBACK`, which does not parse
        """
        if stage is ParseStage.BASELINE:
            return json.loads(raw_text)
        if stage is ParseStage.ESCAPE_NORMALIZATION:
            return json.loads(escape_separators(raw_text))
        if stage is ParseStage.STRUCTURAL_CLEANUP:
            return json.loads(cleanup_structure(raw_text))
        if stage is ParseStage.REPAIR:
            return json.loads(self._repair(cleanup_structure(raw_text)), strict=False)
        raise ValueError(f"Stage {stage.value} does not parse text")

    @staticmethod
    def _attempt(
        stage: ParseStage, text: str, strict: bool = True
    ) -> tuple[Any, Optional[StageFailure]]:
        try:
            return json.loads(text, strict=strict), None
        except json.JSONDecodeError as e:
            logger.warning(
                f"Parse stage '{stage.value}' failed: {e.msg} "
                f"(line {e.lineno}, column {e.colno})"
            )
            return None, StageFailure(
                stage=stage, error=e.msg, line=e.lineno, column=e.colno
            )
        except RecursionError as e:
            logger.warning(f"Parse stage '{stage.value}' failed: nesting too deep")
            return None, StageFailure(stage=stage, error=str(e))

    @staticmethod
    def _recovered(
        value: Any, stage: ParseStage, failures: list[StageFailure]
    ) -> ParseOutcome:
        logger.info(
            f"Recovered malformed input at stage '{stage.value}' "
            f"after {len(failures)} failed attempt(s)"
        )
        return ParseOutcome(value=value, stage=stage, failures=tuple(failures))


def parse(raw_text: str) -> ParseOutcome:
    """Parse ``raw_text`` with a default :class:`RecoveryParser`."""
    return RecoveryParser().parse(raw_text)
