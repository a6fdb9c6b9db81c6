"""Deep, idempotent substitution of identifiers with a placeholder token."""

import re
from typing import Any

from ..core.config import DEFAULT_PLACEHOLDER
from .extractor import DOMAINS, AnonymizationSet


def _alternation(values: frozenset[str], category: str, short_length: int) -> str:
    # Longest candidates first.
    ordered = sorted(values, key=lambda v: (-len(v), v))
    parts = []
    for value in ordered:
        escaped = re.escape(value)
        if category == DOMAINS and len(value) <= short_length:
            escaped = rf"\b{escaped}\b"
        parts.append(escaped)
    return "|".join(parts)


class Redactor:
    """Replace every occurrence of an :class:`AnonymizationSet` member.

    Matching is case-insensitive. Domains no longer than ``short_domain_length``
    only match as whole words, so a domain ``io`` leaves ``iostream`` alone.
    Categories are applied one after another in the set's substitution order.

    A match that overlaps an existing placeholder is left alone, which makes
    :meth:`redact_text` idempotent.

    Examples:
        >>> from storycloak.anonymization.extractor import AnonymizationSet
        >>> redactor = Redactor(AnonymizationSet(usernames=frozenset({"alice"})))
        >>> redactor.redact_text("C:/Users/Alice/run.ps1")
        ('C:/Users/REDACTED/run.ps1', 1)
    """

    def __init__(
        self,
        anonymization_set: AnonymizationSet,
        placeholder: str = DEFAULT_PLACEHOLDER,
        short_domain_length: int = 3,
    ) -> None:
        self.anonymization_set = anonymization_set
        self.placeholder = placeholder
        self._patterns: list[tuple[str, "re.Pattern[str]"]] = [
            (
                category,
                re.compile(
                    _alternation(values, category, short_domain_length), re.IGNORECASE
                ),
            )
            for category, values in anonymization_set.ordered()
            if values
        ]

    @property
    def active(self) -> bool:
        return bool(self._patterns)

    def _placeholder_spans(self, text: str) -> list[tuple[int, int]]:
        spans = []
        start = text.find(self.placeholder)
        while start != -1:
            spans.append((start, start + len(self.placeholder)))
            start = text.find(self.placeholder, start + 1)
        return spans

    def _substitute(self, pattern: "re.Pattern[str]", text: str) -> tuple[str, int]:
        spans = self._placeholder_spans(text)
        pieces: list[str] = []
        count = 0
        last = 0
        pos = 0
        while pos <= len(text):
            match = pattern.search(text, pos)
            if match is None:
                break
            start, end = match.span()
            if end == start:
                pos = start + 1
                continue
            if any(start < s_end and s_start < end for s_start, s_end in spans):
                pos = start + 1
                continue
            pieces.append(text[last:start])
            pieces.append(self.placeholder)
            count += 1
            last = pos = end
        if not count:
            return text, 0
        pieces.append(text[last:])
        return "".join(pieces), count

    def redact_text(self, text: str) -> tuple[str, int]:
        """Redact a single string.

        Returns:
            Tuple of (redacted_text, number_of_substitutions)
        """
        total = 0
        for _, pattern in self._patterns:
            text, count = self._substitute(pattern, text)
            total += count
        return text, total

    def redact_value(self, value: Any) -> tuple[Any, int]:
        """Return a redacted deep copy of a JSON value.

        Every string at any depth is rewritten; mapping keys are kept as-is.
        """
        if isinstance(value, str):
            return self.redact_text(value)
        if isinstance(value, dict):
            total = 0
            result: dict[str, Any] = {}
            for key, item in value.items():
                result[key], count = self.redact_value(item)
                total += count
            return result, total
        if isinstance(value, list):
            total = 0
            items = []
            for item in value:
                redacted, count = self.redact_value(item)
                items.append(redacted)
                total += count
            return items, total
        return value, 0
