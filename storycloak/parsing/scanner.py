"""Character-level scanners used by the recovery parser.

None of these functions raise on malformed text: unbalanced quotes, braces
or comment markers simply leave the remainder of the text as it was.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

QUOTE = '"'
ESCAPE = "\\"

_MASKED_LITERAL = re.compile(r'"@(\d+)"')


@dataclass(frozen=True)
class ObjectBoundary:
    """Result of the outermost-object scan.

    Attributes:
        start: Index of the first opening brace, or None if there is none
        end: Index of the brace that closes it, or None if it never closes
        max_depth: Deepest brace nesting seen during the scan
    """

    start: Optional[int]
    end: Optional[int]
    max_depth: int = 0

    @property
    def complete(self) -> bool:
        return self.start is not None and self.end is not None

    def extract(self, text: str) -> str:
        """Return the complete object, or ``text`` unchanged when incomplete."""
        if not self.complete:
            return text
        return text[self.start : self.end + 1]


def find_object_boundary(text: str) -> ObjectBoundary:
    """Locate the outermost complete ``{...}`` object in ``text``.

    State is ``depth``, ``in_string`` and ``escape_next``. An escaped character
    is consumed without further interpretation, a quote toggles string mode,
    and braces only count outside strings. The scan halts as soon as depth
    returns to zero after the first opening brace.

    Examples:
        >>> find_object_boundary('junk {"a": "}"} tail').extract('junk {"a": "}"} tail')
        '{"a": "}"}'
    """
    depth = 0
    max_depth = 0
    start: Optional[int] = None
    in_string = False
    escape_next = False

    for index, char in enumerate(text):
        if escape_next:
            escape_next = False
        elif char == ESCAPE:
            escape_next = True
        elif char == QUOTE:
            in_string = not in_string
        elif not in_string:
            if char == "{":
                if start is None:
                    start = index
                depth += 1
                max_depth = max(max_depth, depth)
            elif char == "}":
                depth -= 1
                if depth == 0 and start is not None:
                    return ObjectBoundary(start=start, end=index, max_depth=max_depth)

    return ObjectBoundary(start=start, end=None, max_depth=max_depth)


def strip_comments(text: str) -> str:
    """Remove ``//`` line comments and ``/* */`` block comments.

    Comment markers inside string literals are left alone, so URLs such as
    ``"https://host/path"`` survive. An unterminated block comment removes the
    rest of the text.
    """
    out: list[str] = []
    i = 0
    length = len(text)
    in_string = False

    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if char == ESCAPE and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == QUOTE:
                in_string = False
            i += 1
            continue

        if char == QUOTE:
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close == -1:
                break
            i = close + 2
        else:
            out.append(char)
            i += 1

    return "".join(out)


def mask_string_literals(text: str) -> tuple[str, list[str]]:
    """Replace every complete string literal with an indexed stand-in.

    Structural regular expressions can then run over the masked text without
    touching string contents. A trailing unterminated literal is left in
    place.

    Returns:
        Tuple of (masked_text, literals) where ``literals[n]`` holds the
        original text (including quotes) of stand-in ``"@n"``
    """
    out: list[str] = []
    literals: list[str] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char != QUOTE:
            out.append(char)
            i += 1
            continue

        j = i + 1
        while j < length:
            if text[j] == ESCAPE:
                j += 2
                continue
            if text[j] == QUOTE:
                break
            j += 1

        if j >= length:
            out.append(text[i:])
            break

        out.append(f'"@{len(literals)}"')
        literals.append(text[i : j + 1])
        i = j + 1

    return "".join(out), literals


def unmask_string_literals(masked: str, literals: list[str]) -> str:
    """Inverse of :func:`mask_string_literals`."""

    def restore(match: "re.Match[str]") -> str:
        index = int(match.group(1))
        return literals[index] if index < len(literals) else match.group(0)

    return _MASKED_LITERAL.sub(restore, masked)


def outside_strings(text: str, transform: Callable[[str], str]) -> str:
    """Apply ``transform`` to everything except complete string literals."""
    masked, literals = mask_string_literals(text)
    return unmask_string_literals(transform(masked), literals)
