"""Plain-text command-line and script reports."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional

from ..document.model import ProcessEntity, StoryDocument, StoryNode
from ..shaping.projection import Projection

logger = logging.getLogger(__name__)

SCRIPT_EVENT_MARKER = "powershell.exe executed a script"
SCRIPT_SEPARATOR = "# " + "=" * 80
NO_TIMESTAMP = "No timestamp"

_FRACTION = re.compile(r"\.(\d+)")


class ReportKind(Enum):
    """Supported plain-text reports."""

    COMMAND_LINES = "command_lines"
    SCRIPTS = "scripts"


@dataclass(frozen=True)
class ReportEntry:
    """One report entry, before formatting."""

    timestamp: Optional[str]
    process_name: str
    user: str
    content: str

    @property
    def header(self) -> str:
        return f"# {self.timestamp or NO_TIMESTAMP} - {self.process_name} - User: {self.user}"


def _raw_text(node: StoryNode, key: str) -> Optional[str]:
    value = node.raw.get(key)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value) or None


def best_timestamp(node: StoryNode) -> Optional[str]:
    """``time``, then entity ``CreationTime``, ``processCreationTime``, ``timestamp``."""
    if node.time:
        return node.time
    if isinstance(node.entity, ProcessEntity) and node.entity.creation_time:
        return node.entity.creation_time
    return _raw_text(node, "processCreationTime") or _raw_text(node, "timestamp")


def process_name(node: StoryNode) -> str:
    if node.title.main:
        return node.title.main
    image = node.image_file
    if image is not None and image.file_name:
        return image.file_name
    user = node.user
    if user is not None and user.user_name:
        return f"{user.domain_name or ''}\\{user.user_name}"
    for key in ("fileName", "processName", "name"):
        value = _raw_text(node, key)
        if value:
            return value
    return "Unknown Process"


def _qualified(name: str, domain: Optional[str]) -> str:
    return f"{domain}\\{name}" if domain else name


def user_info(node: StoryNode) -> str:
    user = node.user
    if user is not None:
        if user.qualified_name:
            return user.qualified_name
        if user.sid:
            return f"SID: {user.sid}"

    account = _raw_text(node, "accountName")
    if account:
        return _qualified(account, _raw_text(node, "accountDomain"))
    initiating = _raw_text(node, "initiatingProcessAccountName")
    if initiating:
        return _qualified(initiating, _raw_text(node, "initiatingProcessAccountDomain"))
    upn = _raw_text(node, "accountUpn")
    if upn:
        return upn
    sid = _raw_text(node, "accountSid")
    if sid:
        return f"SID: {sid}"
    return "Unknown User"


def is_script_event(node: StoryNode) -> bool:
    return any(
        text and SCRIPT_EVENT_MARKER in text.lower()
        for text in (node.display_title, node.subtitle)
    )


def script_content(node: StoryNode) -> Optional[str]:
    """``Content`` detail of a script event, from details then sections."""
    if not is_script_event(node):
        return None
    sections = [node.details] + [s.details for s in node.additional_details]
    for details in sections:
        for detail in details:
            if detail.key.lower() == "content" and detail.value:
                return str(detail.value)
    return None


def unescape_separators(text: str) -> str:
    return text.replace("\\/", "/")


def unescape_script(text: str) -> str:
    """Make escaped script content readable; backslashes are unescaped last."""
    return (
        text.replace("\\/", "/")
        .replace("\\r\\n", "\n")
        .replace("\\n", "\n")
        .replace("\\r", "\n")
        .replace("\\t", "\t")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; None when missing or unparseable.

    Fractions are normalized to microseconds and naive values are taken as
    UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_entries(entries: Iterable[ReportEntry]) -> list[ReportEntry]:
    """Ascending by timestamp; entries without a usable one go last, in order."""

    def key(entry: ReportEntry) -> tuple:
        parsed = parse_timestamp(entry.timestamp)
        return (0, parsed) if parsed is not None else (1,)

    return sorted(entries, key=key)


def report_nodes(
    document: StoryDocument, projection: Optional[Projection] = None
) -> list[StoryNode]:
    """Nodes a report covers: the visible rows when zoomed, else every node."""
    if projection is None or not projection.zoomed:
        return list(document.iter_nodes())

    by_id: dict[str, StoryNode] = {}
    for node in document.iter_nodes():
        by_id.setdefault(node.id, node)
    return [by_id[row.node_id] for row in projection.visible if row.node_id in by_id]


def collect_entries(
    nodes: Iterable[StoryNode], extract: Callable[[StoryNode], Optional[str]]
) -> list[ReportEntry]:
    entries = []
    for node in nodes:
        content = extract(node)
        if content and content.strip():
            entries.append(
                ReportEntry(
                    timestamp=best_timestamp(node),
                    process_name=process_name(node),
                    user=user_info(node),
                    content=content.strip(),
                )
            )
    return sort_entries(entries)


def _mode(zoomed: bool) -> str:
    return "visible (zoomed)" if zoomed else "loaded"


def command_line_report(nodes: Iterable[StoryNode], zoomed: bool = False) -> str:
    """Every command line, oldest first, each under a ``#`` header line."""
    entries = collect_entries(nodes, lambda node: node.command_line)
    logger.info(f"Found {len(entries)} command lines")
    if not entries:
        return (
            f"# No command lines found in the {_mode(zoomed)} data\n"
            "# This might indicate that the data doesn't contain process "
            "creation events with command lines"
        )
    return "".join(
        f"{entry.header}\n{unescape_separators(entry.content)}\n\n" for entry in entries
    )


def script_report(nodes: Iterable[StoryNode], zoomed: bool = False) -> str:
    """Every executed script's content, oldest first, separated by rule lines."""
    entries = collect_entries(nodes, script_content)
    logger.info(f"Found {len(entries)} scripts")
    if not entries:
        return (
            f"# No PowerShell scripts found in the {_mode(zoomed)} data\n"
            "# This might indicate that the data doesn't contain "
            f'"{SCRIPT_EVENT_MARKER}" events'
        )
    return "".join(
        f"{entry.header}\n{unescape_script(entry.content)}\n\n{SCRIPT_SEPARATOR}\n\n"
        for entry in entries
    )


def generate_report(
    kind: ReportKind,
    document: StoryDocument,
    projection: Optional[Projection] = None,
) -> str:
    """Generate a report over the nodes ``projection`` puts in scope."""
    nodes = report_nodes(document, projection)
    zoomed = projection is not None and projection.zoomed
    if kind is ReportKind.COMMAND_LINES:
        return command_line_report(nodes, zoomed)
    return script_report(nodes, zoomed)
