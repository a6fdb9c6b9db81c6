"""JSON export of attack stories and artifact naming."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from ..document.model import StoryDocument

logger = logging.getLogger(__name__)

JSON_EXPORT_PREFIX = "xdr_story_data"
CAPTURE_PREFIX = "xdr_process_tree"


def export_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp for artifact names, e.g. ``2024-05-01T09-30-00``.

    The ISO form with ``:`` and ``.`` replaced by ``-`` and the fractional
    seconds dropped.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S")


def json_export_filename(anonymized: bool, now: Optional[datetime] = None) -> str:
    suffix = "_anonymized" if anonymized else ""
    return f"{JSON_EXPORT_PREFIX}{suffix}_{export_timestamp(now)}.json"


def capture_filename(
    zoomed: bool, anonymized: bool, now: Optional[datetime] = None
) -> str:
    zoom_suffix = "_zoomed" if zoomed else ""
    anon_suffix = "_anonymized" if anonymized else ""
    return f"{CAPTURE_PREFIX}{zoom_suffix}{anon_suffix}_{export_timestamp(now)}.png"


@dataclass
class SerializationResult:
    """Result of a serialization operation."""

    content: str
    filename: str
    size_bytes: int
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def size_kb(self) -> float:
        """Get size in kilobytes."""
        return self.size_bytes / 1024

    def save_to_file(self, directory: Union[str, Path]) -> Path:
        """Write the content as ``directory/filename``.

        Returns:
            Path of the written file
        """
        path = Path(directory) / self.filename
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            f.write(self.content)

        logger.info(f"Serialized content saved to {path} ({self.size_kb:.1f} KB)")
        return path


def serialize_document(
    document: StoryDocument,
    anonymized: bool = False,
    now: Optional[datetime] = None,
) -> SerializationResult:
    """Pretty-print the document's raw mapping as JSON (indent 2).

    Args:
        document: Document to export, redacted or not
        anonymized: Whether ``document`` is a redacted view; only affects
                    the filename
        now: Timestamp for the filename, defaults to the current time
    """
    content = json.dumps(dict(document.raw), indent=2, ensure_ascii=False)
    return SerializationResult(
        content=content,
        filename=json_export_filename(anonymized, now),
        size_bytes=len(content.encode("utf-8")),
        metadata={"anonymized": anonymized, "items": len(document.items)},
    )
