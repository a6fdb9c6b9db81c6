"""Raster capture contract for the rendered process tree.

Rendering itself belongs to a view layer; this module only defines the
renderer protocol and the naming and error contract of the saved image.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from ..core.exceptions import create_export_error
from ..document.model import StoryDocument
from ..shaping.projection import Projection
from .serialization import capture_filename

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@runtime_checkable
class ProjectionRenderer(Protocol):
    """
    Protocol for view layers able to rasterize a projection.

    Implementations receive the visible projection and the document it was
    built from and return PNG-encoded bytes.
    """

    def render(self, projection: Projection, document: StoryDocument) -> bytes: ...


@dataclass
class CaptureResult:
    """Result of a capture operation."""

    path: Path
    size_bytes: int
    zoomed: bool
    anonymized: bool


def capture_projection(
    renderer: ProjectionRenderer,
    projection: Projection,
    document: StoryDocument,
    zoomed: bool,
    anonymized: bool,
    output_dir: Union[str, Path],
    now: Optional[datetime] = None,
) -> CaptureResult:
    """Render ``projection`` and save it as a timestamped PNG.

    Raises:
        ExportError: If the renderer fails, returns something other than PNG
            data, or the file cannot be written
    """
    filename = capture_filename(zoomed, anonymized, now)
    path = Path(output_dir) / filename

    try:
        image = renderer.render(projection, document)
    except Exception as e:
        raise create_export_error(
            f"Renderer failed: {e}", artifact="capture", original_error=e
        ) from e

    if not isinstance(image, (bytes, bytearray)) or not bytes(image).startswith(PNG_SIGNATURE):
        raise create_export_error(
            "Renderer did not return PNG data", artifact="capture", output_path=str(path)
        )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes(image))
    except OSError as e:
        raise create_export_error(
            f"Failed to write capture: {e}",
            artifact="capture",
            original_error=e,
            output_path=str(path),
        ) from e

    logger.info(f"Saved capture to {path} ({len(image)} bytes)")
    return CaptureResult(
        path=path, size_bytes=len(image), zoomed=zoomed, anonymized=anonymized
    )
