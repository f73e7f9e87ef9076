"""HTML export of the current document as a downloadable file."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import platformdirs

from .constants import EditorConstants
from .html_io import to_html
from .model import Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    mime_type: str
    content: str


def export_html(document: Document) -> ExportArtifact:
    """Build the `document.html` download for `document`."""
    return ExportArtifact(
        filename=EditorConstants.EXPORT_FILENAME,
        mime_type=EditorConstants.EXPORT_MIME_TYPE,
        content=to_html(document),
    )


def default_export_dir() -> Path:
    """The user's downloads directory."""
    return Path(platformdirs.user_downloads_dir())


def save_export(artifact: ExportArtifact, directory: Optional[str] = None) -> tuple[bool, str]:
    """Write an artifact into `directory` atomically.

    Args:
        artifact: The export to write.
        directory: Target directory; defaults to the user's downloads directory.

    Returns:
        Tuple of (success, path or error message).
    """
    target_dir = Path(directory) if directory else default_export_dir()
    target = target_dir / artifact.filename
    temp_filename = None
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        # Write to temp file first, then rename for atomicity
        with tempfile.NamedTemporaryFile(
            mode='w',
            encoding='utf-8',
            dir=str(target_dir),
            prefix='.' + artifact.filename,
            suffix=EditorConstants.EXPORT_TEMP_SUFFIX,
            delete=False,
        ) as temp_file:
            temp_filename = temp_file.name
            temp_file.write(artifact.content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_filename, target)
        logger.debug(f"Exported {artifact.filename} to {target}")
        return True, str(target)
    except OSError as e:
        logger.warning(f"Could not export to {target}: {e}")
        if temp_filename is not None:
            try:
                os.remove(temp_filename)
            except OSError:
                pass
        return False, f"Export error: {e}"
