"""
Local Directory Export Sink

Writes exported documents into a directory on disk (the desktop
counterpart of a phone's Downloads folder). Shared summaries are
written as text files whose first line is the subject.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from expense_tracker.log import get_logger
from expense_tracker.services.export.interface import (
    DataAccessError,
    ExportSinkInterface,
)

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalExportSink(ExportSinkInterface):
    """Export sink backed by a local directory."""

    def __init__(self, directory: str = "exports"):
        self._directory = Path(directory)
        # Most recent share, for UIs that show it instead of opening a share sheet
        self.last_shared: Optional[tuple[str, str]] = None

    @property
    def directory(self) -> Path:
        return self._directory

    def save_blob(self, name: str, mime_type: str, data: bytes) -> str:
        safe_name = _UNSAFE_CHARS.sub("_", Path(name).name)
        if not safe_name.strip("._"):
            raise DataAccessError(f"Invalid export file name: {name!r}")

        target = self._directory / safe_name
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise DataAccessError(f"Failed to create file: {e}")

        logger.info(
            "export_saved",
            path=str(target),
            mime_type=mime_type,
            size_bytes=len(data),
        )
        return str(target)

    def share_text(self, content: str, subject: str) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        locator = self.save_blob(
            f"shared_{stamp}.txt",
            "text/plain",
            f"{subject}\n\n{content}".encode("utf-8"),
        )
        self.last_shared = (subject, content)
        return locator
