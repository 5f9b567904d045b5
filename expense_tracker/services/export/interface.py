"""
Export Sink Interface

Where finished report documents go. The report layer only produces
bytes, a file name and a MIME type; saving or sharing them is the
sink's job, and sink failures are reported as DataAccessError.
"""

from abc import ABC, abstractmethod


class ExportSinkInterface(ABC):
    """Abstract persistence/share target for exported reports."""

    @abstractmethod
    def save_blob(self, name: str, mime_type: str, data: bytes) -> str:
        """
        Save a named document.

        Args:
            name: File name to save under
            mime_type: MIME type of the document
            data: Document bytes

        Returns:
            Opaque locator of the saved document (e.g. a file path)

        Raises:
            DataAccessError: If the document could not be saved
        """
        pass

    @abstractmethod
    def share_text(self, content: str, subject: str) -> str:
        """
        Hand a plain-text summary to a share target.

        Returns:
            Opaque locator of the shared content

        Raises:
            DataAccessError: If sharing failed
        """
        pass


class DataAccessError(Exception):
    """I/O failure while reading report data or writing an export."""
    pass
