"""Export sink package."""

from expense_tracker.services.export.interface import (
    DataAccessError,
    ExportSinkInterface,
)
from expense_tracker.services.export.local_files import LocalExportSink

__all__ = [
    "DataAccessError",
    "ExportSinkInterface",
    "LocalExportSink",
]
