"""
Application Wiring for Expense Tracker

This module ties the components together:

    store ──► ReportBuilder ──► ReportViewModel ◄── ReportExporter ──► sink
      │
      ├──► ExpenseValidator ──► ExpenseEntryViewModel
      └──► ExpenseListViewModel

DESIGN DECISION: Everything is passed in through constructors.
There is no global registry; create_app_components() is the one
place that decides which store and sink the app runs on, and tests
call it with their own.
"""

from datetime import tzinfo
from typing import Optional

from expense_tracker.config import Settings, get_settings, resolve_timezone
from expense_tracker.log import configure_logging, get_logger
from expense_tracker.reports import ReportBuilder, ReportExporter, ReportFormatter
from expense_tracker.services.export import ExportSinkInterface, LocalExportSink
from expense_tracker.services.storage import (
    ExpenseStoreInterface,
    InMemoryExpenseStore,
    SQLiteExpenseStore,
)
from expense_tracker.validation import ExpenseValidator
from expense_tracker.viewmodels import (
    ExpenseEntryViewModel,
    ExpenseListViewModel,
    ReportViewModel,
)

logger = get_logger(__name__)


def create_store(settings: Settings) -> ExpenseStoreInterface:
    """
    Build the record store selected by STORAGE_BACKEND.

    Google Sheets support is imported only when selected, so the
    default install never needs Sheets credentials.
    """
    backend = settings.storage.backend

    if backend == "memory":
        return InMemoryExpenseStore()

    if backend == "sheets":
        from expense_tracker.services.storage.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsExpenseStore,
        )
        return GoogleSheetsExpenseStore(GoogleSheetsClient(settings.google_sheets))

    return SQLiteExpenseStore(settings.storage.sqlite_path)


class AppComponents:
    """
    Everything the UI needs, built once per process.

    View-models hold per-screen state, so they are created through
    the factory methods rather than shared.
    """

    def __init__(
        self,
        settings: Settings,
        store: ExpenseStoreInterface,
        sink: ExportSinkInterface,
        tz: tzinfo,
    ):
        report_settings = settings.report
        app_settings = settings.app

        self.settings = settings
        self.store = store
        self.sink = sink
        self.tz = tz

        self.builder = ReportBuilder(store, tz=tz)
        self.formatter = ReportFormatter(report_settings.currency_symbol, tz=tz)
        self.exporter = ReportExporter(
            self.formatter,
            sink,
            delay_seconds=report_settings.export_delay_seconds,
        )
        self.validator = ExpenseValidator(store, app_settings.notes_max_length)

        self._default_period_days = report_settings.default_period_days
        self._default_category = app_settings.default_category
        self._notes_max_length = app_settings.notes_max_length

    def entry_view_model(self) -> ExpenseEntryViewModel:
        return ExpenseEntryViewModel(
            self.store,
            self.validator,
            default_category=self._default_category,
            notes_max_length=self._notes_max_length,
        )

    def list_view_model(self) -> ExpenseListViewModel:
        return ExpenseListViewModel(self.store, tz=self.tz)

    def report_view_model(self, period_days: Optional[int] = None) -> ReportViewModel:
        return ReportViewModel(
            self.builder,
            self.exporter,
            period_days=period_days or self._default_period_days,
        )


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[ExpenseStoreInterface] = None,
    sink: Optional[ExportSinkInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Record store override (defaults to the configured backend)
        sink: Export sink override (defaults to LocalExportSink)

    Returns:
        AppComponents
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    report_settings = settings.report
    if store is None:
        store = create_store(settings)
    if sink is None:
        sink = LocalExportSink(report_settings.export_dir)
    tz = resolve_timezone(report_settings.timezone)

    logger.info(
        "app_components_created",
        store=type(store).__name__,
        sink=type(sink).__name__,
        timezone=str(tz),
    )
    return AppComponents(settings, store, sink, tz)
