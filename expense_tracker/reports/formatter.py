"""
Report Formatting and Export

ReportFormatter renders a ReportData into documents:
- CSV (one row per expense, header Date,Title,Category,Amount)
- a plain-text report document
- a plain-text share summary

ReportExporter runs those renderings as async tasks and hands the
bytes to an export sink. Every call ends in exactly one ExportResult,
success or failure; it never raises and never retries.
"""

import asyncio
import csv
import io
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Callable, Optional

from expense_tracker.config.settings import resolve_timezone
from expense_tracker.log import get_logger
from expense_tracker.models.expense import to_epoch_ms
from expense_tracker.models.report import (
    ExportFormat,
    ExportResult,
    ReportData,
    ShareContent,
)
from expense_tracker.services.export.interface import ExportSinkInterface

logger = get_logger(__name__)

CSV_HEADER = ["Date", "Title", "Category", "Amount"]

CSV_MIME_TYPE = "text/csv"
TEXT_MIME_TYPE = "text/plain"


class ReportFormatter:
    """Pure renderers for report documents."""

    def __init__(self, currency_symbol: str = "₹", tz: Optional[tzinfo] = None):
        self.currency_symbol = currency_symbol
        self._tz = tz or resolve_timezone()

    def money(self, amount: Decimal) -> str:
        """Amount with currency symbol and thousands separators."""
        return f"{self.currency_symbol}{amount:,.2f}"

    def format_csv(self, report: ReportData) -> bytes:
        """
        One CSV row per expense in the report snapshot, oldest first.

        Dates are local ISO calendar dates; amounts are plain decimal
        text with no symbol or separators.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)

        for record in sorted(report.expenses, key=lambda r: r.timestamp_ms):
            writer.writerow([
                record.date.astimezone(self._tz).date().isoformat(),
                record.title,
                record.category or "",
                format(record.amount, "f"),
            ])

        return buffer.getvalue().encode("utf-8")

    def format_text_report(self, report: ReportData) -> bytes:
        """Printable text document (the app's PDF substitute)."""
        lines = [
            "Expense Report",
            "-----------------",
            f"Period: {report.report_period}",
            f"Total Amount: {self.money(report.total_amount)}",
            f"Total Expenses: {report.total_expenses}",
            f"Generated: {report.generated_at.isoformat(timespec='seconds')}",
            "",
            "Daily Totals",
        ]
        for daily in report.daily_totals:
            lines.append(
                f"  {daily.date.isoformat()}  {self.money(daily.total_amount):>14}"
                f"  ({daily.expense_count})"
            )

        lines.append("")
        lines.append("Category Totals")
        if not report.category_totals:
            lines.append("  No expenses in this period")
        for category in report.category_totals:
            lines.append(
                f"  {category.category:<20} {self.money(category.total_amount):>14}"
                f"  {category.percentage:5.1f}%"
            )

        return ("\n".join(lines) + "\n").encode("utf-8")

    def format_share_summary(self, report: ReportData) -> str:
        """Multi-line digest for messaging apps, same order as the report."""
        lines = [
            "📊 Expense Report",
            "================",
            f"Period: {report.report_period}",
            f"Total Amount: {self.currency_symbol}{report.total_amount:.2f}",
            f"Total Expenses: {report.total_expenses}",
            "",
            "📅 Daily Summary:",
        ]
        for daily in report.daily_totals:
            lines.append(
                f"{daily.date.isoformat()}: {self.currency_symbol}{daily.total_amount:.2f}"
                f" ({daily.expense_count} expenses)"
            )

        lines.append("")
        lines.append("📂 Category Summary:")
        for category in report.category_totals:
            lines.append(
                f"{category.category}: {self.currency_symbol}{category.total_amount:.2f}"
                f" ({category.percentage:.1f}%)"
            )

        return "\n".join(lines) + "\n"

    def share_subject(self, report: ReportData) -> str:
        return f"Expense Report - {report.report_period}"

    def share_content(self, report: ReportData) -> ShareContent:
        return ShareContent(
            content=self.format_share_summary(report),
            subject=self.share_subject(report),
        )


class ReportExporter:
    """
    Runs exports as async tasks against an export sink.

    Formatting is pure and fast; the sink write runs in a worker
    thread so the event loop (and any live report) keeps going.
    """

    def __init__(
        self,
        formatter: ReportFormatter,
        sink: ExportSinkInterface,
        delay_seconds: float = 0.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._formatter = formatter
        self._sink = sink
        self._delay_seconds = delay_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def formatter(self) -> ReportFormatter:
        return self._formatter

    def _artifact_name(self, extension: str) -> str:
        return f"expense_report_{to_epoch_ms(self._clock())}.{extension}"

    async def export(self, fmt: ExportFormat, report: ReportData) -> ExportResult:
        """Dispatch to the exporter for fmt."""
        if fmt == ExportFormat.CSV:
            return await self.export_csv(report)
        elif fmt == ExportFormat.TEXT:
            return await self.export_text_report(report)
        else:
            return await self.share_report(report)

    async def export_csv(self, report: ReportData) -> ExportResult:
        """Save the report as CSV."""
        return await self._save(
            ExportFormat.CSV,
            "CSV",
            lambda: (
                self._artifact_name("csv"),
                CSV_MIME_TYPE,
                self._formatter.format_csv(report),
            ),
        )

    async def export_text_report(self, report: ReportData) -> ExportResult:
        """Save the report as a plain-text document."""
        return await self._save(
            ExportFormat.TEXT,
            "PDF",
            lambda: (
                self._artifact_name("txt"),
                TEXT_MIME_TYPE,
                self._formatter.format_text_report(report),
            ),
        )

    async def share_report(self, report: ReportData) -> ExportResult:
        """Hand the share summary to the sink's share target."""
        try:
            if self._delay_seconds:
                await asyncio.sleep(self._delay_seconds)
            share = self._formatter.share_content(report)
            locator = await asyncio.to_thread(
                self._sink.share_text, share.content, share.subject
            )
        except Exception as e:
            logger.error("report_share_failed", error=str(e))
            return ExportResult(
                format=ExportFormat.SHARE,
                success=False,
                error_message=f"Failed to share report: {e}",
            )

        logger.info("report_shared", locator=locator)
        return ExportResult(
            format=ExportFormat.SHARE,
            success=True,
            artifact_name=share.subject,
            locator=locator,
            mime_type=TEXT_MIME_TYPE,
        )

    async def _save(
        self,
        fmt: ExportFormat,
        label: str,
        render: Callable[[], tuple[str, str, bytes]],
    ) -> ExportResult:
        try:
            if self._delay_seconds:
                await asyncio.sleep(self._delay_seconds)
            name, mime_type, data = render()
            locator = await asyncio.to_thread(self._sink.save_blob, name, mime_type, data)
        except Exception as e:
            logger.error("report_export_failed", format=fmt.value, error=str(e))
            return ExportResult(
                format=fmt,
                success=False,
                error_message=f"Failed to export {label}: {e}",
            )

        logger.info(
            "report_exported",
            format=fmt.value,
            artifact_name=name,
            size_bytes=len(data),
        )
        return ExportResult(
            format=fmt,
            success=True,
            artifact_name=name,
            locator=locator,
            mime_type=mime_type,
        )
