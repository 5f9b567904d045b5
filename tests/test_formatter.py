"""Tests for report formatting, export and the local export sink."""

import pytest
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path

from expense_tracker.models import ExportFormat
from expense_tracker.reports import CSV_HEADER, ReportExporter, ReportFormatter, compute_report
from expense_tracker.services.export import DataAccessError, LocalExportSink

from conftest import UTC, RecordingSink, make_expense

JAN_1 = date(2025, 1, 1)
JAN_2 = date(2025, 1, 2)
JAN_3 = date(2025, 1, 3)
GENERATED = datetime(2025, 1, 3, 18, 0, tzinfo=UTC)


@pytest.fixture
def formatter() -> ReportFormatter:
    return ReportFormatter(currency_symbol="₹", tz=UTC)


@pytest.fixture
def report():
    records = [
        make_expense(JAN_2, "50", "Food", title="Dinner"),
        make_expense(JAN_1, "100", "Food", title="Groceries"),
        make_expense(JAN_2, "25", "Travel", title="Bus"),
    ]
    return compute_report(
        records, JAN_1, JAN_3, "Last 3 days (2025-01-01 to 2025-01-03)",
        tz=UTC, generated_at=GENERATED,
    )


def fixed_now():
    return datetime(2025, 1, 3, 18, 0, tzinfo=UTC)


class TestCsv:
    """CSV export format."""

    def test_two_records_give_three_lines(self, formatter):
        """Test header plus one line per record."""
        records = [
            make_expense(JAN_1, "100", "Food", title="Groceries"),
            make_expense(JAN_2, "25.5", "Travel", title="Bus"),
        ]
        report = compute_report(records, JAN_1, JAN_2, "x", tz=UTC)

        lines = formatter.format_csv(report).decode("utf-8").splitlines()
        assert len(lines) == 3
        assert lines[0] == "Date,Title,Category,Amount"
        assert lines[1] == "2025-01-01,Groceries,Food,100"
        assert lines[2] == "2025-01-02,Bus,Travel,25.5"

    def test_rows_oldest_first(self, formatter, report):
        """Test timestamp-ascending row order."""
        lines = formatter.format_csv(report).decode("utf-8").splitlines()
        assert [line.split(",")[1] for line in lines[1:]] == ["Groceries", "Dinner", "Bus"]

    def test_quoting_and_blank_category(self, formatter):
        """Test RFC 4180 quoting and an empty category cell."""
        records = [make_expense(JAN_1, "10", None, title='Pens, "blue"')]
        report = compute_report(records, JAN_1, JAN_1, "x", tz=UTC)

        data = formatter.format_csv(report)
        assert data.endswith(b"\n")
        assert data.decode("utf-8").splitlines()[1] == '2025-01-01,"Pens, ""blue""",,10'

    def test_header_constant(self):
        """Test the literal field order."""
        assert CSV_HEADER == ["Date", "Title", "Category", "Amount"]


class TestTextDocuments:
    """Text report and share summary."""

    def test_text_report(self, formatter, report):
        """Test the printable document layout."""
        text = formatter.format_text_report(report).decode("utf-8")
        lines = text.splitlines()

        assert lines[0] == "Expense Report"
        assert lines[2] == "Period: Last 3 days (2025-01-01 to 2025-01-03)"
        assert lines[3] == "Total Amount: ₹175.00"
        assert lines[4] == "Total Expenses: 3"
        assert lines[5].startswith("Generated: 2025-01-03T18:00:00")
        assert "Daily Totals" in lines
        assert "Category Totals" in lines

    def test_money_has_thousands_separator(self, formatter):
        """Test currency formatting."""
        assert formatter.money(Decimal("1234.5")) == "₹1,234.50"

    def test_share_summary(self, formatter, report):
        """Test the share digest, in report order."""
        summary = formatter.format_share_summary(report)
        lines = summary.splitlines()

        assert lines[:5] == [
            "📊 Expense Report",
            "================",
            "Period: Last 3 days (2025-01-01 to 2025-01-03)",
            "Total Amount: ₹175.00",
            "Total Expenses: 3",
        ]
        assert "2025-01-01: ₹100.00 (1 expenses)" in lines
        assert "2025-01-02: ₹75.00 (2 expenses)" in lines
        assert "2025-01-03: ₹0.00 (0 expenses)" in lines
        assert "Food: ₹150.00 (85.7%)" in lines
        assert "Travel: ₹25.00 (14.3%)" in lines
        assert lines.index("Food: ₹150.00 (85.7%)") < lines.index("Travel: ₹25.00 (14.3%)")

    def test_share_subject(self, formatter, report):
        """Test the share subject line."""
        assert formatter.share_subject(report) == (
            "Expense Report - Last 3 days (2025-01-01 to 2025-01-03)"
        )


class TestReportExporter:
    """Async export outcomes."""

    @pytest.mark.asyncio
    async def test_export_csv_success(self, formatter, report, sink):
        """Test a successful CSV export."""
        exporter = ReportExporter(formatter, sink, clock=fixed_now)
        result = await exporter.export_csv(report)

        assert result.success is True
        assert result.format == ExportFormat.CSV
        assert result.artifact_name == "expense_report_1735927200000.csv"
        assert result.mime_type == "text/csv"
        assert result.error_message is None
        mime_type, data = sink.blobs[result.artifact_name]
        assert mime_type == "text/csv"
        assert data.decode("utf-8").splitlines()[0] == "Date,Title,Category,Amount"

    @pytest.mark.asyncio
    async def test_export_text_success(self, formatter, report, sink):
        """Test a successful text document export."""
        exporter = ReportExporter(formatter, sink, clock=fixed_now)
        result = await exporter.export(ExportFormat.TEXT, report)

        assert result.success is True
        assert result.artifact_name == "expense_report_1735927200000.txt"
        assert result.mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_sink_failure_becomes_failed_result(self, formatter, report):
        """Test exactly one failure outcome with a readable message."""
        sink = RecordingSink(fail_with=DataAccessError("Failed to create file: disk full"))
        exporter = ReportExporter(formatter, sink)

        csv_result = await exporter.export_csv(report)
        text_result = await exporter.export_text_report(report)
        share_result = await exporter.share_report(report)

        assert csv_result.success is False
        assert csv_result.artifact_name is None
        assert csv_result.error_message == "Failed to export CSV: Failed to create file: disk full"
        assert text_result.error_message.startswith("Failed to export PDF: ")
        assert share_result.error_message.startswith("Failed to share report: ")

    @pytest.mark.asyncio
    async def test_unexpected_error_also_reported(self, formatter, report):
        """Test that any exception becomes a failure result."""
        exporter = ReportExporter(formatter, RecordingSink(fail_with=RuntimeError("boom")))
        result = await exporter.export_csv(report)
        assert result.success is False
        assert "boom" in result.error_message

    @pytest.mark.asyncio
    async def test_share_report(self, formatter, report, sink):
        """Test sharing hands subject and summary to the sink."""
        exporter = ReportExporter(formatter, sink)
        result = await exporter.share_report(report)

        assert result.success is True
        subject, content = sink.shared[0]
        assert subject == formatter.share_subject(report)
        assert content == formatter.format_share_summary(report)


class TestLocalExportSink:
    """Directory-backed sink."""

    def test_save_blob(self, tmp_path):
        """Test that the document lands in the export directory."""
        sink = LocalExportSink(str(tmp_path / "exports"))
        locator = sink.save_blob("report.csv", "text/csv", b"Date\n")

        assert Path(locator) == tmp_path / "exports" / "report.csv"
        assert Path(locator).read_bytes() == b"Date\n"

    def test_name_is_sanitized(self, tmp_path):
        """Test that path components and odd characters are stripped."""
        sink = LocalExportSink(str(tmp_path))
        locator = sink.save_blob("../../etc/my report?.txt", "text/plain", b"x")
        assert Path(locator).parent == tmp_path
        assert Path(locator).name == "my_report_.txt"

    def test_write_failure(self, tmp_path):
        """Test that OS errors become DataAccessError."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file")
        sink = LocalExportSink(str(blocker))

        with pytest.raises(DataAccessError) as exc_info:
            sink.save_blob("report.csv", "text/csv", b"x")
        assert str(exc_info.value).startswith("Failed to create file:")

    def test_share_text(self, tmp_path):
        """Test that shares are written with the subject first."""
        sink = LocalExportSink(str(tmp_path))
        locator = sink.share_text("body", "Expense Report - Last 7 days")

        assert Path(locator).read_text(encoding="utf-8").splitlines()[0] == (
            "Expense Report - Last 7 days"
        )
        assert sink.last_shared == ("Expense Report - Last 7 days", "body")
