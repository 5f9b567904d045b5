"""
Report Screen State Machine

The report screen is a strict state machine:

    (state, effects) = reduce_report(state, action)

- ReportState is immutable
- Actions are a closed set of small models
- reduce_report is pure: it decides WHAT should happen next and
  returns it as effects; ReportViewModel does the I/O

Effects:
    Observe(period_days)   (re)open the live report subscription
    Export(format, report) run one export task
    Share(report)          build the share summary
    Emit(event)            push a one-shot event onto the event queue

Results of I/O come back into the reducer as internal actions
(ReportLoaded, ReportFailed, ExportFinished), so every state change
goes through one function.

DESIGN DECISION: A failed load never clears the report on screen.
The last good report stays in state next to the error.
"""

import asyncio
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.log import get_logger
from expense_tracker.models.report import ExportFormat, ExportResult, ReportData
from expense_tracker.reports.builder import ReportBuilder
from expense_tracker.reports.formatter import ReportExporter
from expense_tracker.services.export.interface import DataAccessError
from expense_tracker.services.storage import StoreError, Subscription

logger = get_logger(__name__)

NO_REPORT_MESSAGE = "No report to export yet"

FORMAT_LABELS = {
    ExportFormat.CSV: "CSV",
    ExportFormat.TEXT: "PDF",
    ExportFormat.SHARE: "Share",
}


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# STATE
# =============================================================================

class ReportState(_Message):
    """Everything the report screen renders."""

    report: Optional[ReportData] = None
    is_loading: bool = False
    error: Optional[str] = None
    pending_exports: int = Field(default=0, ge=0)
    show_share_dialog: bool = False
    period_days: int = Field(default=7, ge=1)

    @property
    def is_exporting(self) -> bool:
        return self.pending_exports > 0


# =============================================================================
# ACTIONS
# =============================================================================

class LoadReport(_Message):
    pass


class ExportToPdf(_Message):
    """Export the printable document (plain text)."""


class ExportToCsv(_Message):
    pass


class ShareReport(_Message):
    pass


class DismissShareDialog(_Message):
    pass


class ChangePeriod(_Message):
    days: int


class Refresh(_Message):
    pass


# Internal: results of effects fed back into the reducer
class ReportLoaded(_Message):
    report: ReportData


class ReportFailed(_Message):
    message: str


class ExportFinished(_Message):
    result: ExportResult


ReportAction = Union[
    LoadReport,
    ExportToPdf,
    ExportToCsv,
    ShareReport,
    DismissShareDialog,
    ChangePeriod,
    Refresh,
    ReportLoaded,
    ReportFailed,
    ExportFinished,
]


# =============================================================================
# EVENTS
# =============================================================================

class ShowError(_Message):
    message: str


class ExportCompleted(_Message):
    file_name: str
    format: str
    locator: Optional[str] = None


class ShareContentReady(_Message):
    content: str
    subject: str


ReportEvent = Union[ShowError, ExportCompleted, ShareContentReady]


# =============================================================================
# EFFECTS
# =============================================================================

class Observe(_Message):
    period_days: int


class Export(_Message):
    format: ExportFormat
    report: ReportData


class Share(_Message):
    report: ReportData


class Emit(_Message):
    event: Union[ShowError, ExportCompleted, ShareContentReady]


ReportEffect = Union[Observe, Export, Share, Emit]


# =============================================================================
# REDUCER
# =============================================================================

def _start_export(state: ReportState, fmt: ExportFormat) -> tuple[ReportState, list]:
    if state.report is None:
        return state, [Emit(event=ShowError(message=NO_REPORT_MESSAGE))]
    return (
        state.model_copy(update={"pending_exports": state.pending_exports + 1}),
        [Export(format=fmt, report=state.report)],
    )


def reduce_report(
    state: ReportState,
    action: ReportAction,
) -> tuple[ReportState, list[ReportEffect]]:
    """
    Pure transition function for the report screen.

    Returns the new state and the effects to run, in order.
    """
    if isinstance(action, (LoadReport, Refresh)):
        return (
            state.model_copy(update={"is_loading": True, "error": None}),
            [Observe(period_days=state.period_days)],
        )

    if isinstance(action, ChangePeriod):
        if action.days < 1:
            return state, [Emit(event=ShowError(message="Report period must be at least 1 day"))]
        return (
            state.model_copy(update={
                "period_days": action.days,
                "is_loading": True,
                "error": None,
            }),
            [Observe(period_days=action.days)],
        )

    if isinstance(action, ExportToPdf):
        return _start_export(state, ExportFormat.TEXT)

    if isinstance(action, ExportToCsv):
        return _start_export(state, ExportFormat.CSV)

    if isinstance(action, ShareReport):
        if state.report is None:
            return state, []
        return (
            state.model_copy(update={"show_share_dialog": True}),
            [Share(report=state.report)],
        )

    if isinstance(action, DismissShareDialog):
        return state.model_copy(update={"show_share_dialog": False}), []

    if isinstance(action, ReportLoaded):
        return (
            state.model_copy(update={
                "report": action.report,
                "is_loading": False,
                "error": None,
            }),
            [],
        )

    if isinstance(action, ReportFailed):
        return (
            state.model_copy(update={"is_loading": False, "error": action.message}),
            [Emit(event=ShowError(message=action.message))],
        )

    if isinstance(action, ExportFinished):
        result = action.result
        new_state = state.model_copy(
            update={"pending_exports": max(state.pending_exports - 1, 0)}
        )
        if result.success:
            event = ExportCompleted(
                file_name=result.artifact_name or "",
                format=FORMAT_LABELS[result.format],
                locator=result.locator,
            )
        else:
            event = ShowError(message=result.error_message or "Export failed")
        return new_state, [Emit(event=event)]

    raise TypeError(f"Unknown report action: {type(action).__name__}")


# =============================================================================
# VIEW-MODEL
# =============================================================================

class ReportViewModel:
    """
    Runs the report state machine against a builder and an exporter.

    Lifecycle:
        vm = ReportViewModel(builder, exporter)
        await vm.start()                  open the live report
        await vm.dispatch(ExportToCsv())
        await vm.wait_for_exports()
        vm.close()                        cancel everything

    Or, scoped to one block (used by the Streamlit page on each rerun):
        async with vm.session():
            await vm.dispatch(ExportToCsv())

    A cancelled export still finishes with a failed ExportResult.

    One-shot events land on `vm.events` (an asyncio.Queue).
    """

    def __init__(
        self,
        builder: ReportBuilder,
        exporter: ReportExporter,
        period_days: int = 7,
    ):
        self._builder = builder
        self._exporter = exporter
        self._state = ReportState(period_days=period_days)
        self._subscription: Optional[Subscription] = None
        self._tasks: set[asyncio.Task] = set()
        self.events: asyncio.Queue = asyncio.Queue()

    @property
    def state(self) -> ReportState:
        return self._state

    @property
    def is_observing(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def start(self) -> None:
        """Open live observation for the current period."""
        await self.dispatch(LoadReport())

    def close(self) -> None:
        """Stop observing and cancel exports still running."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        for task in list(self._tasks):
            task.cancel()
        logger.debug("report_view_model_closed")

    async def aclose(self) -> None:
        """close(), then wait until every cancelled export has reported."""
        tasks = list(self._tasks)
        self.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @asynccontextmanager
    async def session(self) -> AsyncIterator["ReportViewModel"]:
        """
        Observe for the duration of one block.

        Starts the live report on entry; on exit waits for exports
        started inside the block, then detaches from the store.
        """
        await self.start()
        try:
            yield self
            await self.wait_for_exports()
        finally:
            await self.aclose()

    async def dispatch(self, action: ReportAction) -> None:
        """Apply an action and run the resulting effects."""
        logger.debug("report_action", action=type(action).__name__)
        for effect in self._transition(action):
            await self._run(effect)

    async def wait_for_exports(self) -> None:
        """Wait until every export started so far has finished."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def drain_events(self) -> list[ReportEvent]:
        """Take every pending event off the queue without waiting."""
        events = []
        while not self.events.empty():
            events.append(self.events.get_nowait())
        return events

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _transition(self, action: ReportAction) -> list[ReportEffect]:
        self._state, effects = reduce_report(self._state, action)
        # Emits are synchronous, run them right away
        remaining = []
        for effect in effects:
            if isinstance(effect, Emit):
                self.events.put_nowait(effect.event)
            else:
                remaining.append(effect)
        return remaining

    async def _run(self, effect: ReportEffect) -> None:
        if isinstance(effect, Observe):
            await self._observe(effect.period_days)
        elif isinstance(effect, Export):
            task = asyncio.create_task(self._export(effect.format, effect.report))
            self._tasks.add(task)
            task.add_done_callback(partial(self._export_done, effect.format))
        elif isinstance(effect, Share):
            share = self._exporter.formatter.share_content(effect.report)
            self.events.put_nowait(
                ShareContentReady(content=share.content, subject=share.subject)
            )

    async def _observe(self, period_days: int) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

        try:
            self._subscription = await self._builder.observe_report(
                period_days,
                self._on_report,
                self._on_error,
            )
        except (ValueError, StoreError) as e:
            self._on_error(DataAccessError(f"Failed to load report: {e}"))

    def _on_report(self, report: ReportData) -> None:
        self._transition(ReportLoaded(report=report))

    def _on_error(self, error: DataAccessError) -> None:
        self._transition(ReportFailed(message=str(error) or "Failed to load report"))

    async def _export(self, fmt: ExportFormat, report: ReportData) -> None:
        result = await self._exporter.export(fmt, report)
        self._transition(ExportFinished(result=result))

    def _export_done(self, fmt: ExportFormat, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            # A cancelled export still ends in exactly one outcome
            result = ExportResult(
                format=fmt,
                success=False,
                error_message=f"Failed to export {FORMAT_LABELS[fmt]}: cancelled",
            )
            self._transition(ExportFinished(result=result))
