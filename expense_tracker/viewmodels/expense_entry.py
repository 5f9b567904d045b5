"""
Expense Entry View-Model

State for the "add expense" form, driven by actions:

    state = reduce_entry(state, action)     pure, no I/O
    await view_model.dispatch(action)       reduce + side effects

Side effects (duplicate lookups, the insert) live in the view-model.
One-shot outcomes go to the `events` queue, never into state.

DESIGN DECISION: The entry keeps ONE timestamp from the moment the
form opens (or the user picks a date). The duplicate check and the
stored record both use it, so "duplicate" means same title and
category at exactly that instant.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.log import get_logger
from expense_tracker.models.expense import ExpenseRecord, from_epoch_ms, to_epoch_ms
from expense_tracker.services.storage import ExpenseStoreInterface, StoreError
from expense_tracker.validation import (
    ExpenseValidationError,
    ExpenseValidator,
    sanitize_amount_input,
)

logger = get_logger(__name__)

SAVED_MESSAGE = "Expense added successfully"


# =============================================================================
# STATE
# =============================================================================

class ExpenseEntryState(BaseModel):
    """Immutable snapshot of the entry form."""
    model_config = ConfigDict(frozen=True)

    title: str = ""
    amount: str = ""
    category: str = "Staff"
    notes: str = ""
    receipt_uri: Optional[str] = None
    timestamp_ms: int = Field(
        default_factory=lambda: to_epoch_ms(datetime.now().astimezone()),
        description="When the expense happened, epoch milliseconds"
    )
    is_duplicate: bool = False
    is_saving: bool = False


# =============================================================================
# ACTIONS
# =============================================================================

class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)


class TitleChanged(_Message):
    value: str


class AmountChanged(_Message):
    value: str


class CategoryChanged(_Message):
    value: str


class NotesChanged(_Message):
    value: str


class ReceiptPicked(_Message):
    uri: Optional[str] = None


class DateChanged(_Message):
    timestamp_ms: int


class Submit(_Message):
    pass


EntryAction = Union[
    TitleChanged,
    AmountChanged,
    CategoryChanged,
    NotesChanged,
    ReceiptPicked,
    DateChanged,
    Submit,
]


# =============================================================================
# EVENTS
# =============================================================================

class ShowToast(_Message):
    message: str


class ExpenseSaved(_Message):
    record: ExpenseRecord


EntryEvent = Union[ShowToast, ExpenseSaved]


# =============================================================================
# REDUCER
# =============================================================================

def reduce_entry(
    state: ExpenseEntryState,
    action: EntryAction,
    notes_max_length: int = 100,
) -> ExpenseEntryState:
    """
    Apply one action to the form state.

    Rejected keystrokes (non-numeric amount text, notes over the cap)
    leave the state unchanged.
    """
    if isinstance(action, TitleChanged):
        return state.model_copy(update={"title": action.value})

    if isinstance(action, AmountChanged):
        if sanitize_amount_input(action.value) is None:
            return state
        return state.model_copy(update={"amount": action.value})

    if isinstance(action, CategoryChanged):
        return state.model_copy(update={"category": action.value})

    if isinstance(action, NotesChanged):
        if len(action.value) > notes_max_length:
            return state
        return state.model_copy(update={"notes": action.value})

    if isinstance(action, ReceiptPicked):
        return state.model_copy(update={"receipt_uri": action.uri})

    if isinstance(action, DateChanged):
        return state.model_copy(update={"timestamp_ms": action.timestamp_ms})

    # Submit has no pure state change; the view-model runs it
    return state


# =============================================================================
# VIEW-MODEL
# =============================================================================

class ExpenseEntryViewModel:
    """
    Runs the entry form against a record store.

    Usage:
        vm = ExpenseEntryViewModel(store, validator)
        await vm.dispatch(TitleChanged(value="Lunch"))
        await vm.dispatch(AmountChanged(value="250"))
        record = await vm.dispatch(Submit())
    """

    def __init__(
        self,
        store: ExpenseStoreInterface,
        validator: Optional[ExpenseValidator] = None,
        default_category: str = "Staff",
        notes_max_length: int = 100,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._validator = validator or ExpenseValidator(store, notes_max_length)
        self._default_category = default_category
        self._notes_max_length = notes_max_length
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._state = self._fresh_state()
        self.events: asyncio.Queue = asyncio.Queue()

    @property
    def state(self) -> ExpenseEntryState:
        return self._state

    def _fresh_state(self) -> ExpenseEntryState:
        return ExpenseEntryState(
            category=self._default_category,
            timestamp_ms=to_epoch_ms(self._clock()),
        )

    def drain_events(self) -> list[EntryEvent]:
        """Take every pending event off the queue without waiting."""
        events = []
        while not self.events.empty():
            events.append(self.events.get_nowait())
        return events

    async def dispatch(self, action: EntryAction) -> Optional[ExpenseRecord]:
        """
        Apply an action and run its side effects.

        Returns the saved record for a successful Submit, else None.
        """
        previous = self._state
        self._state = reduce_entry(previous, action, self._notes_max_length)

        if isinstance(action, Submit):
            return await self._submit()

        if (
            self._state.title != previous.title
            or self._state.category != previous.category
            or self._state.timestamp_ms != previous.timestamp_ms
        ):
            await self._refresh_duplicate()
        return None

    async def _refresh_duplicate(self) -> None:
        state = self._state
        if not state.title.strip():
            self._state = state.model_copy(update={"is_duplicate": False})
            return

        try:
            count = await self._store.count_duplicates(
                state.timestamp_ms, state.title.strip(), state.category
            )
        except StoreError as e:
            logger.warning("duplicate_refresh_failed", error=str(e))
            return

        # Only apply if the form hasn't moved on while we were querying
        if self._state.title == state.title and self._state.category == state.category:
            self._state = self._state.model_copy(update={"is_duplicate": count > 0})

    async def _submit(self) -> Optional[ExpenseRecord]:
        state = self._state
        try:
            amount = await self._validator.require_valid(
                title=state.title,
                amount=state.amount,
                category=state.category,
                notes=state.notes,
                timestamp_ms=state.timestamp_ms,
            )
        except ExpenseValidationError as e:
            self._state = state.model_copy(
                update={"is_duplicate": any(i.issue_type == "duplicate" for i in e.result.issues)}
            )
            logger.info("expense_rejected", reason=str(e))
            self.events.put_nowait(ShowToast(message=str(e)))
            return None

        record = ExpenseRecord(
            title=state.title.strip(),
            amount=amount,
            category=state.category,
            notes=state.notes if state.notes.strip() else None,
            receipt_uri=state.receipt_uri,
            date=from_epoch_ms(state.timestamp_ms).astimezone(),
        )

        self._state = state.model_copy(update={"is_saving": True})
        try:
            await self._store.insert_expense(record)
        except StoreError as e:
            self._state = state
            logger.error("expense_save_failed", error=str(e))
            self.events.put_nowait(ShowToast(message=f"Failed to save expense: {e}"))
            return None

        self._state = self._fresh_state()
        self.events.put_nowait(ShowToast(message=SAVED_MESSAGE))
        self.events.put_nowait(ExpenseSaved(record=record))
        return record
