"""
Live Query Subscriptions

A Subscription re-runs one query whenever the store reports a
committed write and hands the result to a listener. It stays open
until cancelled or until its query fails; a failure is delivered
once to the error listener and ends the subscription.
"""

from typing import Any, Awaitable, Callable, Optional

from expense_tracker.log import get_logger

Listener = Callable[[Any], None]
ErrorListener = Callable[[Exception], None]

logger = get_logger(__name__)


class Subscription:
    """
    Handle for one live query.

    cancel() takes effect immediately: a refresh already awaiting its
    query drops the result instead of emitting it.
    """

    def __init__(
        self,
        name: str,
        query: Callable[[], Awaitable[Any]],
        on_change: Listener,
        on_error: Optional[ErrorListener] = None,
        on_cancel: Optional[Callable[["Subscription"], None]] = None,
    ):
        self.name = name
        self._query = query
        self._on_change = on_change
        self._on_error = on_error
        self._on_cancel = on_cancel
        self._active = True
        self.emissions = 0

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop emitting and detach from the store. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)
            self._on_cancel = None
        logger.debug("subscription_cancelled", subscription=self.name)

    async def refresh(self) -> None:
        """Re-run the query and emit the result if still active."""
        if not self._active:
            return

        try:
            value = await self._query()
        except Exception as e:
            if not self._active:
                return
            # Terminal: detach first so the error is the last signal
            self.cancel()
            logger.warning(
                "subscription_failed",
                subscription=self.name,
                error=str(e),
            )
            if self._on_error is not None:
                self._on_error(e)
            return

        if not self._active:
            return

        self.emissions += 1
        self._on_change(value)

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"<Subscription {self.name} {state} emissions={self.emissions}>"
