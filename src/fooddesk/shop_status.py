"""Shop open/closed state shared by staff toggles and customer checkout."""

from __future__ import annotations

import logging
from typing import Callable

from .clock import Clock, SystemClock
from .models import ShopState
from .store import Store
from .utils import date_key

logger = logging.getLogger(__name__)


class ShopStatus:
    """Read/write access to the shop flag, backed by the main store.

    Reads always go to the store so checkout sees the latest value written by
    staff, never one cached when the session started.
    """

    def __init__(self, store: Store, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()
        self._subscribers: list[Callable[[ShopState], None]] = []

    def subscribe(self, callback: Callable[[ShopState], None]) -> Callable[[], None]:
        """Register a callback run whenever the flag or message changes."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, state: ShopState) -> None:
        for callback in list(self._subscribers):
            callback(state)

    def state(self) -> ShopState:
        return self.store.get_shop_state()

    def is_open(self) -> bool:
        return self.state().is_open

    def close_message(self) -> str:
        return self.state().close_message

    def open(self) -> ShopState:
        saved = self.store.update_shop_state({"isOpen": True})
        logger.info("Shop opened")
        self._notify(saved)
        return saved

    def close(self, message: str | None = None) -> ShopState:
        """Close the shop, replacing the closure message when one is given."""
        updates: dict[str, object] = {"isOpen": False}
        if message is not None and message.strip():
            updates["closeMessage"] = message.strip()
        saved = self.store.update_shop_state(updates)
        logger.info("Shop closed: %s", saved.close_message)
        self._notify(saved)
        return saved

    def set_open(self, is_open: bool, message: str | None = None) -> ShopState:
        return self.open() if is_open else self.close(message)

    def closure_notice(self, shown_on: str | None = None) -> tuple[str | None, str | None]:
        """
        The closure message to show one customer, at most once per calendar day.

        The "already shown" marker is per customer: callers pass in the one
        they hold and keep the one returned.

        Args:
            shown_on: Date key of the day this customer last saw the notice.

        Returns:
            (message, shown_on): the message is None when the shop is open or
            the notice was already shown today; shown_on is the marker the
            caller should keep.
        """
        state = self.state()
        if state.is_open:
            return None, shown_on

        today = date_key(self.clock.today())
        if shown_on == today:
            return None, shown_on
        return state.close_message, today
