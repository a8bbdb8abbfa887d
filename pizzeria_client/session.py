from __future__ import annotations

# Order session state.
#
# This is the pure-logic half of the client (the MQTT half is `client.py`),
# so it can be unit tested without a broker.
#
# Threading:
# - paho-mqtt delivers messages on its own network thread
# - the CLI / GUI read state from the main thread
# All fields are guarded by one Condition. Readers get an immutable
# `SessionSnapshot`; `wait_for()` lets a reader block until the state matches.

import threading
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from .models import AWAITING_ACCEPTANCE, MenuItem, OrderLine, OrderPhase

DELIVERED_TEMPLATE = "Number of pizzas delivered: {count}"


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time copy of the session, safe to read from any thread."""

    menu: tuple[MenuItem, ...] = ()
    order_id: str | None = None
    lines: tuple[OrderLine, ...] = ()
    status: str = AWAITING_ACCEPTANCE
    phase: OrderPhase = OrderPhase.NONE

    @property
    def order_active(self) -> bool:
        return self.phase.in_progress

    @property
    def order_delivered(self) -> bool:
        return self.phase is OrderPhase.DELIVERED

    @property
    def order_cancelled(self) -> bool:
        return self.phase is OrderPhase.CANCELLED

    @property
    def has_order(self) -> bool:
        return self.phase is not OrderPhase.NONE


class OrderSession:
    """Menu + single-order lifecycle.

    NONE -> PENDING (start_order) -> UPDATED* -> DELIVERED | CANCELLED -> NONE (confirm_*)
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._menu: tuple[MenuItem, ...] = ()
        self._order_id: str | None = None
        self._lines: tuple[OrderLine, ...] = ()
        self._status: str = AWAITING_ACCEPTANCE
        self._phase: OrderPhase = OrderPhase.NONE

    # -------------------- reads --------------------

    def snapshot(self) -> SessionSnapshot:
        with self._cond:
            return self._snapshot_locked()

    @property
    def order_id(self) -> str | None:
        with self._cond:
            return self._order_id

    def wait_for(self, predicate: Callable[[SessionSnapshot], bool], timeout: float) -> SessionSnapshot:
        """Block until `predicate(snapshot)` holds.

        Raises:
            TimeoutError: the predicate did not hold within `timeout` seconds.
        """
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                snap = self._snapshot_locked()
                if predicate(snap):
                    return snap
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(f"session did not reach the expected state within {timeout}s")
                self._cond.wait(remaining)

    # -------------------- menu --------------------

    def replace_menu(self, items: Sequence[MenuItem]) -> None:
        with self._cond:
            self._menu = tuple(items)
            self._cond.notify_all()

    # -------------------- order lifecycle --------------------

    def start_order(self, order_id: str, lines: Sequence[OrderLine]) -> None:
        """Make `order_id` the current order, replacing any previous one."""
        with self._cond:
            self._order_id = order_id
            self._lines = tuple(lines)
            self._status = AWAITING_ACCEPTANCE
            self._phase = OrderPhase.PENDING
            self._cond.notify_all()

    def apply_status(self, order_id: str, text: str) -> bool:
        """Store a status update. Ignored unless the order is still in progress."""
        with self._cond:
            if not self._is_current(order_id) or not self._phase.in_progress:
                return False
            self._status = text
            self._phase = OrderPhase.UPDATED
            self._cond.notify_all()
            return True

    def apply_delivery(self, order_id: str, count: str) -> bool:
        with self._cond:
            if not self._is_current(order_id) or not self._phase.in_progress:
                return False
            self._status = DELIVERED_TEMPLATE.format(count=count)
            self._phase = OrderPhase.DELIVERED
            self._cond.notify_all()
            return True

    def apply_cancellation(self, order_id: str, reason: str) -> bool:
        """Mark the order cancelled and forget its id.

        The customer can place a new order right away; the cancelled phase
        stays until `confirm_cancellation()`.
        """
        with self._cond:
            if not self._is_current(order_id) or not self._phase.in_progress:
                return False
            self._status = reason
            self._phase = OrderPhase.CANCELLED
            self._order_id = None
            self._cond.notify_all()
            return True

    def confirm_delivery(self) -> str | None:
        """Close the current order. Returns the id that was cleared, if any."""
        with self._cond:
            if self._phase is OrderPhase.CANCELLED:
                return None
            cleared = self._order_id
            self._reset_order_locked()
            return cleared

    def rollback_order(self, order_id: str, previous: SessionSnapshot) -> bool:
        """Undo `start_order(order_id, ...)` for an order that was never sent.

        The order state from `previous` comes back; the menu is left alone.
        """
        with self._cond:
            if not self._is_current(order_id):
                return False
            self._order_id = previous.order_id
            self._lines = previous.lines
            self._status = previous.status
            self._phase = previous.phase
            self._cond.notify_all()
            return True

    def confirm_cancellation(self) -> bool:
        with self._cond:
            if self._phase is not OrderPhase.CANCELLED:
                return False
            self._reset_order_locked()
            return True

    # -------------------- internals --------------------

    def _is_current(self, order_id: str) -> bool:
        return self._order_id is not None and self._order_id == order_id

    def _reset_order_locked(self) -> None:
        self._order_id = None
        self._lines = ()
        self._status = AWAITING_ACCEPTANCE
        self._phase = OrderPhase.NONE
        self._cond.notify_all()

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            menu=self._menu,
            order_id=self._order_id,
            lines=self._lines,
            status=self._status,
            phase=self._phase,
        )
