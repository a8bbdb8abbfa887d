from __future__ import annotations

# Pizza ordering GUI (Tkinter).
#
# Screens:
# - home: welcome text, "View Menu", and "View Active Order Status" while an
#   order exists
# - menu: one row per pizza with a quantity entry, "Place an Order!"
# - status: current status text, Refresh, and Confirm Delivery / Confirm
#   Cancellation once the order is finished
#
# Architecture:
# - MQTT callbacks run on a background thread managed by paho-mqtt and only
#   touch the `OrderSession` (which is lock-protected).
# - Tkinter must be updated from the main UI thread.
# - We therefore poll `client.snapshot()` via `root.after(...)` and re-render
#   when the snapshot changed.

import logging
import tkinter as tk
from tkinter import messagebox, ttk
from typing import Any, Callable, cast

from .client import PizzeriaClient
from .errors import InvalidQuantityError, PizzeriaError
from .models import MAX_QUANTITY, MIN_QUANTITY, MenuItem, OrderLine, parse_quantity
from .session import SessionSnapshot

log = logging.getLogger(__name__)


class PizzaApp:
    def __init__(self, *, client: PizzeriaClient, refresh_ms: int = 250) -> None:
        self.client = client
        self.refresh_ms = refresh_ms

        self.root = tk.Tk()
        self.root.title("Pizza App")
        self.root.geometry("1000x400")

        self.info_var = tk.StringVar(value="Connecting...")
        ttk.Label(self.root, textvariable=self.info_var).pack(fill=cast(Any, tk.X), padx=10, pady=(10, 5))

        self._body = ttk.Frame(self.root)
        self._body.pack(fill=cast(Any, tk.BOTH), expand=True, padx=20, pady=20)

        # Which screen is shown, and the snapshot it was rendered from.
        self._screen: Callable[[], None] = self.show_home
        self._rendered: SessionSnapshot | None = None
        self._connected = False

        # Quantity entries of the menu screen, by pizza name.
        self._qty_vars: dict[str, tk.StringVar] = {}

        self.root.protocol("WM_DELETE_WINDOW", self.close)

    def start(self) -> None:
        self.connect()
        self.show_home()
        self.root.after(cast(Any, self.refresh_ms), self._poll)
        self.root.mainloop()

    def connect(self) -> bool:
        # If broker isn't reachable, keep UI alive and show error.
        try:
            self.client.start()
        except PizzeriaError as e:
            log.error("MQTT connection failed: %s", e)
            self.info_var.set(f"MQTT connection failed: {e}")
            return False

        # Connected from here on, so close() stops the network loop even if
        # the first menu request fails.
        self._connected = True
        self.info_var.set(f"Connected to MQTT {self.client.config.broker_url}")
        self._request_menu()
        return True

    def close(self) -> None:
        try:
            if self._connected:
                self.client.stop()
        finally:
            self.root.destroy()

    # -------------------- UI thread polling --------------------

    def _poll(self) -> None:
        snap = self.client.snapshot()
        # The menu screen holds user input; never re-render it under the user.
        if snap != self._rendered and self._screen != self.show_menu:
            self._screen()
        self.root.after(cast(Any, self.refresh_ms), self._poll)

    def _clear(self, screen: Callable[[], None]) -> SessionSnapshot:
        for child in self._body.winfo_children():
            child.destroy()
        self._screen = screen
        self._rendered = self.client.snapshot()
        return self._rendered

    # -------------------- home --------------------

    def show_home(self) -> None:
        if self._screen != self.show_home:
            self._request_menu()
        snap = self._clear(self.show_home)

        ttk.Label(self._body, text="Welcome to the Pizza Ordering App").pack(pady=10)
        ttk.Button(self._body, text="View Menu", command=self.show_menu).pack(pady=5)
        if snap.order_active or snap.order_cancelled or snap.order_delivered:
            ttk.Button(self._body, text="View Active Order Status", command=self.show_status).pack(pady=5)

    def _request_menu(self) -> None:
        if not self._connected:
            return
        try:
            self.client.request_menu()
        except PizzeriaError as e:
            log.error("Menu request failed: %s", e)

    # -------------------- menu --------------------

    def show_menu(self) -> None:
        snap = self._clear(self.show_menu)
        self._qty_vars = {}

        if not snap.menu:
            ttk.Label(self._body, text="The menu is empty! Please try again later.", font=("", 14, "bold")).pack(
                pady=10
            )
            ttk.Button(self._body, text="Back", command=self.show_home).pack(pady=5)
            return

        ttk.Label(self._body, text="List of Pizzas", font=("", 14, "bold")).pack(pady=(0, 10))

        grid = ttk.Frame(self._body)
        grid.pack()
        for col, title in enumerate(("Name", "Ingredients", "Price", "Amount")):
            ttk.Label(grid, text=title, font=("", 10, "bold")).grid(row=0, column=col, padx=10, pady=5, sticky="w")

        for row, pizza in enumerate(snap.menu, start=1):
            self._menu_row(grid, row, pizza)

        buttons = ttk.Frame(self._body)
        buttons.pack(pady=10)
        ttk.Button(buttons, text="Back", command=self.show_home).pack(side=cast(Any, tk.LEFT), padx=5)
        ttk.Button(buttons, text="Place an Order!", command=self._place_order).pack(side=cast(Any, tk.LEFT), padx=5)

    def _menu_row(self, grid: ttk.Frame, row: int, pizza: MenuItem) -> None:
        ttk.Label(grid, text=pizza.name).grid(row=row, column=0, padx=10, sticky="w")
        ttk.Label(grid, text=pizza.ingredients_label()).grid(row=row, column=1, padx=10, sticky="w")
        ttk.Label(grid, text=str(pizza.price)).grid(row=row, column=2, padx=10, sticky="e")
        var = tk.StringVar()
        ttk.Entry(grid, textvariable=var, width=8).grid(row=row, column=3, padx=10)
        self._qty_vars[pizza.name] = var

    def collect_order_lines(self) -> tuple[list[OrderLine], list[str]]:
        """Read the quantity entries. Returns (valid lines, rejected pizza names)."""
        lines: list[OrderLine] = []
        rejected: list[str] = []
        for name, var in self._qty_vars.items():
            text = var.get().strip()
            if not text:
                continue
            try:
                lines.append(OrderLine(pizza_name=name, quantity=parse_quantity(text)))
            except InvalidQuantityError:
                rejected.append(name)
        return lines, rejected

    def _place_order(self) -> None:
        lines, rejected = self.collect_order_lines()
        if rejected:
            messagebox.showinfo(
                "Wrong input!",
                f"Amount must be between {MIN_QUANTITY} and {MAX_QUANTITY}.\n"
                f"Not included: {', '.join(rejected)}",
            )
        if not lines:
            messagebox.showinfo(
                "Wrong Order",
                "You have not input any valid amount!\n"
                "Products with invalid amount will not be included in the order.",
            )
            return

        try:
            self.client.place_order(lines)
        except PizzeriaError as e:
            log.error("Placing order failed: %s", e)
            messagebox.showerror("Order failed", str(e))
            return

        summary = "\n".join(f"{i}. {line.pizza_name}: {line.quantity}" for i, line in enumerate(lines, start=1))
        messagebox.showinfo("Order Placed!", f"Order Placed Successfully:\n{summary}\n\nRedirecting to Home Screen.")
        self.show_home()

    # -------------------- status --------------------

    def show_status(self) -> None:
        snap = self._clear(self.show_status)
        if not snap.has_order:
            self.show_home()
            return

        ttk.Label(self._body, text=snap.status, font=("", 14)).pack(pady=10)
        ttk.Button(self._body, text="Back", command=self.show_home).pack(pady=5)
        ttk.Button(self._body, text="Refresh Status", command=self.show_status).pack(pady=5)
        if snap.order_delivered:
            ttk.Button(self._body, text="Confirm Delivery", command=self._confirm_delivery).pack(pady=5)
        elif snap.order_cancelled:
            ttk.Button(self._body, text="Confirm Cancellation", command=self._confirm_cancellation).pack(pady=5)

    def _confirm_delivery(self) -> None:
        self.client.confirm_delivery()
        self.show_home()

    def _confirm_cancellation(self) -> None:
        self.client.confirm_cancellation()
        self.show_home()


def run_gui(client: PizzeriaClient, *, refresh_ms: int = 250) -> None:
    PizzaApp(client=client, refresh_ms=refresh_ms).start()
