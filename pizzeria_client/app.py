from __future__ import annotations

# Single-entrypoint runner.
#
#     python -m pizzeria_client.app menu
#     python -m pizzeria_client.app order margherita=2 pepperoni=1
#     python -m pizzeria_client.app gui
#
# Broker and topic settings come from `--config app.yaml` and can be
# overridden per flag.

import argparse
import logging
import sys

from .client import PizzeriaClient
from .config import load_config
from .errors import BrokerConnectionError, ConfigError, PizzeriaError
from .models import MenuItem, OrderLine, parse_quantity
from .session import SessionSnapshot


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Pizzeria customer client (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_common_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default=None, help="YAML config file")
        p.add_argument("--broker-url", default=None, help="e.g. tcp://localhost:1883")
        p.add_argument("--qos", type=int, choices=(0, 1, 2), default=None)
        p.add_argument("--order-topic", default=None, help="order topic prefix (default: orders/)")
        p.add_argument("--log-level", default="WARNING")

    p_menu = sub.add_parser("menu", help="Request the menu and print it")
    add_common_args(p_menu)
    p_menu.add_argument("--timeout", type=float, default=10.0, help="seconds to wait for the menu")

    p_order = sub.add_parser("order", help="Place an order and follow it until delivery or cancellation")
    add_common_args(p_order)
    p_order.add_argument("pizzas", nargs="+", metavar="NAME=QTY", help="pizza name and amount (1-10)")
    p_order.add_argument("--timeout", type=float, default=600.0, help="seconds to wait for each status change")

    p_gui = sub.add_parser("gui", help="Open the Tkinter ordering app")
    add_common_args(p_gui)
    p_gui.add_argument("--refresh-ms", type=int, default=250)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config).with_overrides(
            broker_url=args.broker_url,
            qos=args.qos,
            order_topic=args.order_topic,
        )
    except ConfigError as e:
        parser.error(str(e))

    if args.cmd == "order":
        try:
            lines = parse_order_args(args.pizzas)
        except ValueError as e:
            parser.error(str(e))

    client = PizzeriaClient.from_config(config)

    if args.cmd == "gui":
        from .gui import run_gui

        run_gui(client, refresh_ms=args.refresh_ms)
        return 0

    try:
        client.start()
    except BrokerConnectionError as e:
        print(f"[pizzeria] {e}", file=sys.stderr)
        return 2

    try:
        if args.cmd == "menu":
            return show_menu(client, timeout=args.timeout)
        return follow_order(client, lines, timeout=args.timeout)
    except PizzeriaError as e:
        print(f"[pizzeria] error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    finally:
        client.stop()


def parse_order_args(items: list[str]) -> list[OrderLine]:
    """Turn `["margherita=2", ...]` into order lines.

    A pizza named twice keeps the last amount, like re-typing it in the GUI.

    Raises:
        ValueError: malformed item, bad name, or quantity outside 1..10.
    """
    by_name: dict[str, OrderLine] = {}
    for item in items:
        name, sep, qty = item.rpartition("=")
        if not sep or not name.strip():
            raise ValueError(f"expected NAME=QTY, got {item!r}")
        name = name.strip()
        by_name[name] = OrderLine(pizza_name=name, quantity=parse_quantity(qty))
    return list(by_name.values())


def format_menu(menu: tuple[MenuItem, ...] | list[MenuItem]) -> str:
    if not menu:
        return "The menu is empty! Please try again later."
    width = max(len(p.name) for p in menu)
    return "\n".join(f"{p.name:<{width}}  {p.price:>4}  {p.ingredients_label()}" for p in menu)


def show_menu(client: PizzeriaClient, *, timeout: float) -> int:
    client.request_menu()
    try:
        snap = client.wait_for(lambda s: bool(s.menu), timeout)
    except TimeoutError:
        print(f"[pizzeria] no menu received within {timeout}s", file=sys.stderr)
        return 1
    print(format_menu(snap.menu))
    return 0


def follow_order(client: PizzeriaClient, lines: list[OrderLine], *, timeout: float) -> int:
    order_id = client.place_order(lines)
    print(f"[pizzeria] placed order {order_id}")

    last: SessionSnapshot = client.snapshot()
    print(f"[pizzeria] status: {last.status}")
    try:
        while not last.phase.terminal:
            prev = last
            last = client.wait_for(lambda s: s != prev, timeout)
            if last.status != prev.status:
                print(f"[pizzeria] status: {last.status}")
    except TimeoutError:
        print(f"[pizzeria] order {order_id} had no update for {timeout}s", file=sys.stderr)
        return 1

    if last.order_delivered:
        client.confirm_delivery()
        print("[pizzeria] delivered, enjoy!")
        return 0

    client.confirm_cancellation()
    print("[pizzeria] the pizzeria cancelled the order")
    return 1


if __name__ == "__main__":
    sys.exit(main())
