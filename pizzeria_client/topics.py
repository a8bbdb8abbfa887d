"""MQTT topic helpers.

We keep topic construction in one place so the client, the CLI and the tests
agree on naming.

Topic layout (defaults, all prefixes configurable):

Menu (broadcast):
- `bcast/i_am_ungry`
    The customer publishes an empty message here to ask for the menu.
- `bcast/menu`
    The pizzeria broadcasts its menu here.

Per order, under the order prefix (default: `orders/`):
- `orders/<order_id>`              order submission
- `orders/<order_id>/status`       free-text status updates
- `orders/<order_id>/delivery`     number of pizzas delivered
- `orders/<order_id>/cancelled`    cancellation reason

The order prefix is concatenated as-is, so it normally ends with `/`.
"""

from __future__ import annotations

DEFAULT_ORDER_PREFIX = "orders/"
DEFAULT_MENU_REQUEST = "bcast/i_am_ungry"
DEFAULT_MENU_RESPONSE = "bcast/menu"

STATUS = "status"
DELIVERY = "delivery"
CANCELLED = "cancelled"

ORDER_EVENT_KINDS = (STATUS, DELIVERY, CANCELLED)


def order_submit(order_id: str, prefix: str = DEFAULT_ORDER_PREFIX) -> str:
    return f"{prefix}{order_id}"


def order_status(order_id: str, prefix: str = DEFAULT_ORDER_PREFIX) -> str:
    return f"{prefix}{order_id}/{STATUS}"


def order_delivery(order_id: str, prefix: str = DEFAULT_ORDER_PREFIX) -> str:
    return f"{prefix}{order_id}/{DELIVERY}"


def order_cancelled(order_id: str, prefix: str = DEFAULT_ORDER_PREFIX) -> str:
    return f"{prefix}{order_id}/{CANCELLED}"


def order_topics(order_id: str, prefix: str = DEFAULT_ORDER_PREFIX) -> tuple[str, str, str]:
    """The three topics a customer follows for one order."""
    return (
        order_status(order_id, prefix),
        order_delivery(order_id, prefix),
        order_cancelled(order_id, prefix),
    )


def parse_order_topic(topic: str, prefix: str = DEFAULT_ORDER_PREFIX) -> tuple[str, str] | None:
    """Split `<prefix><order_id>/<kind>` into `(order_id, kind)`.

    Returns None for anything that is not an order event topic (including the
    bare submission topic).
    """
    if not topic.startswith(prefix):
        return None
    rest = topic[len(prefix):]
    order_id, sep, kind = rest.rpartition("/")
    if not sep or not order_id or kind not in ORDER_EVENT_KINDS:
        return None
    return order_id, kind
