"""Wire format of the pizzeria topics.

Order submission body (published on `orders/<id>`):

    margherita,2~pepperoni,1

Menu broadcast body (received on `bcast/menu`), one pizza per line:

    margherita~CHEESE,TOMATO~8
    pepperoni~CHEESE,PEPPERONI~9

Nothing is escaped, which is why pizza names may not contain `,` or `~`.
All functions here are pure.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .errors import MenuDecodeError
from .models import Ingredient, MenuItem, OrderLine

log = logging.getLogger(__name__)

LINE_SEP = "~"
QTY_SEP = ","
FIELD_SEP = "~"
INGREDIENT_SEP = ","
RECORD_SEP = "\n"


def encode_order(lines: Iterable[OrderLine]) -> str:
    return LINE_SEP.join(f"{line.pizza_name}{QTY_SEP}{line.quantity}" for line in lines)


def encode_menu(items: Iterable[MenuItem]) -> str:
    return RECORD_SEP.join(
        FIELD_SEP.join(
            (
                item.name,
                INGREDIENT_SEP.join(i.value for i in item.ingredients),
                str(item.price),
            )
        )
        for item in items
    )


def decode_menu_record(record: str) -> MenuItem:
    """Decode one `name~ing1,ing2~price` record.

    Raises:
        MenuDecodeError: wrong field count, empty name, unknown ingredient
            or non-integer price.
    """
    parts = record.split(FIELD_SEP)
    if len(parts) != 3:
        raise MenuDecodeError(record, f"expected 3 fields, got {len(parts)}")

    name = parts[0].strip()
    if not name:
        raise MenuDecodeError(record, "empty pizza name")

    ingredients: list[Ingredient] = []
    for token in parts[1].split(INGREDIENT_SEP):
        try:
            ingredients.append(Ingredient.from_token(token))
        except ValueError as e:
            raise MenuDecodeError(record, f"unknown ingredient {token.strip()!r}") from e

    try:
        price = int(parts[2].strip())
    except ValueError as e:
        raise MenuDecodeError(record, f"price is not an integer: {parts[2]!r}") from e

    return MenuItem(name=name, ingredients=tuple(ingredients), price=price)


def decode_menu(payload: str | bytes | None, *, strict: bool = False) -> list[MenuItem]:
    """Decode a full menu broadcast.

    An empty or missing payload is an empty menu, not an error. Blank lines
    are skipped.

    Args:
        payload: raw message body.
        strict: raise on the first malformed record instead of dropping it.

    Raises:
        MenuDecodeError: only when `strict` is set.
    """
    if not payload:
        return []
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")

    items: list[MenuItem] = []
    for raw in payload.split(RECORD_SEP):
        record = raw.rstrip("\r")
        if not record.strip():
            continue
        try:
            items.append(decode_menu_record(record))
        except MenuDecodeError as e:
            if strict:
                raise
            log.warning("Dropping menu record: %s", e)
    return items
