"""Domain objects exchanged with the pizzeria.

Everything here is a flat value record. The only rules enforced are the ones
the wire format needs:
- pizza names must not contain the codec delimiters (`,` `~` and newlines)
- order quantities are limited to 1..10 per pizza
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import InvalidQuantityError

MIN_QUANTITY = 1
MAX_QUANTITY = 10

_FORBIDDEN_NAME_CHARS = (",", "~", "\n", "\r")

AWAITING_ACCEPTANCE = "The pizzeria has not accepted the order yet! Please wait"


class Ingredient(Enum):
    """Ingredient tags the pizzeria uses in its menu broadcast."""

    TOMATO = "TOMATO"
    CHEESE = "CHEESE"
    MOZZARELLA = "MOZZARELLA"
    PARMESAN = "PARMESAN"
    GORGONZOLA = "GORGONZOLA"
    PEPPERONI = "PEPPERONI"
    HAM = "HAM"
    BACON = "BACON"
    SAUSAGE = "SAUSAGE"
    CHICKEN = "CHICKEN"
    ANCHOVY = "ANCHOVY"
    TUNA = "TUNA"
    MUSHROOM = "MUSHROOM"
    OLIVE = "OLIVE"
    ONION = "ONION"
    PEPPER = "PEPPER"
    JALAPENO = "JALAPENO"
    PINEAPPLE = "PINEAPPLE"
    SPINACH = "SPINACH"
    ARTICHOKE = "ARTICHOKE"
    GARLIC = "GARLIC"
    BASIL = "BASIL"
    OREGANO = "OREGANO"
    EGG = "EGG"

    @classmethod
    def from_token(cls, token: str) -> "Ingredient":
        """Look up a wire token (surrounding whitespace ignored).

        Raises:
            ValueError: the token is not part of the vocabulary.
        """
        return cls(token.strip())


@dataclass(frozen=True)
class MenuItem:
    name: str
    ingredients: tuple[Ingredient, ...]
    price: int

    def ingredients_label(self) -> str:
        return ", ".join(i.name for i in self.ingredients)


@dataclass(frozen=True)
class OrderLine:
    """One pizza kind in an order, with how many of it."""

    pizza_name: str
    quantity: int

    def __post_init__(self) -> None:
        check_pizza_name(self.pizza_name)
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise InvalidQuantityError(f"quantity must be an int, got {self.quantity!r}")
        if not MIN_QUANTITY <= self.quantity <= MAX_QUANTITY:
            raise InvalidQuantityError(
                f"quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}, got {self.quantity}"
            )


class OrderPhase(Enum):
    """Lifecycle stage of the single order a session tracks."""

    NONE = "none"
    PENDING = "pending"
    UPDATED = "updated"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def in_progress(self) -> bool:
        return self in (OrderPhase.PENDING, OrderPhase.UPDATED)

    @property
    def terminal(self) -> bool:
        return self in (OrderPhase.DELIVERED, OrderPhase.CANCELLED)


def check_pizza_name(name: str) -> None:
    if not name or not name.strip():
        raise ValueError("pizza name must not be empty")
    for ch in _FORBIDDEN_NAME_CHARS:
        if ch in name:
            raise ValueError(f"pizza name {name!r} must not contain {ch!r}")


def parse_quantity(text: str) -> int:
    """Validate a quantity typed by the customer.

    Args:
        text: raw input from the CLI or a GUI entry field.

    Returns:
        The quantity as an int in 1..10.

    Raises:
        InvalidQuantityError: non-numeric input or out of range.
    """
    try:
        qty = int(str(text).strip())
    except ValueError as e:
        raise InvalidQuantityError(f"not a number: {text!r}") from e
    if not MIN_QUANTITY <= qty <= MAX_QUANTITY:
        raise InvalidQuantityError(
            f"amount must be between {MIN_QUANTITY} and {MAX_QUANTITY}, got {qty}"
        )
    return qty
