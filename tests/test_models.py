import pytest

from pizzeria_client.errors import InvalidQuantityError
from pizzeria_client.models import Ingredient, MenuItem, OrderLine, OrderPhase, parse_quantity


@pytest.mark.parametrize("text,expected", [("1", 1), (" 7 ", 7), ("10", 10)])
def test_parse_quantity_accepts_range(text, expected):
    assert parse_quantity(text) == expected


@pytest.mark.parametrize("text", ["0", "11", "-3", "abc", "", "2.5"])
def test_parse_quantity_rejects(text):
    with pytest.raises(InvalidQuantityError):
        parse_quantity(text)


def test_order_line_rejects_out_of_range_quantity():
    with pytest.raises(InvalidQuantityError):
        OrderLine("margherita", 11)
    with pytest.raises(InvalidQuantityError):
        OrderLine("margherita", 0)


@pytest.mark.parametrize("name", ["", "  ", "marg,herita", "marg~herita", "two\nlines"])
def test_order_line_rejects_names_that_break_the_wire_format(name):
    with pytest.raises(ValueError):
        OrderLine(name, 1)


def test_ingredient_from_token():
    assert Ingredient.from_token(" CHEESE ") is Ingredient.CHEESE
    with pytest.raises(ValueError):
        Ingredient.from_token("cheese")


def test_menu_item_ingredients_label():
    item = MenuItem("margherita", (Ingredient.CHEESE, Ingredient.TOMATO), 8)
    assert item.ingredients_label() == "CHEESE, TOMATO"


def test_order_phase_groups():
    assert OrderPhase.PENDING.in_progress and OrderPhase.UPDATED.in_progress
    assert OrderPhase.DELIVERED.terminal and OrderPhase.CANCELLED.terminal
    assert not OrderPhase.NONE.in_progress and not OrderPhase.NONE.terminal
