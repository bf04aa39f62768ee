import random
from decimal import Decimal

from storefront.schemas.records import MenuItemRecord
from storefront.services.cart import Cart


def _item(item_id, price, name=None):
    return MenuItemRecord(id=item_id, restaurant_id="rest-1", name=name or item_id, price=Decimal(price))


def _assert_totals(cart):
    assert cart.total == sum((line.price * line.quantity for line in cart.lines), Decimal("0"))
    assert cart.item_count == sum(line.quantity for line in cart.lines)


def test_add_increments_existing_line():
    cart = Cart()
    a = _item("A", "100")
    cart.add_to_cart(a)
    cart.add_to_cart(a)
    cart.add_to_cart(_item("B", "50"))

    assert len(cart) == 2
    assert cart.total == Decimal("250")
    assert cart.item_count == 3


def test_update_quantity_to_zero_or_less_removes_line():
    cart = Cart()
    cart.add_to_cart(_item("A", "100"))
    cart.add_to_cart(_item("B", "50"))

    cart.update_quantity("A", 0)
    cart.update_quantity("B", -3)

    assert cart.is_empty()
    assert cart.total == Decimal("0")
    assert cart.item_count == 0


def test_totals_hold_after_any_mutation_sequence():
    rng = random.Random(7)
    menu = [_item("A", "100"), _item("B", "50"), _item("C", "12.50")]
    cart = Cart()
    for _ in range(200):
        operation = rng.choice(["add", "update", "remove"])
        item = rng.choice(menu)
        if operation == "add":
            cart.add_to_cart(item)
        elif operation == "update":
            cart.update_quantity(item.id, rng.randint(-1, 4))
        else:
            cart.remove_from_cart(item.id)
        _assert_totals(cart)


def test_snapshot_is_detached_from_cart_and_menu():
    item = _item("A", "100", name="Paneer Tikka")
    cart = Cart()
    cart.add_to_cart(item)
    snapshot = cart.snapshot()

    cart.update_quantity("A", 5)
    cart.clear()

    assert snapshot[0].quantity == 1
    assert snapshot[0].price == Decimal("100")
    assert snapshot[0].name == "Paneer Tikka"
