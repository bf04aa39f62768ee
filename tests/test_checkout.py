import asyncio
from decimal import Decimal
from types import SimpleNamespace

import pytest

from storefront.gateway.errors import GatewayUnavailableError
from storefront.schemas.records import OrderType
from storefront.services.active_order import InMemoryActiveOrderStore
from storefront.services.cart import Cart
from storefront.services.checkout import (
    CheckoutForm,
    CheckoutValidationError,
    ItemUnavailableError,
    StoreClosedError,
    build_order_draft,
    cart_from_selection,
    submit_checkout,
    validate_checkout,
)
from storefront.services.order_state import OrderStatus
from tests.fixtures_data import RESTAURANT_ID, make_gateway


async def _restaurant_and_menu(gateway):
    restaurant = await gateway.get_restaurant(RESTAURANT_ID)
    menu = await gateway.list_menu(RESTAURANT_ID)
    return restaurant, menu


def test_validation_requires_name_phone_and_address_for_delivery():
    with pytest.raises(CheckoutValidationError) as exc_info:
        validate_checkout(CheckoutForm(customer_name=" ", customer_phone="", customer_address=""))
    assert exc_info.value.missing_fields == ["customer_name", "customer_phone", "customer_address"]

    validate_checkout(CheckoutForm(customer_name="Asha", customer_phone="98", customer_address="12 MG Road"))


def test_dine_in_skips_address_but_checks_table_bounds():
    restaurant = SimpleNamespace(total_tables=8)
    validate_checkout(CheckoutForm(customer_name="Ravi", customer_phone="90", table_number=7), restaurant)

    with pytest.raises(CheckoutValidationError) as exc_info:
        validate_checkout(CheckoutForm(customer_name="Ravi", customer_phone="90", table_number=9), restaurant)
    assert exc_info.value.missing_fields == ["table_number"]

    unbounded = SimpleNamespace(total_tables=0)
    validate_checkout(CheckoutForm(customer_name="Ravi", customer_phone="90", table_number=40), unbounded)


def test_dine_in_draft_uses_table_label_and_drops_location():
    async def scenario():
        gateway, _ = make_gateway()
        _, menu = await _restaurant_and_menu(gateway)
        cart = cart_from_selection(menu, [("B", 2)])
        form = CheckoutForm(
            customer_name="Ravi",
            customer_phone="90",
            customer_address="ignored",
            latitude=12.9,
            longitude=77.6,
            table_number=7,
        )
        draft = build_order_draft(RESTAURANT_ID, form, cart)

        assert draft.order_type is OrderType.DINE_IN
        assert draft.table_number == 7
        assert draft.customer_address == "Table 7"
        assert draft.latitude is None and draft.longitude is None
        assert draft.total_amount == Decimal("100")

    asyncio.run(scenario())


def test_cart_from_selection_uses_menu_prices_and_rejects_unknown_items():
    async def scenario():
        gateway, _ = make_gateway()
        _, menu = await _restaurant_and_menu(gateway)

        cart = cart_from_selection(menu, [("A", 2), ("B", 1), ("A", 1)])
        assert cart.item_count == 4
        assert cart.total == Decimal("350")

        with pytest.raises(ItemUnavailableError) as exc_info:
            cart_from_selection(menu, [("A", 1), ("ZZ", 1)])
        assert exc_info.value.item_ids == ["ZZ"]

    asyncio.run(scenario())


def test_successful_checkout_clears_cart_and_sets_pointer():
    async def scenario():
        gateway, _ = make_gateway()
        restaurant, menu = await _restaurant_and_menu(gateway)
        cart = cart_from_selection(menu, [("A", 2), ("B", 1)])
        pointer = InMemoryActiveOrderStore()
        form = CheckoutForm(customer_name="Asha", customer_phone="98", customer_address="12 MG Road")

        result = await submit_checkout(gateway, restaurant, cart, form, pointer, menu=menu)

        assert result.order.status is OrderStatus.PENDING
        assert result.order.order_type is OrderType.DELIVERY
        assert result.order.total_amount == Decimal("250")
        assert len(result.order.order_details) == 2
        assert result.tracking_url == f"/order-success/{result.order.id}"
        assert cart.is_empty()
        assert pointer.get() == result.order.id

    asyncio.run(scenario())


def test_unpurchasable_items_block_checkout():
    async def scenario():
        gateway, _ = make_gateway()
        restaurant, menu = await _restaurant_and_menu(gateway)
        form = CheckoutForm(customer_name="Asha", customer_phone="98", customer_address="12 MG Road")

        for item_id in ("C", "D"):
            cart = cart_from_selection(menu, [("A", 1), (item_id, 1)])
            with pytest.raises(ItemUnavailableError) as exc_info:
                await submit_checkout(gateway, restaurant, cart, form, InMemoryActiveOrderStore(), menu=menu)
            assert exc_info.value.item_ids == [item_id]
            assert cart.item_count == 2

    asyncio.run(scenario())


def test_closed_store_refuses_orders():
    async def scenario():
        gateway, _ = make_gateway(is_accepting_orders=False)
        restaurant, menu = await _restaurant_and_menu(gateway)
        cart = cart_from_selection(menu, [("A", 1)])
        with pytest.raises(StoreClosedError):
            await submit_checkout(
                gateway,
                restaurant,
                cart,
                CheckoutForm(customer_name="Asha", customer_phone="98", customer_address="x"),
                InMemoryActiveOrderStore(),
            )

    asyncio.run(scenario())


def test_failed_insert_keeps_cart_and_pointer():
    class FailingGateway:
        async def insert_order(self, draft):
            raise GatewayUnavailableError("orders storage unavailable", table="orders")

    async def scenario():
        gateway, _ = make_gateway()
        restaurant, menu = await _restaurant_and_menu(gateway)
        cart = cart_from_selection(menu, [("A", 2)])
        pointer = InMemoryActiveOrderStore("previous-order")

        with pytest.raises(GatewayUnavailableError):
            await submit_checkout(
                FailingGateway(),
                restaurant,
                cart,
                CheckoutForm(customer_name="Asha", customer_phone="98", customer_address="x"),
                pointer,
            )

        assert cart.item_count == 2
        assert pointer.get() == "previous-order"

    asyncio.run(scenario())


def test_empty_cart_is_a_validation_error():
    async def scenario():
        gateway, _ = make_gateway()
        restaurant, _ = await _restaurant_and_menu(gateway)
        with pytest.raises(CheckoutValidationError) as exc_info:
            await submit_checkout(
                gateway,
                restaurant,
                Cart(),
                CheckoutForm(customer_name="Asha", customer_phone="98", customer_address="x"),
                InMemoryActiveOrderStore(),
            )
        assert exc_info.value.missing_fields == ["items"]

    asyncio.run(scenario())
