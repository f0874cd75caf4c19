import threading

import pytest

from merrbio.application.services.order_service import (
    ORDER_CONFIRMED_MESSAGE,
    ORDER_NOTIFICATION_TITLE,
    ORDER_PLACED_MESSAGE,
    ORDER_REJECTED_MESSAGE,
)
from merrbio.domain.exceptions import (
    AccessDeniedError,
    EntityNotFoundError,
    IllegalStateError,
    InvalidArgumentError,
)
from merrbio.domain.models import OrderLine, OrderStatus


@pytest.fixture
def farmer(make_farmer):
    return make_farmer()


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def product(make_product, farmer):
    return make_product(farmer, price=5.0, minimum_order_quantity=1, max_available_quantity=10)


def test_order_lifecycle_example(order_service, notifier, customer, farmer, product, make_customer):
    order = order_service.create_order(customer, [OrderLine(product.id, 2)])

    assert order.total_price == pytest.approx(10.0)
    assert order.status is OrderStatus.PROCESSING
    assert notifier.notifications == [(customer.user_id, ORDER_NOTIFICATION_TITLE, ORDER_PLACED_MESSAGE)]

    confirmed = order_service.update_order_status(order.id, OrderStatus.CONFIRMED, farmer)
    assert confirmed.status is OrderStatus.CONFIRMED
    assert notifier.notifications[-1] == (customer.user_id, ORDER_NOTIFICATION_TITLE, ORDER_CONFIRMED_MESSAGE)

    with pytest.raises(IllegalStateError):
        order_service.update_order_status(order.id, OrderStatus.CONFIRMED, farmer)
    with pytest.raises(IllegalStateError):
        order_service.update_order_status(order.id, OrderStatus.REJECTED, farmer)
    assert order_service.get_order_by_id(order.id, customer).status is OrderStatus.CONFIRMED

    with pytest.raises(AccessDeniedError):
        order_service.get_order_by_id(order.id, make_customer())


def test_reject_notifies_customer(order_service, notifier, customer, farmer, product):
    order = order_service.create_order(customer, [OrderLine(product.id, 3)], notes="Leave at the gate")

    rejected = order_service.update_order_status(order.id, OrderStatus.REJECTED, farmer)

    assert rejected.status is OrderStatus.REJECTED
    assert rejected.notes == "Leave at the gate"
    assert notifier.notifications[-1][2] == ORDER_REJECTED_MESSAGE


def test_total_is_frozen_when_catalog_price_changes(
    order_service, product_service, customer, farmer, make_product, product
):
    second = make_product(farmer, name="Honey", price=12.5, unit="jar", max_available_quantity=None)
    order = order_service.create_order(customer, [OrderLine(product.id, 2), OrderLine(second.id, 3)])

    product_service.update_product(farmer, product.id, price=9.99)
    reloaded = order_service.get_order_by_id(order.id, customer)

    assert reloaded.total_price == pytest.approx(47.5)
    assert sum(item.price * item.quantity for item in reloaded.items) == pytest.approx(reloaded.total_price)
    assert [item.price for item in reloaded.items] == [5.0, 12.5]
    assert reloaded.items[0].product_name == "Tomatoes"
    assert reloaded.items[0].line_total == pytest.approx(10.0)


@pytest.mark.parametrize(
    "overrides, quantity",
    [
        ({"is_in_stock": False}, 2),
        ({"minimum_order_quantity": 3}, 2),
        ({"max_available_quantity": 4}, 5),
    ],
)
def test_item_validation(order_service, make_product, customer, farmer, overrides, quantity):
    product = make_product(farmer, **overrides)

    with pytest.raises(InvalidArgumentError):
        order_service.create_order(customer, [OrderLine(product.id, quantity)])


def test_empty_and_unknown_items(order_service, customer):
    with pytest.raises(InvalidArgumentError):
        order_service.create_order(customer, [])
    with pytest.raises(EntityNotFoundError):
        order_service.create_order(customer, [OrderLine(404, 1)])


def test_failed_validation_persists_nothing(order_service, make_product, customer, farmer, product):
    sold_out = make_product(farmer, name="Figs", is_in_stock=False)

    with pytest.raises(InvalidArgumentError):
        order_service.create_order(customer, [OrderLine(product.id, 1), OrderLine(sold_out.id, 1)])

    assert order_service.get_customer_orders(customer).total == 0


def test_visibility_rules(order_service, customer, farmer, product, make_farmer):
    order = order_service.create_order(customer, [OrderLine(product.id, 1)])

    assert order_service.get_order_by_id(order.id, farmer).id == order.id
    with pytest.raises(AccessDeniedError):
        order_service.get_order_by_id(order.id, make_farmer(farm_name="Elsewhere"))
    with pytest.raises(EntityNotFoundError):
        order_service.get_order_by_id(order.id + 100, customer)


def test_only_owning_farmer_may_decide(order_service, customer, farmer, product, make_farmer):
    order = order_service.create_order(customer, [OrderLine(product.id, 1)])

    with pytest.raises(AccessDeniedError):
        order_service.update_order_status(order.id, OrderStatus.CONFIRMED, make_farmer(farm_name="Rival"))
    with pytest.raises(AccessDeniedError):
        order_service.update_order_status(order.id, OrderStatus.CONFIRMED, customer)
    with pytest.raises(EntityNotFoundError):
        order_service.update_order_status(order.id + 100, OrderStatus.CONFIRMED, farmer)
    with pytest.raises(InvalidArgumentError):
        order_service.update_order_status(order.id, OrderStatus.PROCESSING, farmer)

    assert order_service.get_order_by_id(order.id, customer).status is OrderStatus.PROCESSING


def test_concurrent_decisions_apply_exactly_once(order_service, make_farmer, make_product, customer):
    first_farmer = make_farmer(farm_name="North")
    second_farmer = make_farmer(farm_name="South")
    order = order_service.create_order(
        customer,
        [
            OrderLine(make_product(first_farmer, name="Leeks").id, 1),
            OrderLine(make_product(second_farmer, name="Kale").id, 1),
        ],
    )
    barrier = threading.Barrier(2)
    outcomes = []

    def decide(identity, status):
        barrier.wait()
        try:
            outcomes.append(order_service.update_order_status(order.id, status, identity).status)
        except IllegalStateError:
            outcomes.append("conflict")

    threads = [
        threading.Thread(target=decide, args=(first_farmer, OrderStatus.CONFIRMED)),
        threading.Thread(target=decide, args=(second_farmer, OrderStatus.REJECTED)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("conflict") == 1
    final = order_service.get_order_by_id(order.id, customer).status
    assert [outcome for outcome in outcomes if outcome != "conflict"] == [final]


def test_listings_are_scoped_and_paginated(order_service, make_customer, make_farmer, make_product):
    farmer_a = make_farmer(farm_name="A")
    farmer_b = make_farmer(farm_name="B")
    product_a = make_product(farmer_a)
    product_b = make_product(farmer_b, name="Eggs", unit="dozen")
    customer = make_customer()
    other_customer = make_customer()

    placed = [order_service.create_order(customer, [OrderLine(product_a.id, 1)]) for _ in range(3)]
    foreign = order_service.create_order(other_customer, [OrderLine(product_b.id, 1)])

    first_page = order_service.get_customer_orders(customer, page=0, size=2)
    second_page = order_service.get_customer_orders(customer, page=1, size=2)

    assert first_page.total == 3
    assert first_page.total_pages == 2
    assert [o.id for o in first_page.items] == [placed[2].id, placed[1].id]
    assert [o.id for o in second_page.items] == [placed[0].id]

    farmer_page = order_service.get_farmer_orders(farmer_b)
    assert [o.id for o in farmer_page.items] == [foreign.id]

    with pytest.raises(EntityNotFoundError):
        order_service.get_farmer_orders(customer)
    with pytest.raises(InvalidArgumentError):
        order_service.get_customer_orders(customer, page=-1)
