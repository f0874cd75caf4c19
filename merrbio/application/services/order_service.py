from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from ...domain.exceptions import (
    AccessDeniedError,
    EntityNotFoundError,
    IllegalStateError,
    InvalidArgumentError,
)
from ...domain.models import Identity, Order, OrderLine, OrderStatus, Page, Role
from ...domain.ports.notifications import Notifier
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

ORDER_NOTIFICATION_TITLE = "Order Status Update"
ORDER_PLACED_MESSAGE = "Your order has been placed and is waiting for confirmation from the farmers."
ORDER_CONFIRMED_MESSAGE = "Your order has been confirmed by the farmer and is being processed."
ORDER_REJECTED_MESSAGE = "Your order has been rejected by the farmer."

MAX_PAGE_SIZE = 100


class OrderService:
    """Order lifecycle: customers place orders, farmers confirm or reject them.

    An order starts in ``PROCESSING`` and moves exactly once to ``CONFIRMED``
    or ``REJECTED``. Item prices are copied from the catalog when the order is
    placed and never recomputed.
    """

    def __init__(self, persistence: PersistenceGateway, notifier: Notifier) -> None:
        self._persistence = persistence
        self._notifier = notifier

    def create_order(self, customer: Identity, lines: Sequence[OrderLine], notes: Optional[str] = None) -> Order:
        if not lines:
            raise InvalidArgumentError("Order must contain at least one item")

        priced: List[Tuple[int, float, float]] = []
        total = 0.0
        for line in lines:
            product = self._persistence.get_product(line.product_id)
            if product is None:
                raise EntityNotFoundError(f"Product not found with id: {line.product_id}")
            if line.quantity <= 0:
                raise InvalidArgumentError(f"Quantity for {product.name} must be positive")
            if not product.is_in_stock:
                raise InvalidArgumentError(f"Product {product.name} is out of stock")
            if line.quantity < product.minimum_order_quantity:
                raise InvalidArgumentError(
                    f"Minimum order quantity for {product.name} is {product.minimum_order_quantity}"
                )
            if product.max_available_quantity is not None and line.quantity > product.max_available_quantity:
                raise InvalidArgumentError(
                    f"Only {product.max_available_quantity} {product.unit} of {product.name} available"
                )
            priced.append((product.id, line.quantity, product.price))
            total += product.price * line.quantity

        order = self._persistence.create_order(
            customer_id=customer.user_id,
            notes=notes,
            lines=priced,
            total_price=total,
        )
        logger.info("Order %s placed by user %s (total %.2f)", order.id, customer.user_id, order.total_price)
        self._notifier.notify_user(customer.user_id, ORDER_NOTIFICATION_TITLE, ORDER_PLACED_MESSAGE)
        return order

    def get_order_by_id(self, order_id: int, requester: Identity) -> Order:
        order = self._require_order(order_id)
        if order.customer_id != requester.user_id and not order.involves_farmer(requester.user_id):
            raise AccessDeniedError("You are not authorized to view this order")
        return order

    def update_order_status(self, order_id: int, new_status: OrderStatus, requester: Identity) -> Order:
        order = self._require_order(order_id)
        if requester.role is not Role.FARMER or not order.involves_farmer(requester.user_id):
            raise AccessDeniedError("You are not authorized to update this order")
        if order.status.is_terminal:
            raise IllegalStateError(f"Order has already been {order.status.value.lower()}")
        if new_status not in (OrderStatus.CONFIRMED, OrderStatus.REJECTED):
            raise InvalidArgumentError(f"Invalid order status: {new_status.value}")

        if not self._persistence.transition_order_status(order.id, OrderStatus.PROCESSING, new_status):
            # A concurrent decision won the conditional update.
            raise IllegalStateError("Order has already been decided")

        logger.info("Order %s %s by user %s", order.id, new_status.value, requester.user_id)
        message = ORDER_CONFIRMED_MESSAGE if new_status is OrderStatus.CONFIRMED else ORDER_REJECTED_MESSAGE
        self._notifier.notify_user(order.customer_id, ORDER_NOTIFICATION_TITLE, message)
        return self._require_order(order.id)

    def get_customer_orders(self, customer: Identity, page: int = 0, size: int = 10) -> Page:
        self._validate_paging(page, size)
        orders, total = self._persistence.get_orders_for_customer(customer.user_id, size, page * size)
        return Page(items=orders, page=page, size=size, total=total)

    def get_farmer_orders(self, farmer: Identity, page: int = 0, size: int = 10) -> Page:
        self._validate_paging(page, size)
        profile = self._persistence.get_farmer_by_user_id(farmer.user_id)
        if profile is None:
            raise EntityNotFoundError("Farmer profile not found for current user")
        orders, total = self._persistence.get_orders_for_farmer(profile.id, size, page * size)
        return Page(items=orders, page=page, size=size, total=total)

    def _require_order(self, order_id: int) -> Order:
        order = self._persistence.get_order(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order not found with id: {order_id}")
        return order

    @staticmethod
    def _validate_paging(page: int, size: int) -> None:
        if page < 0:
            raise InvalidArgumentError("Page index must not be negative")
        if size < 1 or size > MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")
