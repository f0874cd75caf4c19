from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class OrderStatus(str, Enum):
    PROCESSING = "PROCESSING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PROCESSING


@dataclass(slots=True)
class OrderItem:
    id: int
    order_id: int
    product_id: int
    product_name: str
    farmer_id: int
    farmer_user_id: int
    farm_name: str
    quantity: float
    # Unit price captured when the order was placed.
    price: float

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass(slots=True)
class Order:
    id: int
    customer_id: int
    customer_email: str
    customer_name: Optional[str]
    status: OrderStatus
    total_price: float
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItem] = field(default_factory=list)

    def involves_farmer(self, user_id: int) -> bool:
        return any(item.farmer_user_id == user_id for item in self.items)


@dataclass(frozen=True, slots=True)
class OrderLine:
    """Requested product and quantity, before validation."""

    product_id: int
    quantity: float


@dataclass(slots=True)
class Page:
    items: list
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size
