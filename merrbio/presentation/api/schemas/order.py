from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ....domain.models import OrderStatus, Page
from .common import CamelModel


class OrderItemRequest(CamelModel):
    product_id: int
    quantity: float = Field(gt=0)


class OrderCreateRequest(CamelModel):
    items: List[OrderItemRequest]
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderItemResponse(CamelModel):
    id: int
    product_id: int
    product_name: str
    farmer_id: int
    farm_name: str
    quantity: float
    price: float
    line_total: float


class OrderResponse(CamelModel):
    id: int
    customer_id: int
    customer_email: str
    customer_name: Optional[str]
    status: OrderStatus
    total_price: float
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]


class OrderPageResponse(CamelModel):
    items: List[OrderResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page) -> "OrderPageResponse":
        return cls(
            items=[OrderResponse.model_validate(order) for order in page.items],
            page=page.page,
            size=page.size,
            total_elements=page.total,
            total_pages=page.total_pages,
        )
