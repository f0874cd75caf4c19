from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class ProductCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=150)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: float = Field(gt=0)
    unit: str = Field(min_length=1, max_length=20)
    minimum_order_quantity: float = Field(default=1, gt=0)
    max_available_quantity: Optional[float] = Field(default=None, gt=0)
    is_in_stock: bool = True
    is_organic: bool = True


class ProductUpdateRequest(CamelModel):
    price: Optional[float] = Field(default=None, gt=0)
    minimum_order_quantity: Optional[float] = Field(default=None, gt=0)
    max_available_quantity: Optional[float] = Field(default=None, gt=0)
    is_in_stock: Optional[bool] = None


class ProductResponse(CamelModel):
    id: int
    farmer_id: int
    farm_name: str
    name: str
    description: Optional[str]
    price: float
    unit: str
    minimum_order_quantity: float
    max_available_quantity: Optional[float]
    is_in_stock: bool
    is_organic: bool
    created_at: datetime
    updated_at: datetime
