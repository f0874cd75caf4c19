from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class Product:
    id: int
    farmer_id: int
    farmer_user_id: int
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
