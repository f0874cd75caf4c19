from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...domain.exceptions import AccessDeniedError, EntityNotFoundError, InvalidArgumentError
from ...domain.models import Identity, Product
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProductDraft:
    name: str
    price: float
    unit: str
    description: Optional[str] = None
    minimum_order_quantity: float = 1
    max_available_quantity: Optional[float] = None
    is_in_stock: bool = True
    is_organic: bool = True


class ProductService:
    """Minimal catalog: farmers list products that customers can order."""

    def __init__(self, persistence: PersistenceGateway) -> None:
        self._persistence = persistence

    def create_product(self, farmer: Identity, draft: ProductDraft) -> Product:
        profile = self._persistence.get_farmer_by_user_id(farmer.user_id)
        if profile is None:
            raise EntityNotFoundError("Farmer profile not found for current user")
        self._validate_quantities(draft.price, draft.minimum_order_quantity, draft.max_available_quantity)
        if not draft.name.strip():
            raise InvalidArgumentError("Product name is required")

        product = self._persistence.create_product(
            farmer_id=profile.id,
            name=draft.name.strip(),
            description=draft.description,
            price=draft.price,
            unit=draft.unit,
            minimum_order_quantity=draft.minimum_order_quantity,
            max_available_quantity=draft.max_available_quantity,
            is_in_stock=draft.is_in_stock,
            is_organic=draft.is_organic,
        )
        logger.info("Product %s created by farmer %s", product.id, profile.id)
        return product

    def get_product(self, product_id: int) -> Product:
        product = self._persistence.get_product(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found with id: {product_id}")
        return product

    def update_product(
        self,
        farmer: Identity,
        product_id: int,
        *,
        price: Optional[float] = None,
        minimum_order_quantity: Optional[float] = None,
        max_available_quantity: Optional[float] = None,
        is_in_stock: Optional[bool] = None,
    ) -> Product:
        product = self.get_product(product_id)
        if product.farmer_user_id != farmer.user_id:
            raise AccessDeniedError("You can only update your own products")
        self._validate_quantities(
            price if price is not None else product.price,
            minimum_order_quantity if minimum_order_quantity is not None else product.minimum_order_quantity,
            max_available_quantity if max_available_quantity is not None else product.max_available_quantity,
        )
        return self._persistence.update_product(
            product_id,
            price=price,
            minimum_order_quantity=minimum_order_quantity,
            max_available_quantity=max_available_quantity,
            is_in_stock=is_in_stock,
        )

    @staticmethod
    def _validate_quantities(price: float, minimum: float, maximum: Optional[float]) -> None:
        if price <= 0:
            raise InvalidArgumentError("Price must be greater than zero")
        if minimum <= 0:
            raise InvalidArgumentError("Minimum order quantity must be greater than zero")
        if maximum is not None and maximum < minimum:
            raise InvalidArgumentError("Max available quantity cannot be below the minimum order quantity")
