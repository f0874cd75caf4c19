from fastapi import APIRouter, Depends, Query, status

from ....application.services.order_service import OrderService
from ....core.dependencies import get_order_service
from ....domain.models import Identity, OrderLine, OrderStatus, Role
from ..dependencies import get_current_identity, require_role
from ..schemas.order import OrderCreateRequest, OrderPageResponse, OrderResponse

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateRequest,
    customer: Identity = Depends(require_role(Role.CUSTOMER)),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    lines = [OrderLine(product_id=item.product_id, quantity=item.quantity) for item in payload.items]
    order = service.create_order(customer, lines, notes=payload.notes)
    return OrderResponse.model_validate(order)


# Registered before "/{order_id}" so the literal paths win.
@router.get("/my-orders", response_model=OrderPageResponse)
async def my_orders(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    customer: Identity = Depends(require_role(Role.CUSTOMER)),
    service: OrderService = Depends(get_order_service),
) -> OrderPageResponse:
    return OrderPageResponse.from_page(service.get_customer_orders(customer, page, size))


@router.get("/farmer-orders", response_model=OrderPageResponse)
async def farmer_orders(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    farmer: Identity = Depends(require_role(Role.FARMER)),
    service: OrderService = Depends(get_order_service),
) -> OrderPageResponse:
    return OrderPageResponse.from_page(service.get_farmer_orders(farmer, page, size))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    identity: Identity = Depends(get_current_identity),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return OrderResponse.model_validate(service.get_order_by_id(order_id, identity))


@router.put("/{order_id}/accept", response_model=OrderResponse)
async def accept_order(
    order_id: int,
    farmer: Identity = Depends(require_role(Role.FARMER)),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return OrderResponse.model_validate(service.update_order_status(order_id, OrderStatus.CONFIRMED, farmer))


@router.put("/{order_id}/reject", response_model=OrderResponse)
async def reject_order(
    order_id: int,
    farmer: Identity = Depends(require_role(Role.FARMER)),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return OrderResponse.model_validate(service.update_order_status(order_id, OrderStatus.REJECTED, farmer))
