from fastapi import APIRouter, Depends, status

from ....application.services.product_service import ProductDraft, ProductService
from ....core.dependencies import get_product_service
from ....domain.models import Identity, Role
from ..dependencies import require_role
from ..schemas.product import ProductCreateRequest, ProductResponse, ProductUpdateRequest

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreateRequest,
    farmer: Identity = Depends(require_role(Role.FARMER)),
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    product = service.create_product(farmer, ProductDraft(**payload.model_dump()))
    return ProductResponse.model_validate(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    return ProductResponse.model_validate(service.get_product(product_id))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdateRequest,
    farmer: Identity = Depends(require_role(Role.FARMER)),
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    product = service.update_product(farmer, product_id, **payload.model_dump(exclude_unset=True))
    return ProductResponse.model_validate(product)
