import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status

from shop_core.database import AsyncSessionLocal
from shop_core.presentation.schemas import (
    AddCartItemRequest, CartResponse, CheckoutRequest, CreateOrderRequest, OrderResponse,
    ChangeStatusRequest, ValidateCouponRequest, ValidateCouponResponse, ErrorResponse,
)
from shop_core.application.add_to_cart import AddToCartUseCase, AddToCartDTO
from shop_core.application.get_cart import GetCartUseCase, ClearCartUseCase
from shop_core.application.coupon_ledger import ValidateCouponUseCase, ValidateCouponDTO
from shop_core.application.create_order import (
    CreateOrderUseCase, CreateOrderDTO, OrderLineDTO, CheckoutCartUseCase, CheckoutCartDTO,
)
from shop_core.application.change_status import ChangeOrderStatusUseCase
from shop_core.application.get_order import GetOrderUseCase, ListCustomerOrdersUseCase
from shop_core.domain.exceptions import (
    DomainException, ProductNotFoundError, OrderNotFoundError, CouponNotFoundError,
    InsufficientStockError, CouponExhaustedError, OrderNumberConflictError,
)
from shop_core.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def get_unit_of_work() -> UnitOfWork:
    return UnitOfWork(AsyncSessionLocal)


# Фабрики для создания use cases
def get_add_to_cart_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return AddToCartUseCase(uow)


def get_get_cart_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetCartUseCase(uow)


def get_clear_cart_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ClearCartUseCase(uow)


def get_checkout_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return CheckoutCartUseCase(uow)


def get_validate_coupon_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ValidateCouponUseCase(uow)


def get_create_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return CreateOrderUseCase(uow)


def get_get_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetOrderUseCase(uow)


def get_list_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListCustomerOrdersUseCase(uow)


def get_change_status_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ChangeOrderStatusUseCase(uow)


def to_http_error(error: Exception) -> HTTPException:
    if isinstance(error, (ProductNotFoundError, OrderNotFoundError, CouponNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (InsufficientStockError, CouponExhaustedError, OrderNumberConflictError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, DomainException):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    logger.error(f"Необработанная ошибка: {error}", exc_info=error)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Service unavailable: {error}")


@router.post("/carts/{customer_id}/items", response_model=CartResponse, responses=ERROR_RESPONSES)
async def add_cart_item(
    customer_id: int,
    request: AddCartItemRequest,
    use_case: AddToCartUseCase = Depends(get_add_to_cart_use_case)
):
    """Добавить товар в корзину"""
    try:
        cart = await use_case(AddToCartDTO(customer_id=customer_id, **request.model_dump()))
        return CartResponse.from_lines(customer_id, cart.lines())
    except Exception as e:
        raise to_http_error(e)


@router.get("/carts/{customer_id}", response_model=CartResponse)
async def get_cart(
    customer_id: int,
    use_case: GetCartUseCase = Depends(get_get_cart_use_case)
):
    """Содержимое корзины"""
    return CartResponse.from_lines(customer_id, await use_case(customer_id))


@router.delete("/carts/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(
    customer_id: int,
    use_case: ClearCartUseCase = Depends(get_clear_cart_use_case)
):
    """Очистить корзину"""
    await use_case(customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/carts/{customer_id}/checkout",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED
)
async def checkout_cart(
    customer_id: int,
    request: CheckoutRequest,
    use_case: CheckoutCartUseCase = Depends(get_checkout_use_case)
):
    """Оформить заказ из корзины"""
    try:
        order = await use_case(CheckoutCartDTO(customer_id=customer_id, **request.model_dump()))
        return OrderResponse.from_domain(order)
    except Exception as e:
        raise to_http_error(e)


@router.post("/coupons/validate", response_model=ValidateCouponResponse, responses=ERROR_RESPONSES)
async def validate_coupon(
    request: ValidateCouponRequest,
    use_case: ValidateCouponUseCase = Depends(get_validate_coupon_use_case)
):
    """Проверить купон для суммы заказа"""
    try:
        coupon, discount = await use_case(ValidateCouponDTO(**request.model_dump()))
        return ValidateCouponResponse(coupon_id=coupon.id, code=coupon.code, discount_amount=discount)
    except Exception as e:
        raise to_http_error(e)


@router.post(
    "/orders",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED
)
async def create_order(
    request: CreateOrderRequest,
    use_case: CreateOrderUseCase = Depends(get_create_order_use_case)
):
    """Создать новый заказ"""
    try:
        dto = CreateOrderDTO(
            customer_id=request.customer_id,
            items=[OrderLineDTO(product_id=i.product_id, quantity=i.quantity) for i in request.items],
            billing_address_id=request.billing_address_id,
            shipping_address_id=request.shipping_address_id,
            coupon_code=request.coupon_code,
            tax_amount=request.tax_amount,
            shipping_cost=request.shipping_cost,
            special_instructions=request.special_instructions,
        )
        order = await use_case(dto)
        return OrderResponse.from_domain(order)
    except Exception as e:
        raise to_http_error(e)


@router.get("/orders/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order(
    order_id: int,
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    """Получить заказ по ID"""
    try:
        order = await use_case(order_id)
        return OrderResponse.from_domain(order)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Заказ не найден")


@router.get("/customers/{customer_id}/orders", response_model=list[OrderResponse])
async def list_customer_orders(
    customer_id: int,
    use_case: ListCustomerOrdersUseCase = Depends(get_list_orders_use_case)
):
    """Заказы покупателя, новые первыми"""
    return [OrderResponse.from_domain(order) for order in await use_case(customer_id)]


@router.post("/orders/{order_id}/status", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def change_order_status(
    order_id: int,
    request: ChangeStatusRequest,
    use_case: ChangeOrderStatusUseCase = Depends(get_change_status_use_case)
):
    """Сменить статус заказа"""
    try:
        order = await use_case(order_id, request.status)
        return OrderResponse.from_domain(order)
    except Exception as e:
        raise to_http_error(e)
