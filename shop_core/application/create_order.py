import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from pydantic import BaseModel, Field

from shop_core.config import settings
from shop_core.domain.models import Order, OrderTotals, ensure_quantity
from shop_core.domain.exceptions import DomainException, EmptyOrderError, OrderNumberConflictError
from shop_core.application.interfaces import UnitOfWork
from shop_core.application.stock_reconciler import StockReconciler
from shop_core.application.coupon_ledger import CouponLedger


logger = logging.getLogger(__name__)


class OrderLineDTO(BaseModel):
    product_id: int
    quantity: int


class CreateOrderDTO(BaseModel):
    customer_id: int
    items: list[OrderLineDTO]
    billing_address_id: int | None = None
    shipping_address_id: int | None = None
    coupon_code: str | None = None
    tax_amount: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    special_instructions: str | None = None
    as_of: date | None = None


class CheckoutCartDTO(BaseModel):
    customer_id: int
    billing_address_id: int | None = None
    shipping_address_id: int | None = None
    coupon_code: str | None = None
    tax_amount: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    special_instructions: str | None = None
    as_of: date | None = None


class PlacedOrder(BaseModel):
    """Записанный, но еще не закоммиченный заказ"""
    order_id: int
    low_stock: list[int] = Field(default_factory=list)


def generate_order_number(prefix: str | None = None) -> str:
    prefix = settings.ORDER_NUMBER_PREFIX if prefix is None else prefix
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{prefix}{today}-{uuid.uuid4().hex[:8].upper()}"


def log_low_stock(order: Order, placed: PlacedOrder) -> None:
    if placed.low_stock:
        logger.warning(
            f"Заказ {order.order_number}: товары ниже уровня дозаказа {placed.low_stock}"
        )


class CreateOrderUseCase:
    def __init__(
        self,
        unit_of_work,
        stock_reconciler: StockReconciler | None = None,
        coupon_ledger: CouponLedger | None = None,
    ):
        self._uow = unit_of_work
        self._stock = stock_reconciler or StockReconciler()
        self._coupons = coupon_ledger or CouponLedger()
        self._number_attempts = max(1, settings.STORAGE_RETRY_ATTEMPTS)

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        logger.info(f"Создание заказа для покупателя {order_data.customer_id}, позиций: {len(order_data.items)}")

        async with self._uow() as uow:
            placed = await self.place(uow, order_data)
            order = await uow.orders.get_by_id(placed.order_id)
            await uow.commit()

        logger.info(f"Заказ создан: {order.order_number}, сумма {order.total_amount}")
        log_low_stock(order, placed)
        return order

    async def place(self, uow: UnitOfWork, order_data: CreateOrderDTO) -> PlacedOrder:
        """Резерв, расчет сумм, купон и запись заказа в одной транзакции uow.

        Ничего не коммитит: при любой ошибке списание откатывается вместе
        с транзакцией, а при доменной ошибке дополнительно компенсируется явно.
        """
        if not order_data.items:
            raise EmptyOrderError("Заказ должен содержать хотя бы одну позицию")
        lines = [(line.product_id, ensure_quantity(line.quantity)) for line in order_data.items]

        # 1. Резерв остатков с фиксацией цены
        reservation = await self._stock.reserve_on_create(uow, lines)

        try:
            # 2. Купон
            subtotal = OrderTotals.from_items(reservation.items).subtotal
            coupon, discount = None, Decimal("0")
            if order_data.coupon_code:
                coupon, discount = await self._coupons.validate(
                    uow, order_data.coupon_code, subtotal, order_data.as_of
                )

            # 3. Расчет суммы
            totals = OrderTotals.from_items(
                reservation.items,
                tax_amount=order_data.tax_amount,
                shipping_cost=order_data.shipping_cost,
                discount_amount=discount,
            )

            # 4. Создание заказа; при совпадении номера берем новый
            order_id = None
            for _ in range(self._number_attempts):
                order_id = await uow.orders.create(
                    customer_id=order_data.customer_id,
                    order_number=generate_order_number(),
                    totals=totals,
                    items=reservation.items,
                    billing_address_id=order_data.billing_address_id,
                    shipping_address_id=order_data.shipping_address_id,
                    special_instructions=order_data.special_instructions,
                )
                if order_id is not None:
                    break
            if order_id is None:
                raise OrderNumberConflictError(self._number_attempts)

            if coupon:
                await self._coupons.record(uow, order_id, coupon, totals.discount_amount)
        except DomainException as e:
            logger.warning(f"Заказ покупателя {order_data.customer_id} отклонен: {e}")
            await self._stock.release(uow, reservation)
            raise

        return PlacedOrder(order_id=order_id, low_stock=reservation.low_stock)


class CheckoutCartUseCase:
    """Оформление заказа из корзины; корзина очищается в той же транзакции"""

    def __init__(self, unit_of_work, create_order: CreateOrderUseCase | None = None):
        self._uow = unit_of_work
        self._create_order = create_order or CreateOrderUseCase(unit_of_work)

    async def __call__(self, checkout: CheckoutCartDTO) -> Order:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_customer(checkout.customer_id)
            if not cart or not cart.items:
                raise EmptyOrderError(f"Корзина покупателя {checkout.customer_id} пуста")

            order_data = CreateOrderDTO(
                items=[
                    OrderLineDTO(product_id=product_id, quantity=quantity)
                    for product_id, quantity in cart.lines()
                ],
                **checkout.model_dump(),
            )
            placed = await self._create_order.place(uow, order_data)
            await uow.carts.clear(checkout.customer_id)
            order = await uow.orders.get_by_id(placed.order_id)
            await uow.commit()

        logger.info(f"Корзина покупателя {checkout.customer_id} оформлена в заказ {order.order_number}")
        log_low_stock(order, placed)
        return order
