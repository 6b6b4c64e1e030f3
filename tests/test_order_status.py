"""Tests for order status transitions and stock restoration."""

from decimal import Decimal

import pytest

from shop_core.application.change_status import ChangeOrderStatusUseCase
from shop_core.application.create_order import CreateOrderDTO, CreateOrderUseCase, OrderLineDTO
from shop_core.domain.exceptions import InvalidTransitionError, OrderNotFoundError
from shop_core.domain.models import OrderStatus


async def _place(uow, lines, coupon_code=None):
    return await CreateOrderUseCase(uow)(
        CreateOrderDTO(
            customer_id=1,
            items=[OrderLineDTO(product_id=p, quantity=q) for p, q in lines],
            coupon_code=coupon_code,
        )
    )


async def _walk(change, order_id, *statuses):
    order = None
    for status in statuses:
        order = await change(order_id, status)
    return order


class TestTransitions:
    async def test_happy_path(self, uow, make_product):
        product = await make_product()
        order = await _place(uow, [(product.id, 1)])
        change = ChangeOrderStatusUseCase(uow)

        order = await _walk(
            change, order.id,
            OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED,
        )

        assert order.status == OrderStatus.DELIVERED

    async def test_shipped_to_pending_rejected(self, uow, make_product):
        product = await make_product()
        order = await _place(uow, [(product.id, 1)])
        change = ChangeOrderStatusUseCase(uow)
        await _walk(change, order.id, OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await change(order.id, OrderStatus.PENDING)

        assert exc_info.value.current == OrderStatus.SHIPPED
        assert exc_info.value.requested == OrderStatus.PENDING

    async def test_same_status_is_not_a_transition(self, uow, make_product):
        product = await make_product()
        order = await _place(uow, [(product.id, 1)])

        with pytest.raises(InvalidTransitionError):
            await ChangeOrderStatusUseCase(uow)(order.id, OrderStatus.PENDING)

    async def test_cancel_after_shipping_rejected(self, uow, make_product, stock_of):
        product = await make_product(stock=5)
        order = await _place(uow, [(product.id, 2)])
        change = ChangeOrderStatusUseCase(uow)
        await _walk(change, order.id, OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED)

        with pytest.raises(InvalidTransitionError):
            await change(order.id, OrderStatus.CANCELLED)
        assert await stock_of(product.id) == 3

    async def test_unknown_order(self, uow):
        with pytest.raises(OrderNotFoundError):
            await ChangeOrderStatusUseCase(uow)(777, OrderStatus.CONFIRMED)

    async def test_accepts_plain_status_value(self, uow, make_product):
        product = await make_product()
        order = await _place(uow, [(product.id, 1)])

        order = await ChangeOrderStatusUseCase(uow)(order.id, "confirmed")

        assert order.status == OrderStatus.CONFIRMED


class TestCancellation:
    async def test_cancel_restores_stock_once(self, uow, make_product, stock_of):
        a = await make_product(stock=10)
        b = await make_product(stock=4)
        order = await _place(uow, [(a.id, 3), (b.id, 4)])
        assert await stock_of(a.id) == 7
        assert await stock_of(b.id) == 0
        change = ChangeOrderStatusUseCase(uow)

        cancelled = await change(order.id, OrderStatus.CANCELLED)
        again = await change(order.id, OrderStatus.CANCELLED)

        assert cancelled.status == OrderStatus.CANCELLED
        assert again.status == OrderStatus.CANCELLED
        assert await stock_of(a.id) == 10
        assert await stock_of(b.id) == 4

    async def test_cancel_from_processing(self, uow, make_product, stock_of):
        product = await make_product(stock=5)
        order = await _place(uow, [(product.id, 5)])
        change = ChangeOrderStatusUseCase(uow)
        await _walk(change, order.id, OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED)

        assert await stock_of(product.id) == 5

    async def test_cancelled_is_terminal(self, uow, make_product):
        product = await make_product()
        order = await _place(uow, [(product.id, 1)])
        change = ChangeOrderStatusUseCase(uow)
        await change(order.id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidTransitionError):
            await change(order.id, OrderStatus.CONFIRMED)

    async def test_cancel_keeps_items_and_totals(self, uow, make_product):
        product = await make_product(price="7.50")
        order = await _place(uow, [(product.id, 2)])

        cancelled = await ChangeOrderStatusUseCase(uow)(order.id, OrderStatus.CANCELLED)

        assert cancelled.items == order.items
        assert cancelled.total_amount == Decimal("15.00")

    async def test_coupon_usage_is_not_reversed_on_cancel(self, uow, make_product, make_coupon, coupon_of):
        # Отмена заказа не возвращает использование купона
        product = await make_product(price="20.00")
        await make_coupon(code="ONCE", usage_limit=1)
        order = await _place(uow, [(product.id, 1)], coupon_code="ONCE")

        await ChangeOrderStatusUseCase(uow)(order.id, OrderStatus.CANCELLED)

        coupon = await coupon_of("ONCE")
        assert coupon.used_count == 1
        assert coupon.is_exhausted()

    async def test_return_does_not_restore_stock(self, uow, make_product, stock_of):
        product = await make_product(stock=5)
        order = await _place(uow, [(product.id, 2)])
        change = ChangeOrderStatusUseCase(uow)

        order = await _walk(
            change, order.id,
            OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.RETURNED,
        )

        assert order.status == OrderStatus.RETURNED
        assert await stock_of(product.id) == 3
