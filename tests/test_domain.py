"""Tests for domain rules: discounts, totals, status graph."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from shop_core.domain.exceptions import InvalidOrderTotalError, InvalidQuantityError
from shop_core.domain.models import (
    Coupon, DiscountType, Order, OrderItem, OrderStatus, OrderTotals, ensure_quantity,
)


def _coupon(**overrides):
    values = dict(
        id=1,
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        minimum_order_amount=Decimal("100"),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
    )
    values.update(overrides)
    return Coupon(**values)


def _order(status):
    now = datetime(2024, 5, 1)
    return Order(
        id=1,
        customer_id=1,
        order_number="ORD20240501-ABCDEF12",
        status=status,
        subtotal=Decimal("0"),
        tax_amount=Decimal("0"),
        shipping_cost=Decimal("0"),
        discount_amount=Decimal("0"),
        total_amount=Decimal("0"),
        created_at=now,
        updated_at=now,
    )


class TestCouponDiscount:
    def test_percentage_discount(self):
        assert _coupon().discount_for(Decimal("250")) == Decimal("25.00")

    def test_percentage_discount_capped(self):
        coupon = _coupon(max_discount_amount=Decimal("15"))
        assert coupon.discount_for(Decimal("250")) == Decimal("15.00")

    def test_fixed_discount_never_exceeds_subtotal(self):
        coupon = _coupon(discount_type=DiscountType.FIXED_AMOUNT, discount_value=Decimal("50"))
        assert coupon.discount_for(Decimal("30")) == Decimal("30.00")
        assert coupon.discount_for(Decimal("300")) == Decimal("50.00")

    def test_percentage_rounds_to_cents(self):
        coupon = _coupon(discount_value=Decimal("15"))
        assert coupon.discount_for(Decimal("33.33")) == Decimal("5.00")

    def test_date_range_is_inclusive(self):
        coupon = _coupon()
        assert coupon.is_valid_on(date(2024, 1, 1))
        assert coupon.is_valid_on(date(2024, 12, 31))
        assert not coupon.is_valid_on(date(2025, 1, 1))

    def test_exhaustion(self):
        assert not _coupon(usage_limit=None, used_count=500).is_exhausted()
        assert _coupon(usage_limit=2, used_count=2).is_exhausted()
        assert not _coupon(usage_limit=2, used_count=1).is_exhausted()


class TestOrderTotals:
    def test_two_items_with_tax_and_shipping(self):
        items = [
            OrderItem(product_id=1, quantity=2, unit_price=Decimal("10.00")),
            OrderItem(product_id=2, quantity=1, unit_price=Decimal("5.00")),
        ]
        totals = OrderTotals.from_items(items, tax_amount=Decimal("1.50"), shipping_cost=Decimal("5"))

        assert totals.subtotal == Decimal("25.00")
        assert totals.total_amount == Decimal("31.50")
        assert totals.total_amount == (
            totals.subtotal + totals.tax_amount + totals.shipping_cost - totals.discount_amount
        )

    def test_discount_clamped_to_order_amount(self):
        items = [OrderItem(product_id=1, quantity=1, unit_price=Decimal("10.00"))]
        totals = OrderTotals.from_items(items, shipping_cost=Decimal("2"), discount_amount=Decimal("50"))

        assert totals.discount_amount == Decimal("12.00")
        assert totals.total_amount == Decimal("0.00")

    def test_negative_fee_rejected(self):
        items = [OrderItem(product_id=1, quantity=1, unit_price=Decimal("10.00"))]
        with pytest.raises(InvalidOrderTotalError):
            OrderTotals.from_items(items, tax_amount=Decimal("-1"))


class TestStatusGraph:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.CONFIRMED, OrderStatus.PROCESSING),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.SHIPPED, OrderStatus.RETURNED),
            (OrderStatus.DELIVERED, OrderStatus.RETURNED),
        ],
    )
    def test_allowed(self, current, target):
        assert _order(current).can_transition_to(target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.SHIPPED, OrderStatus.PENDING),
            (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.CANCELLED, OrderStatus.PENDING),
            (OrderStatus.RETURNED, OrderStatus.DELIVERED),
        ],
    )
    def test_rejected(self, current, target):
        assert not _order(current).can_transition_to(target)

    def test_terminal_states(self):
        assert _order(OrderStatus.CANCELLED).is_terminal()
        assert _order(OrderStatus.RETURNED).is_terminal()
        assert not _order(OrderStatus.DELIVERED).is_terminal()


class TestQuantity:
    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "2"])
    def test_invalid(self, quantity):
        with pytest.raises(InvalidQuantityError):
            ensure_quantity(quantity)

    def test_valid(self):
        assert ensure_quantity(3) == 3
