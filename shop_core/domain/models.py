from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from pydantic import BaseModel, Field

from shop_core.domain.exceptions import InvalidOrderTotalError, InvalidQuantityError

CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Приведение суммы к копейкам (DECIMAL(12,2))"""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class Product(BaseModel):
    """Value Object — товар из каталога"""
    id: int
    name: str
    price: Decimal
    stock_quantity: int
    reorder_level: int = 10
    is_active: bool = True

    def needs_reorder(self) -> bool:
        return self.stock_quantity <= self.reorder_level


class CartItem(BaseModel):
    product_id: int
    quantity: int
    added_at: datetime


class Cart(BaseModel):
    """Корзина покупателя — одна на покупателя"""
    id: int
    customer_id: int
    items: list[CartItem] = Field(default_factory=list)

    def lines(self) -> list[tuple[int, int]]:
        return [(item.product_id, item.quantity) for item in self.items]


class Coupon(BaseModel):
    id: int
    code: str
    name: str = ""
    discount_type: DiscountType
    discount_value: Decimal
    minimum_order_amount: Decimal = Decimal("0.00")
    max_discount_amount: Decimal | None = None
    usage_limit: int | None = None
    used_count: int = 0
    start_date: date
    end_date: date
    is_active: bool = True

    def is_valid_on(self, as_of: date) -> bool:
        return self.start_date <= as_of <= self.end_date

    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def discount_for(self, subtotal: Decimal) -> Decimal:
        """Бизнес-правило: размер скидки для суммы заказа"""
        if self.discount_type == DiscountType.FIXED_AMOUNT:
            return money(min(self.discount_value, subtotal))
        discount = subtotal * self.discount_value / Decimal(100)
        if self.max_discount_amount is not None:
            discount = min(discount, self.max_discount_amount)
        return money(discount)


class OrderItem(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return money(self.unit_price * self.quantity)


class OrderCoupon(BaseModel):
    coupon_id: int
    code: str
    discount_applied: Decimal
    applied_at: datetime | None = None


class OrderTotals(BaseModel):
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    @classmethod
    def from_items(
        cls,
        items: list[OrderItem],
        tax_amount: Decimal = Decimal("0"),
        shipping_cost: Decimal = Decimal("0"),
        discount_amount: Decimal = Decimal("0"),
    ) -> "OrderTotals":
        """total = subtotal + tax + shipping - discount; скидка не уводит сумму в минус"""
        subtotal = money(sum((item.total_price for item in items), Decimal("0")))
        tax_amount = money(tax_amount)
        shipping_cost = money(shipping_cost)
        discount_amount = money(discount_amount)
        if subtotal < 0 or tax_amount < 0 or shipping_cost < 0 or discount_amount < 0:
            raise InvalidOrderTotalError("Суммы заказа не могут быть отрицательными")
        discount_amount = min(discount_amount, subtotal + tax_amount + shipping_cost)
        total_amount = subtotal + tax_amount + shipping_cost - discount_amount
        if total_amount < 0:
            raise InvalidOrderTotalError(f"Итоговая сумма заказа отрицательна: {total_amount}")
        return cls(
            subtotal=subtotal,
            tax_amount=tax_amount,
            shipping_cost=shipping_cost,
            discount_amount=discount_amount,
            total_amount=total_amount,
        )


class Order(BaseModel):
    """Domain Entity — заказ"""
    id: int
    customer_id: int
    order_number: str
    status: OrderStatus
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    billing_address_id: int | None = None
    shipping_address_id: int | None = None
    special_instructions: str | None = None
    items: list[OrderItem] = Field(default_factory=list)
    coupons: list[OrderCoupon] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def can_transition_to(self, status: OrderStatus) -> bool:
        """Бизнес-правило: переходы только по графу статусов"""
        return status in ALLOWED_TRANSITIONS[self.status]

    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def reserved_quantities(self) -> dict[int, int]:
        quantities: dict[int, int] = {}
        for item in self.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        return quantities


def ensure_quantity(quantity) -> int:
    """Бизнес-правило: количество — целое положительное число"""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(quantity)
    return quantity
