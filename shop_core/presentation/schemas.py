from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from shop_core.domain.models import OrderStatus


class AddCartItemRequest(BaseModel):
    product_id: int
    quantity: int


class CartLineResponse(BaseModel):
    product_id: int
    quantity: int


class CartResponse(BaseModel):
    customer_id: int
    items: list[CartLineResponse]

    @classmethod
    def from_lines(cls, customer_id: int, lines: list[tuple[int, int]]):
        return cls(
            customer_id=customer_id,
            items=[CartLineResponse(product_id=p, quantity=q) for p, q in lines],
        )


class OrderLineRequest(BaseModel):
    product_id: int
    quantity: int


class CheckoutRequest(BaseModel):
    billing_address_id: Optional[int] = None
    shipping_address_id: Optional[int] = None
    coupon_code: Optional[str] = None
    tax_amount: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    special_instructions: Optional[str] = None


class CreateOrderRequest(CheckoutRequest):
    customer_id: int
    items: list[OrderLineRequest]


class ChangeStatusRequest(BaseModel):
    status: OrderStatus


class ValidateCouponRequest(BaseModel):
    code: str
    order_subtotal: Decimal
    as_of: Optional[date] = None


class ValidateCouponResponse(BaseModel):
    coupon_id: int
    code: str
    discount_amount: Decimal


class OrderItemResponse(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderCouponResponse(BaseModel):
    code: str
    discount_applied: Decimal


class OrderResponse(BaseModel):
    id: int
    customer_id: int
    order_number: str
    status: OrderStatus
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    billing_address_id: Optional[int] = None
    shipping_address_id: Optional[int] = None
    special_instructions: Optional[str] = None
    items: list[OrderItemResponse]
    coupons: list[OrderCouponResponse]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            order_number=order.order_number,
            status=order.status,
            subtotal=order.subtotal,
            tax_amount=order.tax_amount,
            shipping_cost=order.shipping_cost,
            discount_amount=order.discount_amount,
            total_amount=order.total_amount,
            billing_address_id=order.billing_address_id,
            shipping_address_id=order.shipping_address_id,
            special_instructions=order.special_instructions,
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in order.items
            ],
            coupons=[
                OrderCouponResponse(code=c.code, discount_applied=c.discount_applied)
                for c in order.coupons
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class ErrorResponse(BaseModel):
    detail: str
