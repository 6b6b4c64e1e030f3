from sqlalchemy import (
    Table, Column, String, Integer, Boolean, Numeric, Date, DateTime, Text, Enum,
    MetaData, ForeignKey, CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.sql import func

from shop_core.domain.models import OrderStatus, DiscountType

metadata = MetaData()


def _enum(enum_cls, name: str) -> Enum:
    # В БД храним значения ("pending"), а не имена членов enum
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


products_tbl = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("sku", String(50), unique=True, nullable=True),
    Column("price", Numeric(12, 2), nullable=False),
    Column("stock_quantity", Integer, nullable=False, default=0),
    Column("reorder_level", Integer, nullable=False, default=10),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    CheckConstraint("price > 0", name="chk_price_positive"),
    CheckConstraint("stock_quantity >= 0", name="chk_stock_non_negative"),
)


carts_tbl = Table(
    "carts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, nullable=False, unique=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
)


cart_items_tbl = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("cart_id", Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("quantity", Integer, nullable=False, default=1),
    Column("added_at", DateTime(timezone=True), server_default=func.now()),
    CheckConstraint("quantity > 0", name="chk_quantity_positive"),
    UniqueConstraint("cart_id", "product_id", name="unique_cart_product"),
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, nullable=False, index=True),
    Column("order_number", String(32), nullable=False, unique=True),
    Column("status", _enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING),
    Column("subtotal", Numeric(12, 2), nullable=False),
    Column("tax_amount", Numeric(12, 2), nullable=False, default=0),
    Column("shipping_cost", Numeric(12, 2), nullable=False, default=0),
    Column("discount_amount", Numeric(12, 2), nullable=False, default=0),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("billing_address_id", Integer, nullable=True),
    Column("shipping_address_id", Integer, nullable=True),
    Column("special_instructions", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    CheckConstraint("subtotal >= 0", name="chk_subtotal_positive"),
    CheckConstraint("total_amount >= 0", name="chk_total_positive"),
    Index("idx_orders_status", "status"),
)


order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(12, 2), nullable=False),
    Column("total_price", Numeric(12, 2), nullable=False),
    CheckConstraint("quantity > 0", name="chk_order_quantity_positive"),
    CheckConstraint("unit_price >= 0", name="chk_unit_price_positive"),
)


coupons_tbl = Table(
    "coupons",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(50), nullable=False, unique=True),
    Column("name", String(100), nullable=False, default=""),
    Column("description", Text, nullable=True),
    Column("discount_type", _enum(DiscountType, "discount_type"), nullable=False),
    Column("discount_value", Numeric(12, 2), nullable=False),
    Column("minimum_order_amount", Numeric(12, 2), nullable=False, default=0),
    Column("max_discount_amount", Numeric(12, 2), nullable=True),
    Column("usage_limit", Integer, nullable=True),
    Column("used_count", Integer, nullable=False, default=0),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    CheckConstraint("discount_value > 0", name="chk_discount_value_positive"),
    CheckConstraint("end_date >= start_date", name="chk_end_date_after_start"),
    CheckConstraint("usage_limit IS NULL OR usage_limit > 0", name="chk_usage_limit_positive"),
)


order_coupons_tbl = Table(
    "order_coupons",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="RESTRICT"), nullable=False),
    Column("discount_applied", Numeric(12, 2), nullable=False),
    Column("applied_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("order_id", "coupon_id", name="unique_order_coupon"),
)
