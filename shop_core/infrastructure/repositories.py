import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import select, insert, update, delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from shop_core.domain.models import (
    Product, Cart, CartItem, Coupon, DiscountType, Order, OrderItem, OrderCoupon,
    OrderStatus, OrderTotals,
)
from shop_core.infrastructure.db_schema import (
    products_tbl, carts_tbl, cart_items_tbl, orders_tbl, order_items_tbl,
    coupons_tbl, order_coupons_tbl,
)
from shop_core.application.interfaces import (
    ProductRepository, CartRepository, CouponRepository, OrderRepository,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _violates(error: IntegrityError, *markers: str) -> bool:
    # PostgreSQL называет ограничение, SQLite перечисляет колонки
    message = str(error.orig)
    return any(marker in message for marker in markers)


class _SQLAlchemyRepository:
    def __init__(self, session: AsyncSession, retry_attempts: int = 3, retry_delay: float = 0.05):
        self._session = session
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay

    async def _retrying(self, operation, what: str):
        """Выполняет атомарный шаг в SAVEPOINT, повторяя при конфликте блокировок.

        После исчерпания попыток возвращает None — для вызывающего это
        неотличимо от честного отказа условия.
        """
        for attempt in range(1, self._retry_attempts + 1):
            try:
                async with self._session.begin_nested():
                    return await operation()
            except OperationalError as e:
                logger.warning(
                    f"Конфликт хранилища при {what} (попытка {attempt}/{self._retry_attempts}): {e}"
                )
                if attempt < self._retry_attempts:
                    await asyncio.sleep(self._retry_delay)
        logger.error(f"Не удалось выполнить {what} после {self._retry_attempts} попыток")
        return None

    def _dialect_insert(self, table):
        if self._session.get_bind().dialect.name == "postgresql":
            return postgresql.insert(table)
        return sqlite.insert(table)


class SQLAlchemyProductRepository(_SQLAlchemyRepository, ProductRepository):
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def conditional_decrement_stock(self, product_id: int, amount: int) -> Optional[Product]:
        stmt = (
            update(products_tbl)
            .where(
                products_tbl.c.id == product_id,
                products_tbl.c.is_active.is_(True),
                products_tbl.c.stock_quantity >= amount,
            )
            .values(
                stock_quantity=products_tbl.c.stock_quantity - amount,
                updated_at=_now(),
            )
            .returning(*products_tbl.c)
        )

        async def decrement():
            result = await self._session.execute(stmt)
            row = result.fetchone()
            return self._to_domain(row) if row else None

        return await self._retrying(decrement, f"резервировании товара {product_id}")

    async def increment_stock(self, product_id: int, amount: int) -> None:
        await self._session.execute(
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(
                stock_quantity=products_tbl.c.stock_quantity + amount,
                updated_at=_now(),
            )
        )

    def _to_domain(self, row) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            price=row.price,
            stock_quantity=row.stock_quantity,
            reorder_level=row.reorder_level,
            is_active=row.is_active,
        )


class SQLAlchemyCartRepository(_SQLAlchemyRepository, CartRepository):
    async def get_or_create(self, customer_id: int) -> int:
        await self._session.execute(
            self._dialect_insert(carts_tbl)
            .values(customer_id=customer_id)
            .on_conflict_do_nothing(index_elements=["customer_id"])
        )
        result = await self._session.execute(
            select(carts_tbl.c.id).where(carts_tbl.c.customer_id == customer_id)
        )
        return result.scalar_one()

    async def upsert_item(self, cart_id: int, product_id: int, quantity: int) -> int:
        now = _now()
        stmt = self._dialect_insert(cart_items_tbl).values(
            cart_id=cart_id,
            product_id=product_id,
            quantity=quantity,
            added_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["cart_id", "product_id"],
            set_={
                "quantity": cart_items_tbl.c.quantity + stmt.excluded.quantity,
                "added_at": now,
            },
        ).returning(cart_items_tbl.c.quantity)
        result = await self._session.execute(stmt)
        await self._session.execute(
            update(carts_tbl).where(carts_tbl.c.id == cart_id).values(updated_at=now)
        )
        return result.scalar_one()

    async def get_by_customer(self, customer_id: int) -> Optional[Cart]:
        result = await self._session.execute(
            select(carts_tbl).where(carts_tbl.c.customer_id == customer_id)
        )
        cart_row = result.fetchone()
        if not cart_row:
            return None

        result = await self._session.execute(
            select(cart_items_tbl)
            .where(cart_items_tbl.c.cart_id == cart_row.id)
            .order_by(cart_items_tbl.c.id.asc())
        )
        return Cart(
            id=cart_row.id,
            customer_id=cart_row.customer_id,
            items=[
                CartItem(product_id=row.product_id, quantity=row.quantity, added_at=row.added_at)
                for row in result.fetchall()
            ],
        )

    async def clear(self, customer_id: int) -> None:
        cart_ids = select(carts_tbl.c.id).where(carts_tbl.c.customer_id == customer_id)
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.cart_id.in_(cart_ids.scalar_subquery()))
        )


class SQLAlchemyCouponRepository(_SQLAlchemyRepository, CouponRepository):
    async def get_by_code(self, code: str) -> Optional[Coupon]:
        result = await self._session.execute(
            select(coupons_tbl).where(coupons_tbl.c.code == code)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def link_to_order(self, order_id: int, coupon_id: int, discount: Decimal) -> bool:
        try:
            async with self._session.begin_nested():
                await self._session.execute(
                    insert(order_coupons_tbl).values(
                        order_id=order_id,
                        coupon_id=coupon_id,
                        discount_applied=discount,
                        applied_at=_now(),
                    )
                )
        except IntegrityError as e:
            if _violates(e, "unique_order_coupon", "order_coupons.order_id, order_coupons.coupon_id"):
                return False
            raise
        return True

    async def increment_usage(self, coupon_id: int) -> bool:
        stmt = (
            update(coupons_tbl)
            .where(
                coupons_tbl.c.id == coupon_id,
                (coupons_tbl.c.usage_limit.is_(None))
                | (coupons_tbl.c.used_count < coupons_tbl.c.usage_limit),
            )
            .values(used_count=coupons_tbl.c.used_count + 1)
        )

        async def compare_and_increment():
            result = await self._session.execute(stmt)
            return result.rowcount == 1

        return bool(await self._retrying(compare_and_increment, f"учете купона {coupon_id}"))

    def _to_domain(self, row) -> Coupon:
        return Coupon(
            id=row.id,
            code=row.code,
            name=row.name,
            discount_type=DiscountType(row.discount_type),
            discount_value=row.discount_value,
            minimum_order_amount=row.minimum_order_amount,
            max_discount_amount=row.max_discount_amount,
            usage_limit=row.usage_limit,
            used_count=row.used_count,
            start_date=row.start_date,
            end_date=row.end_date,
            is_active=row.is_active,
        )


class SQLAlchemyOrderRepository(_SQLAlchemyRepository, OrderRepository):
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        if not row:
            return None
        return (await self._load([row]))[0]

    async def list_by_customer(self, customer_id: int) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.customer_id == customer_id)
            .order_by(orders_tbl.c.created_at.desc(), orders_tbl.c.id.desc())
        )
        return await self._load(result.fetchall())

    async def create(
        self,
        customer_id: int,
        order_number: str,
        totals: OrderTotals,
        items: List[OrderItem],
        billing_address_id: int | None = None,
        shipping_address_id: int | None = None,
        special_instructions: str | None = None,
    ) -> Optional[int]:
        now = _now()
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(
                    insert(orders_tbl)
                    .values(
                        customer_id=customer_id,
                        order_number=order_number,
                        status=OrderStatus.PENDING,
                        subtotal=totals.subtotal,
                        tax_amount=totals.tax_amount,
                        shipping_cost=totals.shipping_cost,
                        discount_amount=totals.discount_amount,
                        total_amount=totals.total_amount,
                        billing_address_id=billing_address_id,
                        shipping_address_id=shipping_address_id,
                        special_instructions=special_instructions,
                        created_at=now,
                        updated_at=now,
                    )
                    .returning(orders_tbl.c.id)
                )
                order_id = result.scalar_one()
        except IntegrityError as e:
            if _violates(e, "order_number"):
                logger.warning(f"Номер заказа {order_number} уже занят")
                return None
            raise

        await self._session.execute(
            insert(order_items_tbl),
            [
                {
                    "order_id": order_id,
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "total_price": item.total_price,
                }
                for item in items
            ],
        )
        return order_id

    async def compare_and_set_status(
        self, order_id: int, expected: OrderStatus, status: OrderStatus
    ) -> bool:
        result = await self._session.execute(
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id, orders_tbl.c.status == expected)
            .values(status=status, updated_at=_now())
        )
        return result.rowcount == 1

    async def _load(self, rows) -> List[Order]:
        if not rows:
            return []
        order_ids = [row.id for row in rows]

        items_result = await self._session.execute(
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id.in_(order_ids))
            .order_by(order_items_tbl.c.id.asc())
        )
        items: dict[int, list[OrderItem]] = {}
        for item in items_result.fetchall():
            items.setdefault(item.order_id, []).append(
                OrderItem(product_id=item.product_id, quantity=item.quantity, unit_price=item.unit_price)
            )

        coupons_result = await self._session.execute(
            select(order_coupons_tbl, coupons_tbl.c.code)
            .join(coupons_tbl, coupons_tbl.c.id == order_coupons_tbl.c.coupon_id)
            .where(order_coupons_tbl.c.order_id.in_(order_ids))
            .order_by(order_coupons_tbl.c.id.asc())
        )
        coupons: dict[int, list[OrderCoupon]] = {}
        for link in coupons_result.fetchall():
            coupons.setdefault(link.order_id, []).append(
                OrderCoupon(
                    coupon_id=link.coupon_id,
                    code=link.code,
                    discount_applied=link.discount_applied,
                    applied_at=link.applied_at,
                )
            )

        return [self._to_domain(row, items.get(row.id, []), coupons.get(row.id, [])) for row in rows]

    def _to_domain(self, row, items: list[OrderItem], coupons: list[OrderCoupon]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            customer_id=row.customer_id,
            order_number=row.order_number,
            status=OrderStatus(row.status),
            subtotal=row.subtotal,
            tax_amount=row.tax_amount,
            shipping_cost=row.shipping_cost,
            discount_amount=row.discount_amount,
            total_amount=row.total_amount,
            billing_address_id=row.billing_address_id,
            shipping_address_id=row.shipping_address_id,
            special_instructions=row.special_instructions,
            items=items,
            coupons=coupons,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
