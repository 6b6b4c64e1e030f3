from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, List

from shop_core.domain.models import (
    Product, Cart, Coupon, Order, OrderItem, OrderStatus, OrderTotals,
)


class ProductRepository(ABC):
    """Контракт Catalog Store"""

    @abstractmethod
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def conditional_decrement_stock(self, product_id: int, amount: int) -> Optional[Product]:
        """Атомарно уменьшает остаток, если его хватает. None — не хватило."""
        pass

    @abstractmethod
    async def increment_stock(self, product_id: int, amount: int) -> None:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def get_or_create(self, customer_id: int) -> int:
        pass

    @abstractmethod
    async def upsert_item(self, cart_id: int, product_id: int, quantity: int) -> int:
        """Добавляет позицию или увеличивает количество. Возвращает новое количество."""
        pass

    @abstractmethod
    async def get_by_customer(self, customer_id: int) -> Optional[Cart]:
        pass

    @abstractmethod
    async def clear(self, customer_id: int) -> None:
        pass


class CouponRepository(ABC):
    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[Coupon]:
        pass

    @abstractmethod
    async def link_to_order(self, order_id: int, coupon_id: int, discount: Decimal) -> bool:
        """False — купон уже привязан к заказу"""
        pass

    @abstractmethod
    async def increment_usage(self, coupon_id: int) -> bool:
        """Compare-and-increment used_count. False — лимит исчерпан."""
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_by_customer(self, customer_id: int) -> List[Order]:
        pass

    @abstractmethod
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
        """Создает заказ в статусе pending. None — номер заказа уже занят."""
        pass

    @abstractmethod
    async def compare_and_set_status(
        self, order_id: int, expected: OrderStatus, status: OrderStatus
    ) -> bool:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def products(self) -> ProductRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @property
    @abstractmethod
    def coupons(self) -> CouponRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
