import logging
from pydantic import BaseModel, Field

from shop_core.domain.models import Order, OrderItem
from shop_core.domain.exceptions import DomainException, InsufficientStockError, ProductNotFoundError
from shop_core.application.interfaces import UnitOfWork

logger = logging.getLogger(__name__)


class Reservation(BaseModel):
    """Результат резервирования: позиции с зафиксированной ценой"""
    items: list[OrderItem]
    low_stock: list[int] = Field(default_factory=list)


class StockReconciler:
    """Держит stock_quantity согласованным с позициями заказов.

    Все вызовы выполняются внутри транзакции вызывающего use case.
    """

    async def reserve_on_create(self, uow: UnitOfWork, lines: list[tuple[int, int]]) -> Reservation:
        """Атомарно списывает остатки по всем позициям или не списывает ничего.

        Товары блокируются в порядке возрастания id, чтобы два заказа с
        пересекающимися товарами не ждали друг друга по кругу.
        """
        priced: dict[int, OrderItem] = {}
        reserved: list[tuple[int, int]] = []
        low_stock: list[int] = []

        try:
            for index in sorted(range(len(lines)), key=lambda i: lines[i][0]):
                product_id, quantity = lines[index]
                product = await uow.products.conditional_decrement_stock(product_id, quantity)
                if product is None:
                    await self._raise_rejection(uow, product_id, quantity)
                reserved.append((product_id, quantity))
                priced[index] = OrderItem(product_id=product_id, quantity=quantity, unit_price=product.price)

                if product.needs_reorder() and product_id not in low_stock:
                    logger.warning(
                        f"Товар {product_id} ниже уровня дозаказа: "
                        f"остаток {product.stock_quantity}, уровень {product.reorder_level}"
                    )
                    low_stock.append(product_id)
        except DomainException:
            # Компенсация: возвращаем то, что успели списать
            await self._restore(uow, reserved)
            raise

        return Reservation(items=[priced[i] for i in range(len(lines))], low_stock=low_stock)

    async def release(self, uow: UnitOfWork, reservation: Reservation) -> None:
        await self._restore(uow, [(item.product_id, item.quantity) for item in reservation.items])

    async def restore_on_cancel(self, uow: UnitOfWork, order: Order) -> None:
        """Возвращает на склад все количество заказа. Без верхней границы —
        это всегда откат ранее сделанного списания того же размера."""
        quantities = order.reserved_quantities()
        await self._restore(uow, sorted(quantities.items()))
        logger.info(f"Остатки восстановлены по заказу {order.order_number}: {quantities}")

    async def _restore(self, uow: UnitOfWork, reserved: list[tuple[int, int]]) -> None:
        for product_id, quantity in reserved:
            await uow.products.increment_stock(product_id, quantity)

    async def _raise_rejection(self, uow: UnitOfWork, product_id: int, quantity: int):
        product = await uow.products.get_by_id(product_id)
        if not product or not product.is_active:
            raise ProductNotFoundError(product_id)
        logger.warning(
            f"Недостаточно товара {product_id}: доступно {product.stock_quantity}, требуется {quantity}"
        )
        raise InsufficientStockError(product_id, quantity, product.stock_quantity)
