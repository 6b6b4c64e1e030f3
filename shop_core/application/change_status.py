import logging

from shop_core.config import settings
from shop_core.domain.models import Order, OrderStatus
from shop_core.domain.exceptions import OrderNotFoundError, InvalidTransitionError
from shop_core.application.stock_reconciler import StockReconciler

logger = logging.getLogger(__name__)


class ChangeOrderStatusUseCase:
    """Переходы статуса заказа по графу.

    Статус меняется через compare-and-set: если между чтением и записью
    заказ изменил кто-то другой, заказ перечитывается и правило проверяется
    заново. Поэтому восстановление остатков при отмене выполняется ровно
    один раз, даже при параллельных отменах.
    """

    def __init__(self, unit_of_work, stock_reconciler: StockReconciler | None = None, max_attempts: int | None = None):
        self._uow = unit_of_work
        self._stock = stock_reconciler or StockReconciler()
        self._max_attempts = max_attempts or settings.STORAGE_RETRY_ATTEMPTS

    async def __call__(self, order_id: int, status: OrderStatus) -> Order:
        status = OrderStatus(status)
        current = None

        for attempt in range(1, self._max_attempts + 1):
            async with self._uow() as uow:
                order = await uow.orders.get_by_id(order_id)
                if not order:
                    raise OrderNotFoundError(f"Заказ {order_id} не найден")
                current = order.status

                # Идемпотентность отмены
                if status == OrderStatus.CANCELLED and order.status == OrderStatus.CANCELLED:
                    logger.info(f"Заказ {order.order_number} уже отменен")
                    return order

                if not order.can_transition_to(status):
                    logger.warning(f"Заказ {order.order_number}: переход {order.status.value} -> {status.value} запрещен")
                    raise InvalidTransitionError(order.status, status)

                if not await uow.orders.compare_and_set_status(order_id, order.status, status):
                    logger.info(f"Заказ {order.order_number} изменен параллельно, попытка {attempt}")
                    continue

                if status == OrderStatus.CANCELLED:
                    await self._stock.restore_on_cancel(uow, order)

                updated = await uow.orders.get_by_id(order_id)
                await uow.commit()

            logger.info(f"Заказ {updated.order_number}: {order.status.value} -> {status.value}")
            return updated

        raise InvalidTransitionError(current, status)
