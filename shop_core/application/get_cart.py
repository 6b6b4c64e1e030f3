import logging


logger = logging.getLogger(__name__)


class GetCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, customer_id: int) -> list[tuple[int, int]]:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_customer(customer_id)
            return cart.lines() if cart else []


class ClearCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, customer_id: int) -> None:
        async with self._uow() as uow:
            await uow.carts.clear(customer_id)
            await uow.commit()
        logger.info(f"Корзина покупателя {customer_id} очищена")
