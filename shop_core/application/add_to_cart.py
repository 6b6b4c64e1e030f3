import logging
from pydantic import BaseModel

from shop_core.domain.models import Cart, ensure_quantity
from shop_core.domain.exceptions import ProductNotFoundError

logger = logging.getLogger(__name__)


class AddToCartDTO(BaseModel):
    customer_id: int
    product_id: int
    quantity: int


class AddToCartUseCase:
    """Добавление в корзину: повторное добавление увеличивает количество.

    Остатки здесь не проверяются — корзина не резервирует товар,
    проверка происходит только при создании заказа.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: AddToCartDTO) -> Cart:
        ensure_quantity(dto.quantity)

        async with self._uow() as uow:
            product = await uow.products.get_by_id(dto.product_id)
            if not product or not product.is_active:
                raise ProductNotFoundError(dto.product_id)

            cart_id = await uow.carts.get_or_create(dto.customer_id)
            quantity = await uow.carts.upsert_item(cart_id, dto.product_id, dto.quantity)
            cart = await uow.carts.get_by_customer(dto.customer_id)
            await uow.commit()

        logger.info(
            f"Корзина покупателя {dto.customer_id}: товар {dto.product_id}, количество {quantity}"
        )
        return cart
