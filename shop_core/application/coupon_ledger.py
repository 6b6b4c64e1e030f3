import logging
from datetime import date
from decimal import Decimal
from pydantic import BaseModel

from shop_core.domain.models import Coupon, money
from shop_core.domain.exceptions import (
    CouponNotFoundError, CouponExpiredError, CouponBelowMinimumError,
    CouponExhaustedError, DuplicateCouponError,
)
from shop_core.application.interfaces import UnitOfWork

logger = logging.getLogger(__name__)


class CouponLedger:
    async def validate(
        self, uow: UnitOfWork, code: str, order_subtotal: Decimal, as_of: date | None = None
    ) -> tuple[Coupon, Decimal]:
        as_of = as_of or date.today()
        order_subtotal = money(order_subtotal)

        coupon = await uow.coupons.get_by_code(code)
        if not coupon or not coupon.is_active:
            raise CouponNotFoundError(code)
        if not coupon.is_valid_on(as_of):
            raise CouponExpiredError(code)
        if order_subtotal < coupon.minimum_order_amount:
            raise CouponBelowMinimumError(code, coupon.minimum_order_amount, order_subtotal)
        if coupon.is_exhausted():
            raise CouponExhaustedError(code)

        return coupon, coupon.discount_for(order_subtotal)

    async def record(self, uow: UnitOfWork, order_id: int, coupon: Coupon, discount: Decimal) -> None:
        """Привязывает купон к заказу и увеличивает used_count.

        Проверка лимита в validate не атомарна; окончательное решение
        принимает compare-and-increment здесь.
        """
        if not await uow.coupons.link_to_order(order_id, coupon.id, discount):
            raise DuplicateCouponError(coupon.code, order_id)
        if not await uow.coupons.increment_usage(coupon.id):
            logger.warning(f"Купон {coupon.code} исчерпан при оформлении заказа {order_id}")
            raise CouponExhaustedError(coupon.code)
        logger.info(f"Купон {coupon.code} применен к заказу {order_id}, скидка {discount}")


class ValidateCouponDTO(BaseModel):
    code: str
    order_subtotal: Decimal
    as_of: date | None = None


class ValidateCouponUseCase:
    def __init__(self, unit_of_work, coupon_ledger: CouponLedger | None = None):
        self._uow = unit_of_work
        self._ledger = coupon_ledger or CouponLedger()

    async def __call__(self, dto: ValidateCouponDTO) -> tuple[Coupon, Decimal]:
        async with self._uow() as uow:
            return await self._ledger.validate(uow, dto.code, dto.order_subtotal, dto.as_of)
