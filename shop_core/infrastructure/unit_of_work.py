from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shop_core.application.interfaces import UnitOfWork as AbstractUnitOfWork
from shop_core.config import settings
from shop_core.infrastructure.repositories import (
    SQLAlchemyProductRepository,
    SQLAlchemyCartRepository,
    SQLAlchemyCouponRepository,
    SQLAlchemyOrderRepository,
)


class UnitOfWork:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
    ):
        self._session_factory = session_factory
        self._retry_attempts = settings.STORAGE_RETRY_ATTEMPTS if retry_attempts is None else retry_attempts
        self._retry_delay = settings.STORAGE_RETRY_DELAY if retry_delay is None else retry_delay

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session, self._retry_attempts, self._retry_delay)
                yield uow_impl
                # Если commit не вызван — rollback
                await session.rollback()
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl(AbstractUnitOfWork):
    def __init__(self, session: AsyncSession, retry_attempts: int, retry_delay: float):
        self._session = session
        self._products = SQLAlchemyProductRepository(session, retry_attempts, retry_delay)
        self._carts = SQLAlchemyCartRepository(session, retry_attempts, retry_delay)
        self._coupons = SQLAlchemyCouponRepository(session, retry_attempts, retry_delay)
        self._orders = SQLAlchemyOrderRepository(session, retry_attempts, retry_delay)

    @property
    def products(self) -> SQLAlchemyProductRepository:
        return self._products

    @property
    def carts(self) -> SQLAlchemyCartRepository:
        return self._carts

    @property
    def coupons(self) -> SQLAlchemyCouponRepository:
        return self._coupons

    @property
    def orders(self) -> SQLAlchemyOrderRepository:
        return self._orders

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
