"""Pytest fixtures for shop_core tests."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import insert, update

from shop_core.database import create_engine, create_session_factory, create_tables
from shop_core.domain.models import DiscountType
from shop_core.infrastructure.db_schema import coupons_tbl, products_tbl
from shop_core.infrastructure.unit_of_work import UnitOfWork


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite database, fresh per test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}", echo=False)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow(engine):
    return UnitOfWork(create_session_factory(engine), retry_attempts=3, retry_delay=0.01)


@pytest.fixture
def make_product(engine, uow):
    """Catalog rows are owned outside the core, so they are seeded directly."""

    async def _make(price="10.00", stock=10, reorder_level=0, is_active=True, name="Product"):
        async with engine.begin() as conn:
            result = await conn.execute(
                insert(products_tbl)
                .values(
                    name=name,
                    price=Decimal(price),
                    stock_quantity=stock,
                    reorder_level=reorder_level,
                    is_active=is_active,
                )
                .returning(products_tbl.c.id)
            )
            product_id = result.scalar_one()
        async with uow() as tx:
            return await tx.products.get_by_id(product_id)

    return _make


@pytest.fixture
def set_price(engine):
    async def _set(product_id, price):
        async with engine.begin() as conn:
            await conn.execute(
                update(products_tbl).where(products_tbl.c.id == product_id).values(price=Decimal(price))
            )

    return _set


@pytest.fixture
def make_coupon(engine, uow):
    async def _make(
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value="10.00",
        minimum_order_amount="0.00",
        max_discount_amount=None,
        usage_limit=None,
        start_date=date(2024, 1, 1),
        end_date=date(2099, 12, 31),
        is_active=True,
    ):
        async with engine.begin() as conn:
            await conn.execute(
                insert(coupons_tbl).values(
                    code=code,
                    name=code,
                    discount_type=discount_type,
                    discount_value=Decimal(discount_value),
                    minimum_order_amount=Decimal(minimum_order_amount),
                    max_discount_amount=Decimal(max_discount_amount) if max_discount_amount else None,
                    usage_limit=usage_limit,
                    used_count=0,
                    start_date=start_date,
                    end_date=end_date,
                    is_active=is_active,
                )
            )
        async with uow() as tx:
            return await tx.coupons.get_by_code(code)

    return _make


@pytest.fixture
def stock_of(uow):
    async def _stock(product_id):
        async with uow() as tx:
            product = await tx.products.get_by_id(product_id)
            return product.stock_quantity

    return _stock


@pytest.fixture
def coupon_of(uow):
    async def _coupon(code):
        async with uow() as tx:
            return await tx.coupons.get_by_code(code)

    return _coupon
