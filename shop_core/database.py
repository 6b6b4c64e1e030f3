from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shop_core.config import settings
from shop_core.infrastructure.db_schema import metadata


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    url = url or settings.DATABASE_URL
    echo = settings.SQL_ECHO if echo is None else echo

    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT},
    )

    # SQLite: берем блокировку на запись в начале транзакции,
    # иначе два писателя упираются друг в друга при апгрейде SHARED -> RESERVED
    @event.listens_for(engine.sync_engine, "connect")
    def _configure_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


engine = create_engine()
AsyncSessionLocal = create_session_factory(engine)
