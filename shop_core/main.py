import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from shop_core.config import settings
from shop_core.database import engine, create_tables
from shop_core.presentation.api import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    await create_tables(engine)
    logger.info("Таблицы созданы")

    yield

    await engine.dispose()
    logger.info("Приложение останавливается...")


app = FastAPI(
    title="Shop Core",
    description="Корзины, заказы, остатки и купоны магазина",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "healthy"}
