import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    POSTGRES_CONNECTION_STRING: str = os.getenv("POSTGRES_CONNECTION_STRING", "")
    SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() == "true"
    SQLITE_BUSY_TIMEOUT: float = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

    # Повторы при конфликтах хранилища (блокировки, deadlock)
    STORAGE_RETRY_ATTEMPTS: int = int(os.getenv("STORAGE_RETRY_ATTEMPTS", "3"))
    STORAGE_RETRY_DELAY: float = float(os.getenv("STORAGE_RETRY_DELAY", "0.05"))

    # Orders
    ORDER_NUMBER_PREFIX: str = os.getenv("ORDER_NUMBER_PREFIX", "ORD")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def DATABASE_URL(self) -> str:
        """Асинхронный URL для приложения"""
        explicit = os.getenv("DATABASE_URL")
        if explicit:
            return explicit
        if self.POSTGRES_CONNECTION_STRING:
            return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql+asyncpg://")
        return "sqlite+aiosqlite:///./shop_core.db"

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Синхронный URL для Alembic"""
        return (
            self.DATABASE_URL
            .replace("postgresql+asyncpg://", "postgresql://")
            .replace("sqlite+aiosqlite://", "sqlite://")
        )


settings = Settings()
