"""
This module contains the database engine and session factory.

Both stay None when settings cannot be loaded (e.g. DATABASE_URL missing);
get_db then answers 500 instead of the app failing to import.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from activation_api.config import Settings, get_settings

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
async_session: Optional[async_sessionmaker] = None


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine. Pool and server settings only apply to asyncpg.
    """
    if not settings.database_url.startswith("postgresql+asyncpg"):
        return create_async_engine(settings.database_url, pool_pre_ping=True)

    return create_async_engine(
        settings.database_url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=1800,
        connect_args={
            "command_timeout": 60,
            "server_settings": {
                "statement_timeout": "60000",  # 60 seconds
                "idle_in_transaction_session_timeout": "60000",
                "timezone": "UTC",
            },
        },
    )


try:
    engine = build_engine(get_settings())
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
except Exception as e:
    logger.error("Failed to create database engine: %s", e)
