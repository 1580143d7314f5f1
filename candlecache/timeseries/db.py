"""Async database engine, session management and the SQL cache store."""
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from candlecache.config import Config
from candlecache.timeseries.db_models import Base, CacheDocumentRecord
from candlecache.timeseries.models import CacheDocument
from candlecache.timeseries.schemas import (
    CacheDocumentSchema,
    document_to_schema,
    schema_to_document,
)

logger = logging.getLogger(__name__)

# Try to create async engine. The configured driver may not be installed in
# every environment; guard so importing this module doesn't fail.
try:
    engine = create_async_engine(
        Config.DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
    )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
except Exception as e:  # pragma: no cover - only triggered without drivers
    logger.warning("Unable to create async DB engine at import time: %s", e)
    engine = None
    AsyncSessionLocal = None


async def init_db() -> None:
    """Create the cache tables if they do not exist."""
    if engine is None:
        raise RuntimeError("Async DB engine not configured. Install DB driver or configure DATABASE_URL.")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session."""
    if AsyncSessionLocal is None:
        raise RuntimeError("AsyncSessionLocal is not available; DB engine not initialized")
    async with AsyncSessionLocal() as session:
        yield session


async def close_db() -> None:
    """Close database connection pool."""
    if engine is None:
        return
    await engine.dispose()
    logger.info("Database connections closed")


class SqlCacheStore:
    """Cache store keeping each document as a JSON payload in one table row."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None) -> None:
        self.session_factory = session_factory or AsyncSessionLocal
        if self.session_factory is None:
            raise RuntimeError("No session factory available; DB engine not initialized")

    async def get(self, key: str) -> Optional[CacheDocument]:
        async with self.session_factory() as session:
            record = await session.get(CacheDocumentRecord, key)
            if record is None:
                return None
            return schema_to_document(CacheDocumentSchema.model_validate(record.payload))

    async def save(self, key: str, document: CacheDocument) -> None:
        payload = document_to_schema(document).model_dump(mode="json")
        async with self.session_factory() as session:
            async with session.begin():
                record = await session.get(CacheDocumentRecord, key)
                if record is None:
                    session.add(
                        CacheDocumentRecord(key=key, symbol=document.symbol, payload=payload)
                    )
                else:
                    record.symbol = document.symbol
                    record.payload = payload
        logger.debug("Saved cache document for %s", key)
