from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from registry_service.config import Settings
from registry_service.logging_config import get_logger
from registry_service.models import Base

logger = get_logger(__name__)

class Database:
    """Owns the engine and session factory shared by every request handler.

    Built by the process entry point, opened with ``init()`` and released with
    ``close()``; handlers reach it through ``get_db``.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        pool_recycle: int = 1800,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.pool_recycle = pool_recycle
        self.pool_pre_ping = pool_pre_ping
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._session_factory = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
            echo=settings.DB_ECHO,
        )

    @property
    def is_initialised(self) -> bool:
        return self.engine is not None

    async def init(self, create_tables: bool = True) -> None:
        if self.engine is not None:
            return
        engine_kwargs = {"echo": self.echo, "pool_pre_ping": self.pool_pre_ping}
        # sqlite uses a static/singleton pool that rejects sizing arguments
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(pool_size=self.pool_size, pool_recycle=self.pool_recycle)
        self.engine = create_async_engine(self.url, **engine_kwargs)
        self._session_factory = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        if create_tables:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created or already exist.")

    async def close(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info("Database engine disposed.")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("Database.init() must be awaited before opening sessions")
        async with self._session_factory() as session:
            yield session

async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
