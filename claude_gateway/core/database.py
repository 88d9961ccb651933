"""Usage store persistence (PostgreSQL only)"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional
from urllib.parse import parse_qsl, quote, unquote, urlencode

from loguru import logger
from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base"""

    pass


class UsageRecordModel(Base):
    """One row per successful request"""

    __tablename__ = "usage_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    model: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


_POSTGRES_SCHEMES = ("postgresql", "postgres", "postgresql+asyncpg")


def to_async_url(url: str) -> str:
    """Normalize a PostgreSQL URL for SQLAlchemy's asyncpg driver.

    The password is percent-encoded (so ``@`` or ``/`` in it survive parsing) and
    libpq's ``sslmode`` query parameter becomes asyncpg's ``ssl``.
    """
    scheme, sep, rest = url.partition("://")
    if not sep or scheme not in _POSTGRES_SCHEMES:
        raise ValueError(f"Unsupported database URL: {url}. Only PostgreSQL is supported.")

    # The last "@" separates credentials from the host
    credentials, at, hostinfo = rest.rpartition("@")
    if at:
        user, colon, password = credentials.partition(":")
        if colon and password:
            credentials = f"{user}:{quote(unquote(password), safe='')}"
        credentials += "@"

    location, _, query = hostinfo.partition("?")
    params = [
        ("ssl" if key == "sslmode" else key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    if params:
        location = f"{location}?{urlencode(params)}"

    return f"postgresql+asyncpg://{credentials}{location}"


class DatabaseConfig:
    """Connection pool settings for the usage store"""

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        echo: bool = False,
    ):
        self.url = to_async_url(url)
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.echo = echo


class Database:
    """Pooled connection manager for the usage store"""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine and make sure the usage table exists"""
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self.config.url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            echo=self.config.echo,
        )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Usage store connected")

    async def disconnect(self) -> None:
        """Close database connection"""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session context manager"""
        if self._session_factory is None:
            raise RuntimeError("Database not connected")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def insert_usage(self, model: str, input_tokens: int, output_tokens: int) -> None:
        async with self.session() as session:
            session.add(
                UsageRecordModel(
                    model=model,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                )
            )
