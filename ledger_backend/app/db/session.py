"""
Database session configuration.

The engine and session factory are owned by a DatabaseSessionManager that the
process entry point (FastAPI lifespan, CLI) constructs and disposes explicitly.
Request handlers reach it through the `get_db` dependency.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

# Create declarative base for models
Base = declarative_base()


class DatabaseSessionManager:
    """Owns the async engine (connection pool) and hands out sessions."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        **engine_kwargs,
    ):
        if database_url.startswith("sqlite"):
            # SQLite pools do not accept sizing arguments
            self.engine = create_async_engine(database_url, echo=echo, **engine_kwargs)
        else:
            self.engine = create_async_engine(
                database_url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                **engine_kwargs,
            )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a session that is rolled back if the caller raises."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Unit of work for one ledger operation.

    Commits when the block exits normally; any exception (including the
    application's own business-rule errors) rolls everything back first.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Yields a session from the manager attached to the application state
    during startup.
    """
    manager: DatabaseSessionManager = request.app.state.db
    async with manager.session() as session:
        yield session
