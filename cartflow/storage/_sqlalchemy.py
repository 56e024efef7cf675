"""
SQLAlchemy integration — durable record store for the local cart.

Usage:
    store, engine = await create_record_store("sqlite+aiosqlite:///cartflow.db")
    backend = LocalBackend(store, key=settings.local_cart_key)
    ...
    await engine.dispose()
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Integer, Text, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from cartflow._types import CartError, CartErrors
from cartflow.storage._local import CART_RECORD_VERSION


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class CartRecordTable(Base):
    """One row per cart key; payload is the versioned JSON record."""

    __tablename__ = "cart_records"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyRecordStore:
    """RecordStore backed by an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, key: str) -> Result[str | None, CartError]:
        try:
            async with self._session_factory() as session:
                row = (
                    await session.execute(
                        select(CartRecordTable).where(CartRecordTable.key == key)
                    )
                ).scalar_one_or_none()
                return Ok(row.payload if row is not None else None)
        except Exception as e:
            return Error(CartErrors.storage("loading cart record", e))

    async def save(self, key: str, payload: str) -> Result[None, CartError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(CartRecordTable, key)
                if row is None:
                    session.add(
                        CartRecordTable(
                            key=key,
                            payload=payload,
                            version=CART_RECORD_VERSION,
                            updated_at=datetime.now(),
                        )
                    )
                else:
                    row.payload = payload
                    row.version = CART_RECORD_VERSION
                    row.updated_at = datetime.now()
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(CartErrors.storage("saving cart record", e))

    async def delete(self, key: str) -> Result[bool, CartError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(CartRecordTable, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(CartErrors.storage("deleting cart record", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_record_store(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[SQLAlchemyRecordStore, AsyncEngine]:
    """Create tables and return (store, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return SQLAlchemyRecordStore(async_sessionmaker(engine, expire_on_commit=False)), engine


__all__ = (
    "CartRecordTable",
    "SQLAlchemyRecordStore",
    "create_record_store",
)
