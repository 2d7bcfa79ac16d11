from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from souq.core.config import (
    DATABASE_URL,
    DB_TYPE,
    DB_ISOLATION_LEVEL,
    SQLITE_BUSY_TIMEOUT_SECONDS,
)
import ssl

Base = declarative_base()


def _engine_kwargs() -> dict:
    if DB_TYPE == "postgres":
        # SSL setup for Supabase
        ssl_ctx = ssl.create_default_context()
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = ssl.CERT_NONE
        return {
            "pool_size": 5,
            "max_overflow": 10,
            "isolation_level": DB_ISOLATION_LEVEL,
            "connect_args": {
                # Disable prepared statements (important for PgBouncer)
                "statement_cache_size": 0,
                "prepared_statement_cache_size": 0,
                "server_settings": {"prepareThreshold": "0"},  # must be string!
                "ssl": ssl_ctx,
            },
        }
    return {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT_SECONDS}}


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    **_engine_kwargs(),
)

AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession):
    """
    Run a block inside one store transaction, committed on exit and rolled
    back on any exception. A transaction left open by an earlier read on the
    same session (e.g. the principal lookup) is committed first so that every
    read inside the block happens in the new transaction.
    """
    if db.in_transaction():
        await db.commit()
    async with db.begin():
        yield db


# SQLite: foreign keys on, and writers take the RESERVED lock up front so
# concurrent transactions queue on the busy timeout instead of failing on
# a read-to-write lock upgrade.
if DB_TYPE == "sqlite":
    @event.listens_for(engine.sync_engine, "connect")
    def configure_sqlite_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

import souq.models


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
