"""Async engine and session factory shared by the API and migrations."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config import DB_CONN_STRING


def get_engine_args(conn_string: str) -> dict[str, Any]:
    """Return engine keyword arguments based on the connection string."""
    if conn_string.startswith("sqlite"):
        # One shared connection keeps an in-memory database alive across sessions.
        if ":memory:" in conn_string:
            return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_size": 10,
        "max_overflow": 20,
    }


engine = create_async_engine(DB_CONN_STRING, **get_engine_args(DB_CONN_STRING))

SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)

__all__ = ["engine", "SessionLocal", "get_engine_args"]
