from __future__ import annotations

import os
from collections.abc import Generator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql+psycopg://ops:ops@db:5432/ops_portal",
)
DB_ECHO = os.getenv("DB_ECHO", "false").lower() in {"1", "true", "yes"}


def build_engine(url: str) -> Engine:
    """Create the engine for ``url``.

    SQLite connections are shared across the threadpool that FastAPI runs sync
    routes in, so the same-thread check is turned off for them.
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=DB_ECHO, connect_args={"check_same_thread": False})
    return create_engine(url, echo=DB_ECHO, pool_pre_ping=True)


engine = build_engine(DATABASE_URL)


def get_engine() -> Engine:
    return engine


def get_session() -> Generator[Session, None, None]:
    session = Session(get_engine(), expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


def check_db_ready() -> bool:
    try:
        with get_engine().connect() as connection:
            connection.scalar(text("SELECT 1"))
    except SQLAlchemyError:
        return False
    return True
