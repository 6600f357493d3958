from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from loguru import logger

from mediasync.core.config import DATABASE_URL

# --- Base (single source of truth) ---
Base = declarative_base()

# --- Session factory (bound lazily, see get_engine) ---
SessionLocal = sessionmaker(
    autoflush=False,
    autocommit=False,
    future=True,
)


def _log_sql(conn, cursor, statement, parameters, context, executemany):
    logger.debug(f"SQL: {statement} | params={parameters}")


# --- Engine ---
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False}
        if DATABASE_URL.startswith("sqlite")
        else {},
    )
    # --- SQL query logging ---
    event.listen(engine, "before_cursor_execute", _log_sql)
    SessionLocal.configure(bind=engine)
    return engine


# --- FastAPI dependency ---
def get_db():
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
