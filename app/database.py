import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import (
    DATABASE_URL,
    DB_LOG_SLOW_QUERIES,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_SLOW_QUERY_THRESHOLD,
)

logger = logging.getLogger(__name__)


def build_engine(url: str):
    """Engine for ``url``; SQLite gets a thread-shareable connection instead of a pool"""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=DB_POOL_RECYCLE,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
    )


def install_slow_query_logging(target_engine, threshold: float = DB_SLOW_QUERY_THRESHOLD) -> None:
    """Warn about statements that take longer than ``threshold`` seconds"""

    @event.listens_for(target_engine, "before_cursor_execute")
    def start_timer(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("query_started_at", []).append(time.perf_counter())

    @event.listens_for(target_engine, "after_cursor_execute")
    def log_if_slow(conn, _cursor, statement, _parameters, _context, _executemany):
        elapsed = time.perf_counter() - conn.info["query_started_at"].pop()
        if elapsed > threshold:
            logger.warning(f"Slow query ({elapsed:.2f}s): {statement[:200]}")


engine = build_engine(DATABASE_URL)
logger.info(f"Database engine created ({engine.dialect.name})")

if DB_LOG_SLOW_QUERIES:
    install_slow_query_logging(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
