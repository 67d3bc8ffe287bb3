"""
Database engine configuration and session management
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from typing import Any, Dict
import logging
import time
from pathlib import Path

from hearth.core.config import Settings, normalize_database_url
from hearth.models import DirectoryBase

logger = logging.getLogger(__name__)


def _engine_options(url: str, debug: bool) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": debug,  # Log SQL queries in debug mode
    }
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_recycle=300, pool_size=10, max_overflow=20)
    return options


def create_directory_engine(config: Settings) -> Engine:
    """
    Create the SQLAlchemy engine for the Tenancy Directory
    """
    url = normalize_database_url(config.DIRECTORY_DATABASE_URL)
    if url.startswith("sqlite:///"):
        db_path = url[len("sqlite:///"):]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, **_engine_options(url, config.DEBUG))
    install_query_monitor(engine, config.SLOW_QUERY_THRESHOLD_MS)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """
    Create a session factory bound to an engine
    """
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False  # Keep objects accessible after commit
    )


def install_query_monitor(engine: Engine, threshold_ms: int) -> None:
    """
    Log statements that take longer than threshold_ms
    """

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _log_slow_query(conn, cursor, statement, parameters, context, executemany):
        started = conn.info["query_start_time"].pop()
        duration_ms = (time.perf_counter() - started) * 1000
        if duration_ms > threshold_ms:
            logger.warning(
                "[DB] Slow query detected (%.1fms): %s", duration_ms, statement[:200]
            )


def create_directory_tables(engine: Engine) -> None:
    """
    Create all directory tables
    Note: In production, manage the directory schema with migrations instead
    """
    try:
        DirectoryBase.metadata.create_all(bind=engine)
        logger.info("Directory tables created successfully")
    except Exception as e:
        logger.error(f"Error creating directory tables: {e}")
        raise
