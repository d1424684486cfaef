"""Database engine construction and schema helpers.

Engines are built explicitly from ``Settings`` and handed to whoever needs
them; there is no module-level engine.
"""

import logging
from typing import Any

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from antopolis.config import Settings
from antopolis.models import Base

logger = logging.getLogger(__name__)


def _configure_sqlite(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
    """Enable WAL so the scheduler's writes do not block API reads."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_db_engine(settings: Settings) -> Engine:
    """Create and configure the database engine.

    Args:
        settings: Application settings carrying the URL and echo flag

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    if settings.database_url.startswith("sqlite"):
        engine = create_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine, "connect", _configure_sqlite)
    else:
        engine = create_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_pre_ping=True,
        )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to ``engine``."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s)", ", ".join(sorted(Base.metadata.tables)))


def check_database_health(engine: Engine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


def get_table_names(engine: Engine) -> list[str]:
    """Names of the tables currently present in the database."""
    return inspect(engine).get_table_names()
