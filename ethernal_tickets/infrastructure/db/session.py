# ethernal_tickets/infrastructure/db/session.py

from contextlib import contextmanager
import logging
import time
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ethernal_tickets.config import Settings
from ethernal_tickets.domain.exceptions import StoreUnavailableError


logger = logging.getLogger(__name__)


# -----------------------------
# Base Class for Models
# -----------------------------
class Base(DeclarativeBase):
    pass


# -----------------------------
# Database URL
# -----------------------------
def normalize_database_url(url: str) -> str:
    # Heroku-style and bare postgres URLs -> psycopg2
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


def is_degraded(exc: Exception) -> bool:
    return isinstance(exc, (OperationalError, SQLAlchemyTimeoutError))


# -----------------------------
# Engine
# -----------------------------
def make_engine(settings: Settings) -> Engine:
    database_url = normalize_database_url(settings.database_url)

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _install_sqlite_locking(engine)
        return engine

    return create_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
    )


def _install_sqlite_locking(engine: Engine) -> None:
    # SQLite ignores FOR UPDATE; take the write lock when each transaction starts.
    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_connection, _):
        dbapi_connection.isolation_level = None
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA journal_mode=WAL;")
        cur.execute("PRAGMA busy_timeout=30000;")
        cur.execute("PRAGMA foreign_keys=ON;")
        cur.close()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# -----------------------------
# Store
# -----------------------------
class Store:
    """
    Owns the engine and session factory for one process.

    Constructed once at startup and handed to every component;
    `close()` releases the pool at shutdown.
    """

    def __init__(self, settings: Settings, engine: Engine | None = None):
        self.settings = settings
        self.engine: Engine = engine or make_engine(settings)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    def create_schema(self) -> None:
        # Import registers the tables on Base.metadata
        from ethernal_tickets.infrastructure.db import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as exc:
            if is_degraded(exc):
                raise StoreUnavailableError(str(exc)) from exc
            raise

    def wait_until_ready(self, sleep=time.sleep) -> None:
        # Handles the common case where the API starts before the database is ready.
        max_retries = self.settings.db_connect_max_retries
        retry_delay_seconds = self.settings.db_connect_retry_delay

        for attempt in range(1, max_retries + 1):
            try:
                self.ping()
                logger.info("Database is reachable.")
                return
            except StoreUnavailableError:
                if attempt == max_retries:
                    logger.exception(
                        "Database not reachable after %s attempts. Check DATABASE_URL.",
                        max_retries,
                    )
                    raise
                logger.warning(
                    "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                    attempt,
                    max_retries,
                    retry_delay_seconds,
                )
                sleep(retry_delay_seconds)

    @contextmanager
    def transaction(self, session: Session | None = None) -> Iterator[Session]:
        """
        Commits on success, rolls back on any error.

        When an open session is passed in, the block joins the caller's
        transaction and leaves commit/rollback to the caller.
        Storage failures surface as StoreUnavailableError.
        """
        if session is not None:
            yield session
            return

        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception as exc:
            db.rollback()
            if is_degraded(exc):
                raise StoreUnavailableError(str(exc)) from exc
            raise
        finally:
            db.close()

    def close(self) -> None:
        self.engine.dispose()
