import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pharmacy.database.engine import (
    SQLITE_BEGIN_IMMEDIATE,
    SQLITE_BEGIN_OPTION,
    create_schema,
    create_store_engine,
)

logger = logging.getLogger(__name__)


def _make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


class Store:
    """Owns the engine and session factory for one database.

    A single instance lives on ``app.state.store``; it can be pointed at a new
    database with :meth:`reconnect` without restarting the process.
    """

    def __init__(self, url: str, *, busy_timeout_seconds: int = 30):
        self._lock = threading.RLock()
        self._busy_timeout_seconds = busy_timeout_seconds
        self.url = url
        self.engine = create_store_engine(url, busy_timeout_seconds=busy_timeout_seconds)
        self.session_factory = _make_session_factory(self.engine)
        self.connected = False

    def session(self) -> Session:
        with self._lock:
            return self.session_factory()

    @contextmanager
    def transaction(self, *, immediate: bool = False) -> Iterator[Session]:
        """Yield a session whose work is committed only if the block exits cleanly.

        ``immediate=True`` takes the database write lock before the first read
        (SQLite); server databases rely on row locks requested by the caller.
        """
        db = self.session()
        try:
            if immediate:
                db.connection(execution_options={SQLITE_BEGIN_OPTION: SQLITE_BEGIN_IMMEDIATE})
            yield db
            db.commit()
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            self.connected = False
            return False
        self.connected = True
        return True

    def initialize(self) -> bool:
        """Create tables on the current database; returns the connection status."""
        if not self.ping():
            return False
        try:
            create_schema(self.engine)
        except SQLAlchemyError:
            logger.exception("Failed to create database schema")
            self.connected = False
            return False
        return True

    def reconnect(self, url: str) -> None:
        """Switch to ``url``; the current engine is kept if the new one is unreachable."""
        engine = create_store_engine(url, busy_timeout_seconds=self._busy_timeout_seconds)
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            create_schema(engine)
        except SQLAlchemyError:
            engine.dispose()
            raise

        with self._lock:
            previous = self.engine
            self.url = url
            self.engine = engine
            self.session_factory = _make_session_factory(engine)
            self.connected = True
        previous.dispose()
        logger.info("Database reconnected (%s)", engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        with self._lock:
            self.engine.dispose()
            self.connected = False


def check_connection(url: str, *, busy_timeout_seconds: int = 5) -> Optional[str]:
    """Return ``None`` if ``url`` is reachable, otherwise the error text."""
    engine = create_store_engine(url, busy_timeout_seconds=busy_timeout_seconds)
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
    except SQLAlchemyError as exc:
        return str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)
    finally:
        engine.dispose()
    return None


__all__ = ["Store", "check_connection"]
