import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from pharmacy.database.base import Base

SQLITE_BEGIN_OPTION = "sqlite_begin"
SQLITE_BEGIN_IMMEDIATE = "immediate"


def is_sqlite_url(url) -> bool:
    return make_url(str(url)).get_backend_name() == "sqlite"


def _is_sqlite_memory(url) -> bool:
    db_url = make_url(str(url))
    database = db_url.database
    if database in (None, "", ":memory:"):
        return True
    return db_url.query.get("mode") == "memory"


def create_store_engine(url: str, *, busy_timeout_seconds: int = 30) -> Engine:
    sqlite = is_sqlite_url(url)
    memory = sqlite and _is_sqlite_memory(url)

    connect_args = {}
    engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
    if sqlite:
        connect_args = {"check_same_thread": False, "timeout": busy_timeout_seconds}
        if memory:
            engine_kwargs.update(poolclass=StaticPool)
    else:
        engine_kwargs.update(pool_recycle=280)

    engine = create_engine(url, connect_args=connect_args, **engine_kwargs)

    if sqlite:
        _install_sqlite_listeners(engine, memory=memory, busy_timeout_ms=busy_timeout_seconds * 1000)
    return engine


def _install_sqlite_listeners(engine: Engine, *, memory: bool, busy_timeout_ms: int) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):
        # pysqlite's implicit BEGIN is replaced by the "begin" listener below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
            if not memory:
                try:
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA synchronous=NORMAL")
                except sqlite3.DatabaseError:
                    pass
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_sqlite_transaction(conn):
        # Stock mutations ask for IMMEDIATE so the write lock is taken before
        # the current stock is read; plain reads stay DEFERRED.
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION)
        if mode == SQLITE_BEGIN_IMMEDIATE:
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_schema(engine: Engine) -> None:
    from pharmacy.models import import_all_models

    import_all_models()
    Base.metadata.create_all(bind=engine)


__all__ = [
    "SQLITE_BEGIN_IMMEDIATE",
    "SQLITE_BEGIN_OPTION",
    "create_schema",
    "create_store_engine",
    "is_sqlite_url",
]
