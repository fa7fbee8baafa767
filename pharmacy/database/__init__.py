from pharmacy.database.base import Base
from pharmacy.database.engine import create_schema, create_store_engine, is_sqlite_url
from pharmacy.database.session import Store, check_connection

__all__ = [
    "Base",
    "Store",
    "create_schema",
    "create_store_engine",
    "is_sqlite_url",
    "check_connection",
]
