"""SQL and JSON backups of the catalog and ledger tables.

Users are never exported. Restores replace the contents of the backed-up
tables inside one transaction, so a failing statement leaves the database as
it was.
"""
import json
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import DateTime, Integer, Numeric, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmacy.core.constants import BACKUP_TABLES, BACKUP_VERSION
from pharmacy.core.dates import utc_now
from pharmacy.core.errors import Internal, InvalidInput
from pharmacy.database.base import Base
from pharmacy.database.session import Store
from pharmacy.models import import_all_models

logger = logging.getLogger(__name__)

_NO_PARAMETERS = {"no_parameters": True}


def _tables():
    import_all_models()
    return [Base.metadata.tables[name] for name in BACKUP_TABLES]


def _table_rows(db: Session, table):
    return [dict(row) for row in db.execute(select(table).order_by(table.c.id)).mappings()]


# ==============================
# SQL
# ==============================

def sql_literal(value, *, backslash_escapes=False) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, Decimal, float)):
        return str(value)
    if isinstance(value, datetime):
        return "'{}'".format(value.strftime("%Y-%m-%d %H:%M:%S"))
    if isinstance(value, date):
        return "'{}'".format(value.isoformat())
    text = str(value)
    if backslash_escapes:
        text = text.replace("\\", "\\\\")
    return "'{}'".format(text.replace("'", "''"))


def dump_sql(db: Session) -> str:
    backslash_escapes = db.get_bind().dialect.name == "mysql"
    tables = _tables()

    lines = [
        "-- Pharmacy management database backup",
        "-- Created at: {}".format(utc_now().strftime("%Y-%m-%d %H:%M:%S UTC")),
        "-- ========================================",
        "",
        "SET FOREIGN_KEY_CHECKS = 0;",
        "",
    ]
    # Dependants are cleared first so the deletes also pass with foreign keys on.
    for table in reversed(tables):
        lines.append(f"DELETE FROM {table.name};")
    lines.append("")

    for table in tables:
        rows = _table_rows(db, table)
        if not rows:
            continue
        column_names = [column.name for column in table.columns]
        lines.append(f"-- {table.name}: {len(rows)} rows")
        lines.append("INSERT INTO {} ({}) VALUES".format(table.name, ", ".join(column_names)))
        values = [
            "({})".format(
                ", ".join(sql_literal(row[name], backslash_escapes=backslash_escapes) for name in column_names)
            )
            for row in rows
        ]
        lines.append(",\n".join(values) + ";")
        lines.append("")

    lines.append("SET FOREIGN_KEY_CHECKS = 1;")
    return "\n".join(lines) + "\n"


def split_sql_statements(sql_text: str, *, backslash_escapes=False) -> list[str]:
    """Split on ``;`` outside quoted strings, dropping ``--`` comments."""
    statements = []
    current = []
    quote = None
    i = 0
    length = len(sql_text)
    while i < length:
        char = sql_text[i]
        if quote:
            current.append(char)
            if backslash_escapes and char == "\\" and i + 1 < length:
                current.append(sql_text[i + 1])
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"', "`"):
            quote = char
            current.append(char)
        elif char == "-" and sql_text.startswith("--", i):
            newline = sql_text.find("\n", i)
            i = length if newline == -1 else newline
            continue
        elif char == ";":
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
        else:
            current.append(char)
        i += 1

    if quote:
        raise InvalidInput("Unterminated string literal in SQL backup")
    statement = "".join(current).strip()
    if statement:
        statements.append(statement)
    return statements


def _adapt_statement(statement: str, dialect_name: str):
    if dialect_name != "sqlite":
        return statement
    upper = statement.upper()
    if upper.startswith("SET FOREIGN_KEY_CHECKS"):
        return None
    if upper.startswith("TRUNCATE TABLE "):
        return "DELETE FROM " + statement[len("TRUNCATE TABLE "):]
    return statement


def restore_sql(store: Store, sql_text: str) -> int:
    """Run a SQL backup in one transaction; returns the number of statements executed."""
    if not sql_text or not sql_text.strip():
        raise InvalidInput("SQL backup is empty")
    dialect_name = store.engine.dialect.name
    statements = split_sql_statements(sql_text, backslash_escapes=dialect_name == "mysql")
    if not statements:
        raise InvalidInput("SQL backup contains no statements")

    executed = 0
    try:
        with store.transaction() as db:
            conn = db.connection()
            for statement in statements:
                statement = _adapt_statement(statement, dialect_name)
                if statement is None:
                    continue
                conn.exec_driver_sql(statement, execution_options=_NO_PARAMETERS)
                executed += 1
    except SQLAlchemyError as exc:
        logger.exception("SQL restore failed after %s statements", executed)
        detail = getattr(exc, "orig", None) or exc
        raise Internal(f"Restore failed at statement {executed + 1}: {detail}") from exc

    logger.warning("Database restored from SQL backup (%s statements)", executed)
    return executed


# ==============================
# JSON
# ==============================

def _json_value(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def dump_json(db: Session) -> dict:
    tables = {}
    for table in _tables():
        tables[table.name] = [
            {key: _json_value(value) for key, value in row.items()} for row in _table_rows(db, table)
        ]
    return {
        "version": BACKUP_VERSION,
        "created_at": utc_now().isoformat(),
        "tables": tables,
    }


def _coerce(column, value):
    if value is None:
        return None
    try:
        if isinstance(column.type, DateTime):
            return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
        if isinstance(column.type, Numeric):
            return Decimal(str(value))
        if isinstance(column.type, Integer):
            if isinstance(value, bool):
                raise ValueError("boolean is not an integer")
            return int(value)
    except (ValueError, TypeError, InvalidOperation) as exc:
        raise InvalidInput(f"Invalid value for {column.table.name}.{column.name}: {value!r}") from exc
    return value


def _parse_document(document) -> dict:
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as exc:
            raise InvalidInput("Backup is not valid JSON") from exc
    if not isinstance(document, dict) or not isinstance(document.get("tables"), dict):
        raise InvalidInput("Backup document must contain a 'tables' object")
    if document.get("version", BACKUP_VERSION) != BACKUP_VERSION:
        raise InvalidInput("Unsupported backup version: {}".format(document.get("version")))

    known = {table.name: table for table in _tables()}
    unknown = sorted(set(document["tables"]) - set(known))
    if unknown:
        raise InvalidInput("Unknown tables in backup: {}".format(", ".join(unknown)))

    parsed = {}
    for name in BACKUP_TABLES:
        if name not in document["tables"]:
            continue
        table = known[name]
        rows = document["tables"][name]
        if not isinstance(rows, list):
            raise InvalidInput(f"Table {name} must be a list of rows")
        converted = []
        for row in rows:
            if not isinstance(row, dict):
                raise InvalidInput(f"Rows of {name} must be objects")
            extra = set(row) - set(table.columns.keys())
            if extra:
                raise InvalidInput("Unknown columns for {}: {}".format(name, ", ".join(sorted(extra))))
            converted.append({key: _coerce(table.columns[key], value) for key, value in row.items()})
        parsed[name] = converted
    return parsed


def restore_json(store: Store, document) -> dict:
    """Replace the listed tables with the document's rows; returns rows per table."""
    parsed = _parse_document(document)
    if not parsed:
        raise InvalidInput("Backup document lists no tables")
    tables = {table.name: table for table in _tables()}

    counts = {}
    try:
        with store.transaction() as db:
            for name in reversed(BACKUP_TABLES):
                if name in parsed:
                    db.execute(tables[name].delete())
            for name in BACKUP_TABLES:
                rows = parsed.get(name)
                if rows is None:
                    continue
                if rows:
                    db.execute(tables[name].insert(), rows)
                counts[name] = len(rows)
    except SQLAlchemyError as exc:
        logger.exception("JSON restore failed")
        detail = getattr(exc, "orig", None) or exc
        raise Internal(f"Restore failed: {detail}") from exc

    logger.warning("Database restored from JSON backup: %s", counts)
    return counts


__all__ = [
    "dump_json",
    "dump_sql",
    "restore_json",
    "restore_sql",
    "split_sql_statements",
    "sql_literal",
]
