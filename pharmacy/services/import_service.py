import logging
import zipfile
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmacy.core.constants import MEDICINE_STATUSES
from pharmacy.models.medicine import Medicine

logger = logging.getLogger(__name__)

_ALIAS_SPECS = (
    (("medicine", "code"), "code"),
    (("drug", "code"), "code"),
    (("item", "code"), "code"),
    (("barcode",), "code"),
    (("medicine", "name"), "name"),
    (("drug", "name"), "name"),
    (("item", "name"), "name"),
    (("medicine", "type"), "type"),
    (("category",), "type"),
    (("specification",), "spec"),
    (("pack", "size"), "spec"),
    (("unit", "price"), "price"),
    (("retail", "price"), "price"),
    (("mrp",), "price"),
    (("opening", "stock"), "stock"),
    (("qty",), "stock"),
    (("quantity",), "stock"),
    (("maker",), "manufacturer"),
    (("manufacturer", "name"), "manufacturer"),
)

HEADER_ALIASES = {"".join(parts): target for parts, target in _ALIAS_SPECS}

REQUIRED_COLUMNS = {"code", "name", "type", "price"}
CATALOG_FIELDS = ("name", "type", "spec", "price", "manufacturer", "status")

_PLACEHOLDER_VALUES = {"none", "null", "na", "n/a", "nan", "-", "--"}


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_text(value):
    if _is_blank(value):
        return None
    text = str(value).strip()
    if text.lower() in _PLACEHOLDER_VALUES:
        return None
    return text


def normalize_header(value):
    if value is None:
        return ""
    value_text = str(value).strip().lower()
    if not value_text:
        return ""
    for char in (" ", "-", ".", "/"):
        value_text = value_text.replace(char, "_")
    value_text = "_".join(part for part in value_text.split("_") if part)
    alias = HEADER_ALIASES.get(value_text)
    if alias:
        return alias
    alias = HEADER_ALIASES.get(value_text.replace("_", ""))
    if alias:
        return alias
    return value_text


def to_str(value, field, required=True):
    text = _clean_text(value)
    if text is None:
        if required:
            raise ValueError(f"{field} is required")
        return None
    # Codes typed as numbers come back from Excel as floats.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return text


def to_int(value, field, required=True):
    if _is_blank(value):
        if required:
            raise ValueError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(f"{field} must be an integer")
    value_text = str(value).strip()
    try:
        return int(value_text)
    except ValueError:
        try:
            numeric = float(value_text)
        except ValueError:
            raise ValueError(f"{field} must be an integer") from None
        if not numeric.is_integer():
            raise ValueError(f"{field} must be an integer")
        return int(numeric)


def to_price(value, field):
    if _is_blank(value):
        raise ValueError(f"{field} is required")
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} must be a number") from None
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{field} must be a non-negative number")
    return amount.quantize(Decimal("0.01"))


def load_sheet_rows(worksheet):
    """Return ``(rows, columns)``; each row is ``(excel_row_number, record)``."""
    rows_iter = worksheet.iter_rows(values_only=True)
    headers = next(rows_iter, None)
    if not headers:
        return [], set()
    header_keys = [normalize_header(header) for header in headers]
    indices = [(idx, key) for idx, key in enumerate(header_keys) if key]
    columns = {key for key in header_keys if key}

    rows = []
    for row_idx, row in enumerate(rows_iter, start=2):
        if row is None or all(_is_blank(value) for value in row):
            continue
        record = {key: row[idx] if idx < len(row) else None for idx, key in indices}
        rows.append((row_idx, record))
    return rows, columns


def validate_columns(columns):
    missing = sorted(REQUIRED_COLUMNS - columns)
    if missing:
        raise ValueError("medicine sheet missing columns: {}".format(", ".join(missing)))


def parse_medicine_row(record):
    values = {
        "code": to_str(record.get("code"), "code"),
        "name": to_str(record.get("name"), "name"),
        "type": to_str(record.get("type"), "type"),
        "price": to_price(record.get("price"), "price"),
        "spec": to_str(record.get("spec"), "spec", required=False),
        "manufacturer": to_str(record.get("manufacturer"), "manufacturer", required=False),
        "status": to_str(record.get("status"), "status", required=False),
    }
    if values["status"] is not None:
        values["status"] = values["status"].lower()
        if values["status"] not in MEDICINE_STATUSES:
            raise ValueError("status must be one of: {}".format(", ".join(MEDICINE_STATUSES)))
    stock = to_int(record.get("stock"), "stock", required=False)
    if stock is not None and stock < 0:
        raise ValueError("stock must not be negative")
    return values, stock


def upsert_medicine(db: Session, values: dict, stock):
    existing = db.execute(select(Medicine).where(Medicine.code == values["code"])).scalars().first()
    if existing is not None:
        # Stock of an existing medicine only moves through the ledger.
        for field in CATALOG_FIELDS:
            if values.get(field) is not None:
                setattr(existing, field, values[field])
        return "updated"
    fields = {key: value for key, value in values.items() if value is not None}
    db.add(Medicine(stock=stock or 0, **fields))
    return "created"


def _open_workbook(source):
    if isinstance(source, (bytes, bytearray)):
        handle = BytesIO(source)
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if path.suffix.lower() != ".xlsx":
            raise ValueError("Only .xlsx files are supported.")
        handle = str(path)
    try:
        return load_workbook(handle, data_only=True, read_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValueError("Not a readable .xlsx workbook") from exc


def import_medicines(db: Session, source, *, sheet=None, dry_run=False) -> dict:
    """Upsert the medicine catalog from a workbook path or raw .xlsx bytes.

    Bad rows are reported and skipped; a missing sheet or required column
    aborts the whole import. ``dry_run`` validates and rolls back.
    """
    workbook = _open_workbook(source)
    try:
        if sheet:
            if sheet not in workbook.sheetnames:
                raise ValueError(f"Sheet not found: {sheet}")
            worksheet = workbook[sheet]
        else:
            worksheet = workbook[workbook.sheetnames[0]]
        rows, columns = load_sheet_rows(worksheet)
    finally:
        workbook.close()
    validate_columns(columns)

    result = {
        "sheet": worksheet.title,
        "created": 0,
        "updated": 0,
        "skipped": 0,
        "dry_run": dry_run,
        "errors": [],
    }
    seen_codes = set()
    try:
        for row_idx, record in rows:
            try:
                values, stock = parse_medicine_row(record)
            except ValueError as exc:
                result["skipped"] += 1
                result["errors"].append(f"Row {row_idx}: {exc}")
                continue
            if values["code"] in seen_codes:
                result["skipped"] += 1
                result["errors"].append(f"Row {row_idx}: duplicate code {values['code']}")
                continue
            seen_codes.add(values["code"])
            action = upsert_medicine(db, values, stock)
            db.flush()
            result[action] += 1

        if dry_run:
            db.rollback()
        else:
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Medicine import from %s: %s created, %s updated, %s skipped%s",
        result["sheet"],
        result["created"],
        result["updated"],
        result["skipped"],
        " (dry run)" if dry_run else "",
    )
    return result


__all__ = [
    "HEADER_ALIASES",
    "REQUIRED_COLUMNS",
    "import_medicines",
    "load_sheet_rows",
    "normalize_header",
    "parse_medicine_row",
    "validate_columns",
]
