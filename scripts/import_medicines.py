import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy.exc import SQLAlchemyError

from pharmacy.config import get_settings
from pharmacy.core.logging import setup_logging
from pharmacy.database.session import Store
from pharmacy.services.db_config_service import resolve_database_url
from pharmacy.services.import_service import import_medicines


def parse_args():
    parser = argparse.ArgumentParser(
        description="Create or update medicines from an Excel workbook."
    )
    parser.add_argument("--path", required=True, help="Path to .xlsx workbook.")
    parser.add_argument("--sheet", default=None, help="Sheet to read. Default: the first sheet.")
    parser.add_argument("--dry-run", action="store_true", help="Validate without saving.")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()

    store = Store(resolve_database_url(settings), busy_timeout_seconds=settings.DB_BUSY_TIMEOUT_SECONDS)
    if not store.initialize():
        raise SystemExit("Import failed: database is not reachable.")

    db = store.session()
    try:
        result = import_medicines(db, args.path, sheet=args.sheet, dry_run=args.dry_run)
    except (OSError, ValueError, SQLAlchemyError) as exc:
        raise SystemExit(f"Import failed: {exc}") from exc
    finally:
        db.close()
        store.dispose()

    print(
        f"{result['sheet']}: {result['created']} created, "
        f"{result['updated']} updated, {result['skipped']} skipped"
    )
    for error in result["errors"]:
        print(f"  {error}")

    if args.dry_run:
        print("Dry run complete, no changes committed.")
    else:
        print("Import complete.")


if __name__ == "__main__":
    main()
