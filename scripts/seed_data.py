import argparse
import sys
from decimal import Decimal
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import delete, select

from pharmacy.config import get_settings
from pharmacy.core.logging import setup_logging
from pharmacy.database.session import Store
from pharmacy.models.customer import Customer
from pharmacy.models.inbound import Inbound
from pharmacy.models.medicine import Medicine
from pharmacy.models.sale import Sale
from pharmacy.models.supplier import Supplier
from pharmacy.services.catalog_service import seed_admin
from pharmacy.services.db_config_service import resolve_database_url
from pharmacy.services.ledger_service import StockLedger

SUPPLIERS = [
    dict(name="Sunrise Pharma Distribution", contact="Li Wei", phone="13800000001"),
    dict(name="Healthway Medical Supply", contact="Zhang Min", phone="13800000002"),
]

CUSTOMERS = [
    dict(name="Walk-in customer", phone=""),
    dict(name="Chen Jing", phone="13900000001"),
]

MEDICINES = [
    dict(code="MED-0001", name="Amoxicillin Capsules", type="Rx", spec="0.25g x 24", price=Decimal("18.50"),
         manufacturer="North China Pharmaceutical"),
    dict(code="MED-0002", name="Ibuprofen Tablets", type="OTC", spec="0.2g x 20", price=Decimal("12.50"),
         manufacturer="Shijiazhuang Pharma"),
    dict(code="MED-0003", name="Vitamin C Tablets", type="OTC", spec="100mg x 100", price=Decimal("6.80"),
         manufacturer="Northeast Pharmaceutical"),
    dict(code="MED-0004", name="Loratadine Tablets", type="OTC", spec="10mg x 6", price=Decimal("22.00"),
         manufacturer="Shanghai Schering-Plough"),
]

# (medicine code, quantity, unit purchase price)
RECEIPTS = [
    ("MED-0001", 120, "11.20"),
    ("MED-0002", 200, "7.40"),
    ("MED-0003", 40, "3.10"),
    ("MED-0004", 60, "14.00"),
]

# (medicine code, quantity)
SALES = [
    ("MED-0001", 12),
    ("MED-0002", 30),
    ("MED-0003", 5),
    ("MED-0002", 8),
]


def parse_args():
    parser = argparse.ArgumentParser(description="Seed sample pharmacy data.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing catalog and ledger data before seeding.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()

    store = Store(resolve_database_url(settings), busy_timeout_seconds=settings.DB_BUSY_TIMEOUT_SECONDS)
    if not store.initialize():
        raise SystemExit("Seed failed: database is not reachable.")

    try:
        with store.transaction() as db:
            seed_admin(db)
            if args.reset:
                for model in (Sale, Inbound, Medicine, Customer, Supplier):
                    db.execute(delete(model))

        with store.transaction() as db:
            if db.execute(select(Medicine.id).limit(1)).first():
                print("Seed skipped: medicines already exist.")
                return
            suppliers = [Supplier(**values) for values in SUPPLIERS]
            db.add_all(suppliers)
            db.add_all(Customer(**values) for values in CUSTOMERS)
            medicines = [Medicine(stock=0, **values) for values in MEDICINES]
            db.add_all(medicines)
            db.flush()
            supplier_id = suppliers[0].id
            medicine_ids = {medicine.code: medicine.id for medicine in medicines}

        # Stock is built through the ledger so it matches the inbound/sales rows.
        ledger = StockLedger(store)
        for code, quantity, price in RECEIPTS:
            ledger.receive_stock(medicine_ids[code], supplier_id, quantity, price)
        for code, quantity in SALES:
            ledger.sell_stock(medicine_ids[code], None, quantity)
    finally:
        store.dispose()

    print(
        f"Seeded {len(SUPPLIERS)} suppliers, {len(CUSTOMERS)} customers, "
        f"{len(MEDICINES)} medicines, {len(RECEIPTS)} receipts, {len(SALES)} sales."
    )


if __name__ == "__main__":
    main()
