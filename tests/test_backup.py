import json
import unittest
from decimal import Decimal

from sqlalchemy import delete, func, select

from pharmacy.core.errors import Internal, InvalidInput
from pharmacy.database.session import Store
from pharmacy.models.customer import Customer
from pharmacy.models.inbound import Inbound
from pharmacy.models.medicine import Medicine
from pharmacy.models.sale import Sale
from pharmacy.models.supplier import Supplier
from pharmacy.models.user import User
from pharmacy.services import backup_service
from pharmacy.services.catalog_service import create_user
from pharmacy.services.ledger_service import StockLedger, ledger_balance


class BackupServiceTest(unittest.TestCase):
    def setUp(self):
        self.store = Store("sqlite://")
        self.assertTrue(self.store.initialize())
        with self.store.transaction() as db:
            create_user(db, username="clerk", password="secret")
            supplier = Supplier(name="O'Brien Pharma; Ltd", contact="Pat -- night shift", phone="1")
            db.add_all([supplier, Customer(name="Chen", phone="2")])
            medicine = Medicine(code="A", name="Amoxicillin", type="Rx", price=Decimal("10.00"), stock=0)
            db.add(medicine)
            db.flush()
            self.supplier_id, self.medicine_id = supplier.id, medicine.id
        ledger = StockLedger(self.store)
        ledger.receive_stock(self.medicine_id, self.supplier_id, 20, "4.50")
        ledger.sell_stock(self.medicine_id, None, 3)

    def tearDown(self):
        self.store.dispose()

    def _counts(self):
        db = self.store.session()
        try:
            return {
                model.__tablename__: db.execute(select(func.count(model.id))).scalar_one()
                for model in (Supplier, Customer, Medicine, Inbound, Sale, User)
            }
        finally:
            db.close()

    def _wipe_catalog(self):
        with self.store.transaction() as db:
            for model in (Sale, Inbound, Medicine, Customer, Supplier):
                db.execute(delete(model))

    def test_sql_dump_layout(self):
        db = self.store.session()
        try:
            dump = backup_service.dump_sql(db)
        finally:
            db.close()

        self.assertIn("SET FOREIGN_KEY_CHECKS = 0;", dump)
        self.assertTrue(dump.rstrip().endswith("SET FOREIGN_KEY_CHECKS = 1;"))
        self.assertIn("'O''Brien Pharma; Ltd'", dump)
        self.assertLess(dump.index("DELETE FROM sales;"), dump.index("DELETE FROM suppliers;"))
        self.assertLess(dump.index("INSERT INTO suppliers"), dump.index("INSERT INTO sales"))
        self.assertNotIn("users", dump)

    def test_sql_round_trip_restores_rows(self):
        db = self.store.session()
        try:
            dump = backup_service.dump_sql(db)
        finally:
            db.close()
        before = self._counts()
        self._wipe_catalog()

        executed = backup_service.restore_sql(self.store, dump)

        self.assertGreater(executed, 0)
        self.assertEqual(self._counts(), before)
        db = self.store.session()
        try:
            supplier = db.get(Supplier, self.supplier_id)
            self.assertEqual(supplier.name, "O'Brien Pharma; Ltd")
            self.assertEqual(supplier.contact, "Pat -- night shift")
            medicine = db.get(Medicine, self.medicine_id)
            self.assertEqual(medicine.stock, 17)
            self.assertEqual(ledger_balance(db, self.medicine_id), 17)
        finally:
            db.close()

    def test_failed_sql_restore_rolls_back(self):
        before = self._counts()
        script = "DELETE FROM sales;\nDELETE FROM inbounds;\nINSERT INTO no_such_table (id) VALUES (1);"

        with self.assertRaises(Internal):
            backup_service.restore_sql(self.store, script)

        self.assertEqual(self._counts(), before)

    def test_empty_sql_restore_rejected(self):
        with self.assertRaises(InvalidInput):
            backup_service.restore_sql(self.store, "   ")
        with self.assertRaises(InvalidInput):
            backup_service.restore_sql(self.store, "-- only a comment\n")

    def test_split_respects_quotes_and_comments(self):
        statements = backup_service.split_sql_statements(
            "-- header\nINSERT INTO t VALUES ('a;b', 'it''s');\n-- next\nDELETE FROM t;"
        )

        self.assertEqual(statements, ["INSERT INTO t VALUES ('a;b', 'it''s')", "DELETE FROM t"])

    def test_split_rejects_unterminated_string(self):
        with self.assertRaises(InvalidInput):
            backup_service.split_sql_statements("INSERT INTO t VALUES ('oops);")

    def test_json_round_trip(self):
        db = self.store.session()
        try:
            document = backup_service.dump_json(db)
        finally:
            db.close()
        self.assertEqual(document["version"], 1)
        self.assertNotIn("users", document["tables"])
        self.assertEqual(len(document["tables"]["sales"]), 1)
        before = self._counts()
        self._wipe_catalog()

        counts = backup_service.restore_json(self.store, json.dumps(document))

        self.assertEqual(counts["medicines"], 1)
        self.assertEqual(self._counts(), before)
        db = self.store.session()
        try:
            self.assertEqual(db.get(Medicine, self.medicine_id).price, Decimal("10.00"))
        finally:
            db.close()

    def test_malformed_json_rejected(self):
        for document in ("not json", "{}", json.dumps({"tables": {"secrets": []}}),
                         json.dumps({"tables": {"medicines": [{"id": 1, "colour": "red"}]}})):
            with self.subTest(document=document):
                with self.assertRaises(InvalidInput):
                    backup_service.restore_json(self.store, document)
        self.assertEqual(self._counts()["medicines"], 1)


if __name__ == "__main__":
    unittest.main()
