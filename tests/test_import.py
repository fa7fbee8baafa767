import tempfile
import unittest
from decimal import Decimal
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from sqlalchemy import select

from pharmacy.database.session import Store
from pharmacy.models.medicine import Medicine
from pharmacy.services.import_service import (
    import_medicines,
    load_sheet_rows,
    normalize_header,
    validate_columns,
)


def _workbook_bytes(rows, title="Medicines"):
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = title
    for row in rows:
        worksheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class ImportHelpersTest(unittest.TestCase):
    def test_header_aliases(self):
        self.assertEqual(normalize_header("Medicine Code"), "code")
        self.assertEqual(normalize_header("Unit Price"), "price")
        self.assertEqual(normalize_header(" Opening-Stock "), "stock")
        self.assertEqual(normalize_header("Manufacturer"), "manufacturer")
        self.assertEqual(normalize_header(None), "")

    def test_load_sheet_rows_skips_blank_lines(self):
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.append(["Code", "Name", "Type", "Price"])
        worksheet.append(["A1", "Aspirin", "OTC", 3.5])
        worksheet.append([None, None, None, None])
        worksheet.append(["A2", "Zinc", "OTC", 1])

        rows, columns = load_sheet_rows(worksheet)

        self.assertEqual(columns, {"code", "name", "type", "price"})
        self.assertEqual([row_idx for row_idx, _ in rows], [2, 4])
        validate_columns(columns)

    def test_validate_columns_reports_missing(self):
        with self.assertRaises(ValueError) as ctx:
            validate_columns({"code", "name"})
        self.assertIn("price", str(ctx.exception))
        self.assertIn("type", str(ctx.exception))


class ImportMedicinesTest(unittest.TestCase):
    def setUp(self):
        self.store = Store("sqlite://")
        self.assertTrue(self.store.initialize())
        with self.store.transaction() as db:
            db.add(Medicine(code="EXIST", name="Old name", type="OTC", price=Decimal("5.00"), stock=40))
        self.db = self.store.session()

    def tearDown(self):
        self.db.close()
        self.store.dispose()

    def _medicines(self):
        self.db.expire_all()
        return {m.code: m for m in self.db.execute(select(Medicine)).scalars()}

    def test_creates_and_updates_without_touching_existing_stock(self):
        content = _workbook_bytes(
            [
                ["Medicine Code", "Medicine Name", "Type", "Unit Price", "Opening Stock", "Manufacturer"],
                ["EXIST", "New name", "Rx", "6.25", 999, "Acme"],
                [1001, "Paracetamol", "OTC", 2.5, 12, None],
            ]
        )

        result = import_medicines(self.db, content)

        self.assertEqual((result["created"], result["updated"], result["skipped"]), (1, 1, 0))
        medicines = self._medicines()
        self.assertEqual(medicines["EXIST"].name, "New name")
        self.assertEqual(medicines["EXIST"].price, Decimal("6.25"))
        self.assertEqual(medicines["EXIST"].manufacturer, "Acme")
        self.assertEqual(medicines["EXIST"].stock, 40)
        self.assertEqual(medicines["1001"].stock, 12)
        self.assertEqual(medicines["1001"].price, Decimal("2.50"))

    def test_bad_rows_are_skipped_with_errors(self):
        content = _workbook_bytes(
            [
                ["Code", "Name", "Type", "Price", "Stock"],
                ["B1", "Bandage", "OTC", "abc", None],
                ["B2", None, "OTC", 1, None],
                ["B3", "Gauze", "OTC", 2, -4],
                ["B4", "Tape", "OTC", 3, None],
                ["B4", "Tape again", "OTC", 3, None],
            ]
        )

        result = import_medicines(self.db, content)

        self.assertEqual(result["created"], 1)
        self.assertEqual(result["skipped"], 4)
        self.assertEqual(len(result["errors"]), 4)
        self.assertTrue(result["errors"][0].startswith("Row 2:"))
        self.assertIn("B4", self._medicines())

    def test_dry_run_commits_nothing(self):
        content = _workbook_bytes([["Code", "Name", "Type", "Price"], ["D1", "Dressing", "OTC", 4]])

        result = import_medicines(self.db, content, dry_run=True)

        self.assertTrue(result["dry_run"])
        self.assertEqual(result["created"], 1)
        self.assertNotIn("D1", self._medicines())

    def test_missing_required_column_aborts(self):
        content = _workbook_bytes([["Code", "Name", "Price"], ["X1", "Xylitol", 4]])

        with self.assertRaises(ValueError):
            import_medicines(self.db, content)

    def test_named_sheet_and_path_source(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "catalog.xlsx"
            path.write_bytes(_workbook_bytes([["Code", "Name", "Type", "Price"], ["S1", "Saline", "OTC", 1]], title="Stock"))

            result = import_medicines(self.db, path, sheet="Stock")
            self.assertEqual(result["sheet"], "Stock")
            with self.assertRaises(ValueError):
                import_medicines(self.db, path, sheet="Missing")
        self.assertIn("S1", self._medicines())

    def test_rejects_non_workbook_content(self):
        with self.assertRaises(ValueError):
            import_medicines(self.db, b"not a workbook")


if __name__ == "__main__":
    unittest.main()
