import unittest
from datetime import datetime, timezone
from decimal import Decimal
from unittest import mock

from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError

from pharmacy.core.constants import MAX_QUANTITY
from pharmacy.core.errors import InsufficientStock, Internal, InvalidInput, NotFound
from pharmacy.database.session import Store
from pharmacy.models.inbound import Inbound
from pharmacy.models.medicine import Medicine
from pharmacy.models.sale import Sale
from pharmacy.services.ledger_service import StockLedger, ledger_balance, new_order_id, to_money


class StockLedgerTest(unittest.TestCase):
    def setUp(self):
        self.store = Store("sqlite://")
        self.assertTrue(self.store.initialize())
        self.ledger = StockLedger(self.store)
        self.medicine_id = self._add_medicine("MED-1", price=Decimal("12.50"))

    def tearDown(self):
        self.store.dispose()

    def _add_medicine(self, code, *, price=Decimal("10.00"), stock=0):
        with self.store.transaction() as db:
            medicine = Medicine(code=code, name=f"Medicine {code}", type="OTC", price=price, stock=stock)
            db.add(medicine)
            db.flush()
            return medicine.id

    def _stock(self, medicine_id=None):
        db = self.store.session()
        try:
            return db.get(Medicine, medicine_id or self.medicine_id).stock
        finally:
            db.close()

    def _count(self, model):
        db = self.store.session()
        try:
            return db.execute(select(func.count(model.id))).scalar_one()
        finally:
            db.close()

    def _balance(self, medicine_id=None):
        db = self.store.session()
        try:
            return ledger_balance(db, medicine_id or self.medicine_id)
        finally:
            db.close()

    def test_receive_stock_adds_quantity_and_records_inbound(self):
        self.ledger.receive_stock(self.medicine_id, 1, 30, "4.00")

        inbound = self.ledger.receive_stock(self.medicine_id, 1, 20, Decimal("5.00"))

        self.assertEqual(self._stock(), 50)
        self.assertEqual(inbound.quantity, 20)
        self.assertEqual(inbound.price, Decimal("5.00"))
        self.assertEqual(inbound.medicine_id, self.medicine_id)
        self.assertEqual(self._count(Inbound), 2)

    def test_sell_stock_prices_from_medicine(self):
        self.ledger.receive_stock(self.medicine_id, None, 30, "6.00")

        sale = self.ledger.sell_stock(self.medicine_id, None, 5)

        self.assertEqual(sale.total_price, Decimal("62.50"))
        self.assertEqual(sale.quantity, 5)
        self.assertTrue(sale.order_id.startswith("ORD-"))
        self.assertEqual(self._stock(), 25)

    def test_sell_more_than_stock_changes_nothing(self):
        self.ledger.receive_stock(self.medicine_id, None, 10, "6.00")

        with self.assertRaises(InsufficientStock) as ctx:
            self.ledger.sell_stock(self.medicine_id, None, 11)

        self.assertEqual(ctx.exception.available, 10)
        self.assertEqual(ctx.exception.requested, 11)
        self.assertEqual(self._stock(), 10)
        self.assertEqual(self._count(Sale), 0)

    def test_sell_entire_stock_leaves_zero(self):
        self.ledger.receive_stock(self.medicine_id, None, 7, "6.00")

        self.ledger.sell_stock(self.medicine_id, None, 7)

        self.assertEqual(self._stock(), 0)

    def test_unknown_medicine_is_not_found(self):
        with self.assertRaises(NotFound):
            self.ledger.receive_stock(9999, None, 1, "1.00")
        with self.assertRaises(NotFound):
            self.ledger.sell_stock(9999, None, 1)
        with self.assertRaises(NotFound):
            self.ledger.adjust_stock(9999, 3)
        self.assertEqual(self._count(Inbound), 0)

    def test_quantity_must_be_positive_integer(self):
        for quantity in (0, -3, 1.5, "2", True):
            with self.subTest(quantity=quantity):
                with self.assertRaises(InvalidInput):
                    self.ledger.receive_stock(self.medicine_id, None, quantity, "1.00")
                with self.assertRaises(InvalidInput):
                    self.ledger.sell_stock(self.medicine_id, None, quantity)
        self.assertEqual(self._stock(), 0)

    def test_negative_or_invalid_price_rejected(self):
        with self.assertRaises(InvalidInput):
            self.ledger.receive_stock(self.medicine_id, None, 5, "-1.00")
        with self.assertRaises(InvalidInput):
            self.ledger.receive_stock(self.medicine_id, None, 5, "abc")
        self.assertEqual(self._count(Inbound), 0)

    def test_amounts_beyond_ten_digits_rejected(self):
        for price in ("1e30", "123456789012.5", "100000000.00"):
            with self.subTest(price=price):
                with self.assertRaises(InvalidInput):
                    self.ledger.receive_stock(self.medicine_id, None, 1, price)
        self.assertEqual(self._count(Inbound), 0)

        inbound = self.ledger.receive_stock(self.medicine_id, None, 1, "99999999.99")
        self.assertEqual(inbound.price, Decimal("99999999.99"))

    def test_quantities_beyond_integer_column_rejected(self):
        with self.assertRaises(InvalidInput):
            self.ledger.receive_stock(self.medicine_id, None, 10**20, "1.00")
        with self.assertRaises(InvalidInput):
            self.ledger.sell_stock(self.medicine_id, None, MAX_QUANTITY + 1)
        with self.assertRaises(InvalidInput):
            self.ledger.adjust_stock(self.medicine_id, MAX_QUANTITY + 1)

        self.ledger.adjust_stock(self.medicine_id, MAX_QUANTITY)
        with self.assertRaises(InvalidInput):
            self.ledger.receive_stock(self.medicine_id, None, 1, "1.00")

        self.assertEqual(self._stock(), MAX_QUANTITY)
        self.assertEqual(self._count(Inbound), 0)

    def test_sale_total_beyond_ten_digits_rejected(self):
        medicine_id = self._add_medicine("MED-BIG", price=Decimal("99999999.99"), stock=2)

        with self.assertRaises(InvalidInput):
            self.ledger.sell_stock(medicine_id, None, 2)

        self.assertEqual(self._stock(medicine_id), 2)
        self.assertEqual(self._count(Sale), 0)

    def test_reverse_sale_restores_stock_once(self):
        self.ledger.receive_stock(self.medicine_id, None, 10, "6.00")
        sale = self.ledger.sell_stock(self.medicine_id, None, 5)

        reversal = self.ledger.reverse_sale(sale.id, reason="damaged box")

        self.assertEqual(reversal.quantity, 5)
        self.assertEqual(reversal.refund_amount, Decimal("62.50"))
        self.assertEqual(self._stock(), 10)
        self.assertEqual(self._count(Sale), 0)
        with self.assertRaises(NotFound):
            self.ledger.reverse_sale(sale.id)
        self.assertEqual(self._stock(), 10)

    def test_reverse_purchase_removes_inbound(self):
        inbound = self.ledger.receive_stock(self.medicine_id, 2, 20, "5.00")

        reversal = self.ledger.reverse_purchase(inbound.id)

        self.assertEqual(reversal.quantity, 20)
        self.assertEqual(self._stock(), 0)
        self.assertEqual(self._count(Inbound), 0)
        with self.assertRaises(NotFound):
            self.ledger.reverse_purchase(inbound.id)

    def test_reverse_purchase_refused_when_goods_already_sold(self):
        inbound = self.ledger.receive_stock(self.medicine_id, 2, 20, "5.00")
        self.ledger.sell_stock(self.medicine_id, None, 15)

        with self.assertRaises(InsufficientStock):
            self.ledger.reverse_purchase(inbound.id)

        self.assertEqual(self._stock(), 5)
        self.assertEqual(self._count(Inbound), 1)

    def test_adjust_stock_to_zero(self):
        self.ledger.receive_stock(self.medicine_id, None, 42, "1.00")

        adjustment = self.ledger.adjust_stock(self.medicine_id, 0, reason="stocktake")

        self.assertEqual(adjustment.old_stock, 42)
        self.assertEqual(adjustment.new_stock, 0)
        self.assertEqual(adjustment.difference, -42)
        self.assertEqual(self._stock(), 0)

    def test_adjust_stock_rejects_negative(self):
        with self.assertRaises(InvalidInput):
            self.ledger.adjust_stock(self.medicine_id, -1)
        with self.assertRaises(InvalidInput):
            self.ledger.adjust_stock(self.medicine_id, "7")

    def test_stock_matches_ledger_after_mixed_operations(self):
        other_id = self._add_medicine("MED-2", price=Decimal("3.00"))
        first = self.ledger.receive_stock(self.medicine_id, 1, 40, "5.00")
        self.ledger.receive_stock(other_id, 1, 15, "1.50")
        sale_a = self.ledger.sell_stock(self.medicine_id, 1, 12)
        self.ledger.sell_stock(self.medicine_id, 2, 8)
        self.ledger.sell_stock(other_id, None, 15)
        with self.assertRaises(InsufficientStock):
            self.ledger.sell_stock(other_id, None, 1)
        self.ledger.reverse_sale(sale_a.id)
        self.ledger.receive_stock(self.medicine_id, 1, 5, "5.10")
        with self.assertRaises(InsufficientStock):
            self.ledger.reverse_purchase(first.id)

        for medicine_id in (self.medicine_id, other_id):
            with self.subTest(medicine_id=medicine_id):
                self.assertEqual(self._stock(medicine_id), self._balance(medicine_id))
        self.assertEqual(self._stock(), 37)
        self.assertEqual(self._stock(other_id), 0)


class LedgerWriteFailureTest(unittest.TestCase):
    """A failed write aborts both the stock update and the ledger row change."""

    def setUp(self):
        self.store = Store("sqlite://")
        self.assertTrue(self.store.initialize())
        self.ledger = StockLedger(self.store)
        with self.store.transaction() as db:
            medicine = Medicine(code="MED-1", name="Medicine MED-1", type="OTC", price=Decimal("2.00"), stock=0)
            db.add(medicine)
            db.flush()
            self.medicine_id = medicine.id

    def tearDown(self):
        self.store.dispose()

    def _fail_statements(self, prefix):
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith(prefix):
                raise OperationalError(statement, parameters, Exception("disk I/O error"))

        event.listen(self.store.engine, "before_cursor_execute", before_cursor_execute)
        self.addCleanup(event.remove, self.store.engine, "before_cursor_execute", before_cursor_execute)

    def _state(self):
        db = self.store.session()
        try:
            stock = db.get(Medicine, self.medicine_id).stock
            inbounds = db.execute(select(func.count(Inbound.id))).scalar_one()
            sales = db.execute(select(func.count(Sale.id))).scalar_one()
            return stock, inbounds, sales
        finally:
            db.close()

    def test_failed_sale_insert_keeps_stock(self):
        self.ledger.receive_stock(self.medicine_id, None, 10, "1.00")

        with mock.patch("pharmacy.services.ledger_service.new_order_id", return_value="ORD-DUPLICATE"):
            self.ledger.sell_stock(self.medicine_id, None, 1)
            with self.assertRaises(Internal):
                self.ledger.sell_stock(self.medicine_id, None, 2)

        self.assertEqual(self._state(), (9, 1, 1))

    def test_failed_inbound_insert_keeps_stock(self):
        self.ledger.receive_stock(self.medicine_id, None, 10, "1.00")
        self._fail_statements("INSERT INTO INBOUNDS")

        with self.assertRaises(Internal):
            self.ledger.receive_stock(self.medicine_id, None, 5, "1.00")

        self.assertEqual(self._state(), (10, 1, 0))

    def test_failed_sale_delete_keeps_sale_and_stock(self):
        self.ledger.receive_stock(self.medicine_id, None, 10, "1.00")
        sale = self.ledger.sell_stock(self.medicine_id, None, 4)
        self._fail_statements("DELETE FROM SALES")

        with self.assertRaises(Internal):
            self.ledger.reverse_sale(sale.id)

        self.assertEqual(self._state(), (6, 1, 1))

    def test_failed_inbound_delete_keeps_inbound_and_stock(self):
        inbound = self.ledger.receive_stock(self.medicine_id, None, 10, "1.00")
        self._fail_statements("DELETE FROM INBOUNDS")

        with self.assertRaises(Internal):
            self.ledger.reverse_purchase(inbound.id)

        self.assertEqual(self._state(), (10, 1, 0))


class LedgerHelpersTest(unittest.TestCase):
    def test_order_id_format(self):
        order_id = new_order_id(datetime(2024, 3, 1, 9, 30, 5, tzinfo=timezone.utc))
        prefix, stamp, suffix = order_id.split("-")
        self.assertEqual(prefix, "ORD")
        self.assertEqual(stamp, "20240301093005")
        self.assertEqual(len(suffix), 8)

    def test_order_ids_are_unique(self):
        now = datetime(2024, 3, 1, tzinfo=timezone.utc)
        self.assertEqual(len({new_order_id(now) for _ in range(200)}), 200)

    def test_to_money_rounds_to_cents(self):
        self.assertEqual(to_money("12.5"), Decimal("12.50"))
        self.assertEqual(to_money(3), Decimal("3.00"))
        with self.assertRaises(InvalidInput):
            to_money("NaN")
        with self.assertRaises(InvalidInput):
            to_money(None)


if __name__ == "__main__":
    unittest.main()
