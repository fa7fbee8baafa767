import tempfile
import threading
import unittest
from decimal import Decimal
from pathlib import Path

from pharmacy.core.errors import InsufficientStock
from pharmacy.database.session import Store
from pharmacy.models.medicine import Medicine
from pharmacy.services.ledger_service import StockLedger, ledger_balance


class ConcurrentSellTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tmpdir.name) / "ledger.db"
        self.store = Store(f"sqlite:///{db_path}", busy_timeout_seconds=10)
        self.assertTrue(self.store.initialize())
        self.ledger = StockLedger(self.store)

        with self.store.transaction() as db:
            medicine = Medicine(code="MED-C", name="Cough Syrup", type="OTC", price=Decimal("8.00"), stock=0)
            db.add(medicine)
            db.flush()
            self.medicine_id = medicine.id
        self.ledger.receive_stock(self.medicine_id, None, 10, "4.00")

    def tearDown(self):
        self.store.dispose()
        self._tmpdir.cleanup()

    def _run_concurrently(self, workers, quantity):
        barrier = threading.Barrier(workers)
        outcomes = []
        lock = threading.Lock()

        def sell():
            barrier.wait()
            try:
                self.ledger.sell_stock(self.medicine_id, None, quantity)
                outcome = "ok"
            except InsufficientStock:
                outcome = "insufficient"
            except Exception as exc:
                outcome = repr(exc)
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=sell) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return outcomes

    def test_two_sells_of_six_against_ten(self):
        outcomes = self._run_concurrently(2, 6)

        self.assertEqual(sorted(outcomes), ["insufficient", "ok"])
        db = self.store.session()
        try:
            stock = db.get(Medicine, self.medicine_id).stock
            self.assertEqual(stock, 4)
            self.assertEqual(ledger_balance(db, self.medicine_id), 4)
        finally:
            db.close()

    def test_many_small_sells_never_oversell(self):
        outcomes = self._run_concurrently(8, 3)

        self.assertEqual(outcomes.count("ok"), 3)
        self.assertEqual(outcomes.count("insufficient"), 5)
        db = self.store.session()
        try:
            self.assertEqual(db.get(Medicine, self.medicine_id).stock, 1)
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
