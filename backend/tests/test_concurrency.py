"""
Concurrency tests against a file-backed SQLite database.

Many threads race to buy the last units of one item. Exactly as many
buyers as there are units may succeed; everyone else gets
InsufficientStock, and the quantity ends at zero, never below.
"""
import os
import tempfile
import threading
import unittest
from unittest import mock

from stockroom import create_app
from stockroom.errors import InsufficientStock
from stockroom.extensions import db
from stockroom.models import ActivityLog, Category, StockItem, ROLE_STAFF
from stockroom.models.audit import ACTION_BUY, ACTION_UPDATE
from stockroom.services import purchase_service, stock_service
from stockroom.services.auth_service import create_user

UNITS = 5
BUYERS = 12


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "WRITE_RETRY_ATTEMPTS": 5,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            user = create_user("buyer@example.com", "Password123!", "Buyer", ROLE_STAFF, rounds=4)
            self.user_id = user.id

            category = Category(name="Goods")
            db.session.add(category)
            db.session.commit()

            item = stock_service.create_item(
                patch={
                    "name": "Last Units",
                    "category_id": category.id,
                    "quantity": UNITS,
                    "price_cents": 1000,
                    "supplier": "Acme",
                },
                actor_id=self.user_id,
            )
            self.item_id = item.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _race(self, worker_count, target):
        results = []
        lock = threading.Lock()
        start = threading.Barrier(worker_count)

        def worker():
            with self.app.app_context():
                try:
                    start.wait()
                    target()
                    with lock:
                        results.append("bought")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(worker_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_concurrent_single_unit_buyers_never_oversell(self):
        results = self._race(
            BUYERS,
            lambda: purchase_service.buy_one(self.item_id, 1, self.user_id),
        )

        bought = [r for r in results if r == "bought"]
        failures = [r for r in results if r != "bought"]

        self.assertEqual(len(bought), UNITS)
        self.assertEqual(len(failures), BUYERS - UNITS)
        for exc in failures:
            self.assertIsInstance(exc, InsufficientStock)

        with self.app.app_context():
            item = db.session.get(StockItem, self.item_id)
            self.assertEqual(item.quantity, 0)
            self.assertEqual(item.version_id, 1 + UNITS)
            buys = ActivityLog.query.filter_by(action=ACTION_BUY, entity_id=self.item_id).count()
            self.assertEqual(buys, UNITS)

    def test_concurrent_multi_unit_decrements_stay_non_negative(self):
        results = self._race(
            4,
            lambda: stock_service.decrement_for_purchase(self.item_id, 2, self.user_id),
        )

        bought = [r for r in results if r == "bought"]
        self.assertEqual(len(bought), UNITS // 2)

        with self.app.app_context():
            item = db.session.get(StockItem, self.item_id)
            self.assertEqual(item.quantity, UNITS % 2)

    def test_admin_edit_rereads_after_a_sale_lands_mid_edit(self):
        real_apply = stock_service.apply_stock_patch
        applied = []

        def apply_after_sale(item, patch):
            applied.append(item.quantity)
            if len(applied) == 1:
                # A buyer on another connection commits between the admin's read and write
                sale = threading.Thread(target=self._buy_one_unit)
                sale.start()
                sale.join()
            real_apply(item, patch)

        with self.app.app_context():
            with mock.patch.object(stock_service, "apply_stock_patch", side_effect=apply_after_sale):
                item = stock_service.adjust_item(
                    self.item_id, patch={"quantity": 20}, actor_id=self.user_id,
                )

            self.assertEqual(applied, [UNITS, UNITS - 1])
            self.assertEqual(item.quantity, 20)
            self.assertEqual(item.version_id, 3)

            update = ActivityLog.query.filter_by(action=ACTION_UPDATE, entity_id=self.item_id).one()
            self.assertIn(f"quantity {UNITS - 1} -> 20", update.description)
            buys = ActivityLog.query.filter_by(action=ACTION_BUY, entity_id=self.item_id).count()
            self.assertEqual(buys, 1)

    def _buy_one_unit(self):
        with self.app.app_context():
            try:
                purchase_service.buy_one(self.item_id, 1, self.user_id)
            finally:
                db.session.remove()


if __name__ == "__main__":
    unittest.main()
