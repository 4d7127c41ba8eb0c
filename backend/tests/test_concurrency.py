# Overview: Threaded concurrency tests against a file-backed database.

"""
Concurrency tests for packledger.

Each worker thread runs in its own app context (own session) against a
temporary SQLite file, so writers really race each other.

Run with:
    python -m pytest tests/test_concurrency.py
"""
import os
import tempfile
import threading
import unittest
from datetime import date

from packledger import create_app
from packledger.errors import AlreadyCompletedError, ConflictError
from packledger.extensions import db
from packledger.models import PacklistStatus, Product, StockMovement
from packledger.services import packlist_service, pos_service, products_service
from packledger.services.permission_service import Actor


ADMIN = Actor(id="admin-1", role="admin")


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "TRANSACTION_RETRY_ATTEMPTS": 10,
            "TRANSACTION_RETRY_BACKOFF": 0.01,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            product = products_service.create_product(
                sku="CONCUR-1",
                name="Concurrent Product",
                base_price=2.0,
                initial_stock=100,
            )
            self.product_id = product.id
            self.pos_id = pos_service.create_pos(name="Concurrency Market").id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run(self, target, count):
        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    outcome = target()
                    with lock:
                        results.append(outcome)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def _sold_packlist(self):
        with self.app.app_context():
            packlist = packlist_service.create_packlist(
                pos_id=self.pos_id,
                date=date(2024, 5, 4),
                items=[{"product_id": self.product_id, "planned_quantity": 3}],
                actor=ADMIN,
            )
            packlist_service.start_selling(packlist.id, actor=ADMIN)
            packlist_service.finish_selling(packlist.id, actor=ADMIN, reported_cash=6)
            return packlist.id

    def test_concurrent_reservations_conserve_stock(self):
        def reserve():
            packlist_service.create_packlist(
                pos_id=self.pos_id,
                date=date(2024, 5, 4),
                items=[{"product_id": self.product_id, "planned_quantity": 7}],
                actor=ADMIN,
            )
            return "created"

        results = self._run(reserve, 5)
        created = sum(1 for r in results if r == "created")

        self.assertGreaterEqual(created, 1)
        with self.app.app_context():
            product = db.session.get(Product, self.product_id)
            self.assertEqual(product.total_stock, 100)
            self.assertEqual(product.current_stock, 100 - 7 * created)
            movements = db.session.query(StockMovement).filter_by(product_id=self.product_id).count()
            self.assertEqual(movements, created)

    def test_double_completion_applies_once(self):
        packlist_id = self._sold_packlist()

        def complete():
            packlist_service.complete_packlist(packlist_id, actor=ADMIN)
            return "completed"

        results = self._run(complete, 2)

        self.assertEqual(sum(1 for r in results if r == "completed"), 1)
        losers = [r for r in results if r != "completed"]
        self.assertEqual(len(losers), 1)
        self.assertIsInstance(losers[0], (AlreadyCompletedError, ConflictError))

        with self.app.app_context():
            packlist = packlist_service.get_packlist(packlist_id)
            self.assertIs(packlist.status, PacklistStatus.COMPLETED)
            product = db.session.get(Product, self.product_id)
            self.assertEqual(product.current_stock, 97)

    def test_racing_sellers_start_once(self):
        with self.app.app_context():
            packlist = packlist_service.create_packlist(
                pos_id=self.pos_id,
                date=date(2024, 5, 4),
                items=[{"product_id": self.product_id, "planned_quantity": 2}],
                actor=ADMIN,
            )
            packlist_id = packlist.id

        def start():
            packlist_service.start_selling(packlist_id, actor=ADMIN)
            return "started"

        results = self._run(start, 3)

        self.assertEqual(sum(1 for r in results if r == "started"), 1)
        for r in results:
            if r != "started":
                self.assertIsInstance(r, ConflictError)


if __name__ == "__main__":
    unittest.main()
