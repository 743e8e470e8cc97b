"""
Concurrency tests on a file-backed SQLite database.

Verifies:
- concurrent product creation yields distinct, gap-free seq numbers
- concurrent sales yield distinct, gap-free seq numbers and debit each product once
"""

import threading

import pytest

from bizledger import create_app
from bizledger.extensions import db
from bizledger.models import Product
from bizledger.services import counter_service, product_service, sales_service

WORKERS = 20


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"timeout": 30}},
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def _run_workers(app, jobs):
    created = []
    errors = []
    lock = threading.Lock()

    def worker(job):
        with app.app_context():
            try:
                seq = job()
                with lock:
                    created.append(seq)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(job,)) for job in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    return created, errors


class TestConcurrentSeqAllocation:

    def test_concurrent_product_creation(self, file_app):
        def job():
            product = product_service.create_product(
                {"description": "Camiseta", "cost_price": 10, "profit_margin": 50, "quantity": 5}
            )
            return product.seq

        created, errors = _run_workers(file_app, [job] * WORKERS)

        assert errors == []
        assert sorted(created) == list(range(1, WORKERS + 1))
        with file_app.app_context():
            assert counter_service.current_seq(counter_service.PRODUCTS) == WORKERS

    def test_concurrent_sales(self, file_app):
        with file_app.app_context():
            product_ids = [
                product_service.create_product(
                    {"description": f"Item {i}", "cost_price": 10, "profit_margin": 0, "quantity": 3}
                ).id
                for i in range(WORKERS)
            ]

        # One product per worker: only the sales counter is shared
        jobs = [
            (lambda product_id=product_id: sales_service.create_sale(product_id, 1).seq)
            for product_id in product_ids
        ]
        created, errors = _run_workers(file_app, jobs)

        assert errors == []
        assert sorted(created) == list(range(1, WORKERS + 1))
        with file_app.app_context():
            assert counter_service.current_seq(counter_service.SALES) == WORKERS
            quantities = {p.quantity for p in db.session.query(Product).all()}
            assert quantities == {2}
