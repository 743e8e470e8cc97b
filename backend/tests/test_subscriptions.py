"""
Live collection tests.

Verifies:
- listeners receive (collection, version) and stop after unsubscribing
- committed writes publish the collections they touched; rollbacks publish nothing
- snapshot and stream endpoints
"""

import pytest

from bizledger.extensions import db, hub
from bizledger.models import Product
from bizledger.services import counter_service, product_service, sales_service, subscription_service
from bizledger.services.subscription_service import CollectionHub, SubscriptionError


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, collection, version):
        self.calls.append((collection, version))


# =============================================================================
# HUB
# =============================================================================


class TestCollectionHub:

    def test_publish_reaches_subscribers_of_that_collection(self):
        local = CollectionHub()
        products, sales = Recorder(), Recorder()
        local.subscribe("products", products)
        local.subscribe("vendas", sales)

        local.publish(["products"])
        local.publish(["products", "products"])

        assert products.calls == [("products", 1), ("products", 2)]
        assert sales.calls == []
        assert local.version("products") == 2
        assert local.version("vendas") == 0

    def test_unsubscribe_stops_delivery_and_is_idempotent(self):
        local = CollectionHub()
        recorder = Recorder()
        unsubscribe = local.subscribe("debts", recorder)
        assert local.listener_count("debts") == 1

        unsubscribe()
        unsubscribe()
        local.publish(["debts"])

        assert recorder.calls == []
        assert local.listener_count("debts") == 0

    def test_failing_listener_does_not_block_others(self):
        local = CollectionHub()
        recorder = Recorder()

        def broken(collection, version):
            raise RuntimeError("boom")

        local.subscribe("entries", broken)
        local.subscribe("entries", recorder)
        local.publish(["entries"])

        assert recorder.calls == [("entries", 1)]

    def test_listener_may_unsubscribe_itself(self):
        local = CollectionHub()
        calls = []
        holder = {}

        def once(collection, version):
            calls.append(version)
            holder["unsubscribe"]()

        holder["unsubscribe"] = local.subscribe("investments", once)
        local.publish(["investments"])
        local.publish(["investments"])

        assert calls == [1]

    def test_collection_required(self):
        with pytest.raises(SubscriptionError):
            CollectionHub().subscribe("", Recorder())


# =============================================================================
# SESSION HOOKS
# =============================================================================


class TestCommitNotifications:

    def test_sale_publishes_sales_products_and_counters(self, db_session):
        product = product_service.create_product(
            {"description": "Camiseta", "cost_price": 10, "profit_margin": 50, "quantity": 20}
        )
        recorders = {name: Recorder() for name in ("vendas", "products", "counters", "debts")}
        releases = [hub.subscribe(name, rec) for name, rec in recorders.items()]
        try:
            sales_service.create_sale(product.id, 1)
        finally:
            for release in releases:
                release()

        assert len(recorders["vendas"].calls) == 1
        assert len(recorders["products"].calls) == 1
        assert len(recorders["counters"].calls) == 1
        assert recorders["debts"].calls == []

    def test_rollback_publishes_nothing(self, db_session):
        recorder = Recorder()
        release = hub.subscribe("products", recorder)
        try:
            db.session.add(Product(seq=99, description="Rascunho", quantity=1))
            db.session.flush()
            db.session.rollback()
            # A later, unrelated commit must not carry the discarded change
            db.session.commit()
        finally:
            release()

        assert recorder.calls == []

    def test_first_counter_allocation_waits_for_outer_commit(self, db_session):
        # First use of a domain inserts the counter row inside a SAVEPOINT
        recorder = Recorder()
        release = hub.subscribe("counters", recorder)
        try:
            counter_service.next_seq(counter_service.SALES)
            assert recorder.calls == []

            db.session.rollback()
            assert recorder.calls == []
            assert counter_service.current_seq(counter_service.SALES) == 0

            counter_service.next_seq(counter_service.SALES)
            db.session.commit()
        finally:
            release()

        assert len(recorder.calls) == 1

    def test_versions_increase_per_commit(self, db_session):
        before = hub.version("products")
        product_service.create_product({"description": "A", "cost_price": 1, "profit_margin": 0})
        product_service.create_product({"description": "B", "cost_price": 1, "profit_margin": 0})
        assert hub.version("products") == before + 2


# =============================================================================
# SNAPSHOTS AND STREAMS
# =============================================================================


class TestCollectionRoutes:

    def test_collection_names(self):
        names = subscription_service.collection_names()
        assert {"products", "vendas", "timeSessions", "investments", "debts", "cashMovements",
                "entries", "unplannedExpenses", "counters", "users"} <= set(names)

    def test_unknown_collection_snapshot(self, db_session):
        with pytest.raises(SubscriptionError):
            subscription_service.snapshot("nope")

    def test_snapshot_route(self, client, partner_headers):
        product_service.create_product({"description": "Caneca", "cost_price": 5, "profit_margin": 100, "quantity": 3})

        resp = client.get("/api/collections/products", headers=partner_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["items"][0]["sale_price"] == pytest.approx(10.0)
        assert resp.json["version"] == hub.version("products")

    def test_users_collection_is_admin_only(self, client, partner_headers, admin_headers):
        assert client.get("/api/collections/users", headers=partner_headers).status_code == 403
        assert client.get("/api/collections/users", headers=admin_headers).status_code == 200

        listing = client.get("/api/collections", headers=partner_headers)
        assert "users" not in {item["name"] for item in listing.json["items"]}

    def test_unknown_collection_routes(self, client, partner_headers):
        assert client.get("/api/collections/nope", headers=partner_headers).status_code == 404
        assert client.get("/api/collections/nope/stream", headers=partner_headers).status_code == 404

    def test_stream_delivers_change_and_releases_subscription(self, client, partner_headers):
        baseline = hub.listener_count("debts")
        resp = client.get("/api/collections/debts/stream?once=1", headers=partner_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"
        assert hub.listener_count("debts") == baseline + 1

        hub.publish(["debts"])
        body = resp.get_data(as_text=True)
        resp.close()

        assert "event: ready" in body
        assert "event: change" in body
        assert hub.listener_count("debts") == baseline
