"""Tests for the purchase stream and versioned segment writes."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from analytics.services.api_server.database import Base, create_db_engine
from analytics.services.api_server.models import Purchase, PurchaseItem, Segment
from analytics.services.api_server.repositories import PurchaseRepository, SegmentRepository
from customer_segmentation.foundation import PaymentStatus, PurchaseRecord
from customer_segmentation.segmentation import run_segmentation

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestPurchaseStream:
    def test_only_completed_purchases_of_existing_users(self, db_session, customer, add_purchase):
        user_id, _ = customer
        add_purchase(user_id, "40")
        add_purchase(user_id, "15", status="pending")
        add_purchase(user_id, "25", status="refunded")
        # Orphaned row: its user no longer exists
        add_purchase(999, "500")

        records = list(PurchaseRepository(db_session).iter_completed_purchases())

        assert len(records) == 1
        record = records[0]
        assert record.customer_id == str(user_id)
        assert record.total_amount == Decimal("40.00")
        assert record.payment_status is PaymentStatus.COMPLETED
        assert record.categories == ("Books",)
        assert record.transaction_date.tzinfo is not None

    def test_stream_is_lazy(self, session_factory, customer, add_purchase):
        user_id, _ = customer
        add_purchase(user_id, "40")
        statements = []

        with session_factory() as session:
            engine = session.get_bind()

            def capture(conn, cursor, statement, parameters, context, executemany):
                statements.append(statement)

            event.listen(engine, "before_cursor_execute", capture)
            try:
                stream = PurchaseRepository(session).iter_completed_purchases()
                assert statements == []
                assert next(stream).customer_id == str(user_id)
                assert statements
            finally:
                event.remove(engine, "before_cursor_execute", capture)

    def test_batches_cover_every_row(self, db_session, customer, add_purchase):
        user_id, _ = customer
        for amount in ("10", "20", "30", "40", "50"):
            add_purchase(user_id, amount)

        records = list(PurchaseRepository(db_session, batch_size=2).iter_completed_purchases())
        assert [r.total_amount for r in records] == [
            Decimal(a) for a in ("10", "20", "30", "40", "50")
        ]

    def test_category_sales_and_user_count(self, db_session, admin, customer, add_purchase):
        user_id, _ = customer
        add_purchase(user_id, "40", category="Books")
        add_purchase(user_id, "10", status="failed", category="Toys")

        repo = PurchaseRepository(db_session)
        sales = sorted((s.category, s.total_price) for s in repo.category_sales())
        assert sales == [("Books", Decimal("40.00")), ("Toys", Decimal("10.00"))]
        assert repo.count_users() == 2


def _result():
    records = [
        PurchaseRecord("1", NOW - timedelta(days=1), Decimal("100")),
        PurchaseRecord("2", NOW - timedelta(days=30), Decimal("20")),
    ]
    return run_segmentation("rfm", {}, records, now=NOW)


class TestSegmentRepository:
    def test_get_hides_inactive_segments(self, db_session, add_segment):
        segment_id = add_segment(is_active=False)
        repo = SegmentRepository(db_session)
        assert repo.get(segment_id) is None
        assert repo.get(segment_id, include_inactive=True).id == segment_id
        assert repo.list_active() == []

    def test_save_run_stores_result_and_bumps_version(self, db_session, add_segment):
        segment = SegmentRepository(db_session).get(add_segment())
        assert segment.version == 1

        saved = SegmentRepository(db_session).save_run(segment, _result())

        assert saved.version == 2
        assert saved.algorithm == "rfm"
        assert saved.accuracy == 0.85
        assert saved.last_trained == NOW
        assert {a["customer_id"] for a in saved.assignments} == {"1", "2"}
        assert saved.metrics["total_customers"] == 2

    def test_concurrent_runs_conflict(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'segments.db'}")
        Base.metadata.create_all(engine)
        factory = sessionmaker(bind=engine, expire_on_commit=False)
        with factory() as session:
            session.add(Segment(name="All Customers", criteria={}))
            session.commit()

        with factory() as first, factory() as second:
            seg_a = SegmentRepository(first).get(1)
            seg_b = SegmentRepository(second).get(1)
            # Release the read transaction so the first writer can commit
            second.commit()

            SegmentRepository(first).save_run(seg_a, _result())
            with pytest.raises(StaleDataError):
                SegmentRepository(second).save_run(seg_b, _result())

        with factory() as session:
            assert session.get(Segment, 1).version == 2
        engine.dispose()


class TestPurchaseLookup:
    def test_history_is_newest_first_and_paginated(self, db_session, customer, add_purchase):
        user_id, _ = customer
        add_purchase(user_id, "10", days_ago=5)
        add_purchase(user_id, "20", days_ago=3)
        add_purchase(user_id, "30", days_ago=1)

        page, total = PurchaseRepository(db_session).history_for_user(user_id, limit=2, offset=0)
        assert total == 3
        assert [p.total_amount for p in page] == [Decimal("30.00"), Decimal("20.00")]

    def test_get_by_reference(self, db_session, customer, add_purchase):
        user_id, _ = customer
        purchase_id = add_purchase(user_id, "10", reference="ref_lookup")
        repo = PurchaseRepository(db_session)
        assert repo.get_by_reference("ref_lookup").id == purchase_id
        assert repo.get_by_reference("ref_missing") is None


def test_purchase_items_cascade(db_session, customer):
    user_id, _ = customer
    purchase = Purchase(
        user_id=user_id,
        customer_id="customer@example.com",
        order_number="ORD-CASCADE",
        total_amount=Decimal("5"),
        payment_status="completed",
        paystack_reference="ref_cascade",
        transaction_date=NOW,
        items=[
            PurchaseItem(
                product_id="p",
                product_name="Pen",
                category="Stationery",
                quantity=1,
                unit_price=Decimal("5"),
                total_price=Decimal("5"),
            )
        ],
    )
    db_session.add(purchase)
    db_session.commit()

    db_session.delete(purchase)
    db_session.commit()
    assert db_session.query(PurchaseItem).count() == 0
