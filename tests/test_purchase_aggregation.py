"""Tests for purchase records and completed-purchase aggregation."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from customer_segmentation.foundation.purchases import (
    PaymentStatus,
    PurchaseAggregate,
    PurchaseRecord,
    aggregate_completed_purchases,
)


def _purchase(customer_id, day, amount, status=PaymentStatus.COMPLETED, categories=()):
    return PurchaseRecord(
        customer_id=customer_id,
        transaction_date=datetime(2024, 1, day, tzinfo=timezone.utc),
        total_amount=Decimal(amount),
        payment_status=status,
        categories=categories,
    )


class TestPurchaseRecord:
    def test_negative_amount_raises_error(self):
        with pytest.raises(ValueError, match="Total amount cannot be negative"):
            _purchase("C1", 1, "-1.00")

    def test_zero_amount_allowed(self):
        assert _purchase("C1", 1, "0").total_amount == Decimal("0")

    def test_naive_date_is_taken_as_utc(self):
        record = PurchaseRecord("C1", datetime(2024, 1, 5, 9, 30), Decimal("10"))
        assert record.transaction_date == datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)

    def test_default_status_is_completed(self):
        record = PurchaseRecord("C1", datetime(2024, 1, 1), Decimal("10"))
        assert record.payment_status == PaymentStatus.COMPLETED
        assert record.categories == ()


class TestPurchaseAggregate:
    def test_zero_frequency_raises_error(self):
        with pytest.raises(ValueError, match="Frequency must be positive"):
            PurchaseAggregate("C1", datetime(2024, 1, 1), Decimal("0"), 0, Decimal("0"))

    def test_negative_total_raises_error(self):
        with pytest.raises(ValueError, match="Total spent cannot be negative"):
            PurchaseAggregate("C1", datetime(2024, 1, 1), Decimal("-5"), 1, Decimal("-5"))

    def test_inconsistent_average_raises_error(self):
        with pytest.raises(ValueError, match="Average order value"):
            PurchaseAggregate("C1", datetime(2024, 1, 1), Decimal("100"), 2, Decimal("80"))


class TestAggregateCompletedPurchases:
    def test_empty_input(self):
        assert aggregate_completed_purchases([]) == []

    def test_only_completed_purchases_count(self):
        purchases = [
            _purchase("C1", 1, "100"),
            _purchase("C1", 2, "999", PaymentStatus.PENDING),
            _purchase("C1", 3, "999", PaymentStatus.FAILED),
            _purchase("C1", 4, "999", PaymentStatus.REFUNDED),
        ]
        (aggregate,) = aggregate_completed_purchases(purchases)
        assert aggregate.total_spent == Decimal("100.00")
        assert aggregate.frequency == 1
        # Last date ignores the non-completed purchases
        assert aggregate.last_purchase_date == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_customer_without_completed_purchase_is_absent(self):
        purchases = [
            _purchase("C1", 1, "100"),
            _purchase("C2", 2, "50", PaymentStatus.PENDING),
            _purchase("C3", 3, "75", PaymentStatus.CANCELLED),
        ]
        aggregates = aggregate_completed_purchases(purchases)
        assert [a.customer_id for a in aggregates] == ["C1"]

    def test_first_seen_order_is_kept(self):
        purchases = [
            _purchase("B", 1, "10"),
            _purchase("A", 2, "10"),
            _purchase("B", 3, "10"),
            _purchase("C", 4, "10"),
        ]
        aggregates = aggregate_completed_purchases(purchases)
        assert [a.customer_id for a in aggregates] == ["B", "A", "C"]

    def test_totals_frequency_and_last_date(self):
        purchases = [
            _purchase("C1", 5, "100.00"),
            _purchase("C1", 20, "50.00"),
            _purchase("C1", 10, "25.50"),
        ]
        (aggregate,) = aggregate_completed_purchases(purchases)
        assert aggregate.total_spent == Decimal("175.50")
        assert aggregate.frequency == 3
        assert aggregate.avg_order_value == Decimal("58.50")
        assert aggregate.last_purchase_date == datetime(2024, 1, 20, tzinfo=timezone.utc)

    def test_sums_are_exact(self):
        purchases = [_purchase("C1", 1, "0.10"), _purchase("C1", 2, "0.20")]
        (aggregate,) = aggregate_completed_purchases(purchases)
        assert aggregate.total_spent == Decimal("0.30")

    def test_average_is_rounded_to_cents(self):
        purchases = [_purchase("C1", d, "100") for d in (1, 2, 3)]
        (aggregate,) = aggregate_completed_purchases(purchases)
        assert aggregate.avg_order_value == Decimal("33.33")

    def test_categories_are_collected(self):
        purchases = [
            _purchase("C1", 1, "10", categories=("Books",)),
            _purchase("C1", 2, "10", categories=("Toys", "Books")),
            _purchase("C1", 3, "10", PaymentStatus.FAILED, categories=("Beauty",)),
        ]
        (aggregate,) = aggregate_completed_purchases(purchases)
        assert aggregate.categories == frozenset({"Books", "Toys"})

    def test_accepts_a_generator(self):
        aggregates = aggregate_completed_purchases(
            _purchase(f"C{i}", 1, "10") for i in range(3)
        )
        assert len(aggregates) == 3

    def test_mixed_naive_and_aware_dates(self):
        purchases = [
            PurchaseRecord("C1", datetime(2024, 1, 1), Decimal("10")),
            _purchase("C1", 2, "10"),
            PurchaseRecord("C1", datetime(2024, 1, 3, 8), Decimal("10")),
        ]
        (aggregate,) = aggregate_completed_purchases(purchases)
        assert aggregate.last_purchase_date == datetime(2024, 1, 3, 8, tzinfo=timezone.utc)
        assert aggregate.frequency == 3
