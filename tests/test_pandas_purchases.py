"""Tests for the pandas purchase and assignment adapters."""

from datetime import datetime, timezone
from decimal import Decimal

import numpy as np
import pandas as pd
import pytest

from customer_segmentation.foundation.purchases import PaymentStatus, PurchaseRecord
from customer_segmentation.foundation.rfm import RFMScores
from customer_segmentation.pandas import (
    assignments_to_dataframe,
    dataframe_to_purchases,
    purchases_to_dataframe,
)
from customer_segmentation.segmentation import (
    ClusterAssignment,
    SegmentAssignment,
    SegmentName,
)

TS = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestPurchasesToDataFrame:
    def test_columns_and_types(self):
        records = [
            PurchaseRecord("C1", TS, Decimal("12.50"), PaymentStatus.PENDING, ("Books",)),
        ]
        df = purchases_to_dataframe(records)
        assert list(df.columns) == [
            "customer_id",
            "transaction_date",
            "total_amount",
            "payment_status",
            "categories",
        ]
        row = df.iloc[0]
        assert row["total_amount"] == 12.5
        assert row["payment_status"] == "pending"
        assert row["categories"] == ["Books"]

    def test_empty_input_keeps_columns(self):
        df = purchases_to_dataframe([])
        assert df.empty
        assert "customer_id" in df.columns


class TestDataFrameToPurchases:
    def test_defaults_for_optional_columns(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1", "C2"],
                "transaction_date": [TS, TS],
                "total_amount": [10.1, 20.0],
            }
        )
        records = dataframe_to_purchases(df)
        assert [r.customer_id for r in records] == ["C1", "C2"]
        assert records[0].total_amount == Decimal("10.1")
        assert all(r.payment_status == PaymentStatus.COMPLETED for r in records)
        assert all(r.categories == () for r in records)

    def test_amounts_are_rounded_to_the_cent(self):
        df = pd.DataFrame(
            {"customer_id": ["C1"], "transaction_date": [TS], "total_amount": [19.999]}
        )
        assert dataframe_to_purchases(df)[0].total_amount == Decimal("20.00")

    def test_array_categories_are_kept(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1", "C2", "C3"],
                "transaction_date": [TS, TS, TS],
                "total_amount": [10.0, 20.0, 30.0],
                "categories": [np.array(["Books", "Toys"]), ("Beauty",), None],
            }
        )
        records = dataframe_to_purchases(df)
        assert [r.categories for r in records] == [("Books", "Toys"), ("Beauty",), ()]

    def test_string_categories_raise_error(self):
        df = pd.DataFrame(
            {
                "customer_id": ["C1"],
                "transaction_date": [TS],
                "total_amount": [10.0],
                "categories": ["Books"],
            }
        )
        with pytest.raises(ValueError, match="categories must be a list"):
            dataframe_to_purchases(df)

    def test_missing_columns_raise_error(self):
        with pytest.raises(ValueError, match="missing required columns"):
            dataframe_to_purchases(pd.DataFrame({"customer_id": ["C1"]}))

    def test_nulls_raise_error(self):
        df = pd.DataFrame(
            {"customer_id": ["C1"], "transaction_date": [TS], "total_amount": [None]}
        )
        with pytest.raises(ValueError, match="null values"):
            dataframe_to_purchases(df)


class TestAssignmentsToDataFrame:
    def test_segment_assignments(self):
        df = assignments_to_dataframe(
            [SegmentAssignment("C1", 100, SegmentName.CHAMPIONS, RFMScores(5, 4, 4), TS)]
        )
        row = df.iloc[0]
        assert row["segment_name"] == "Champions"
        assert (row["recency_score"], row["frequency_score"], row["monetary_score"]) == (5, 4, 4)

    def test_cluster_assignments(self):
        df = assignments_to_dataframe([ClusterAssignment("C1", 38, 1, TS)])
        assert df.iloc[0]["cluster_index"] == 1
        assert "segment_name" not in df.columns
