"""Pandas DataFrame adapters for purchases and segmentation output."""

from typing import List, Sequence, Union

import pandas as pd  # type: ignore

from customer_segmentation.foundation.purchases import PaymentStatus, PurchaseRecord
from customer_segmentation.segmentation.classifier import SegmentAssignment
from customer_segmentation.segmentation.clusters import ClusterAssignment
from ._utils import amount_to_float, float_to_amount

PURCHASE_COLUMNS = [
    "customer_id",
    "transaction_date",
    "total_amount",
    "payment_status",
    "categories",
]


def purchases_to_dataframe(purchases: Sequence[PurchaseRecord]) -> pd.DataFrame:
    """Convert purchase records to a DataFrame.

    Args:
        purchases: Sequence of PurchaseRecord objects

    Returns:
        DataFrame with columns: customer_id, transaction_date,
        total_amount (float), payment_status (str), categories (list)
    """
    if not purchases:
        return pd.DataFrame(columns=PURCHASE_COLUMNS)

    rows = [
        {
            "customer_id": p.customer_id,
            "transaction_date": p.transaction_date,
            "total_amount": amount_to_float(p.total_amount),
            "payment_status": p.payment_status.value,
            "categories": list(p.categories),
        }
        for p in purchases
    ]
    return pd.DataFrame(rows, columns=PURCHASE_COLUMNS)


def dataframe_to_purchases(df: pd.DataFrame) -> List[PurchaseRecord]:
    """Convert a purchase DataFrame back to validated PurchaseRecord objects.

    ``payment_status`` defaults to completed and ``categories`` to empty when
    the columns are absent.

    Raises:
        ValueError: If required columns are missing or contain nulls
    """
    required = {"customer_id", "transaction_date", "total_amount"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"DataFrame missing required columns: {sorted(missing)}")
    if df[list(required)].isnull().any().any():
        raise ValueError("DataFrame contains null values in required columns")

    records: List[PurchaseRecord] = []
    for row in df.to_dict("records"):
        records.append(
            PurchaseRecord(
                customer_id=str(row["customer_id"]),
                transaction_date=pd.Timestamp(row["transaction_date"]).to_pydatetime(),
                total_amount=float_to_amount(float(row["total_amount"])),
                payment_status=PaymentStatus(
                    row.get("payment_status") or PaymentStatus.COMPLETED.value
                ),
                categories=_row_categories(row.get("categories"), row["customer_id"]),
            )
        )
    return records


def _row_categories(value, customer_id) -> tuple:
    # Any non-string sequence (list, tuple, ndarray, Series); missing means none
    if pd.api.types.is_list_like(value) and not isinstance(value, (str, bytes, dict)):
        return tuple(str(category) for category in value)
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ()
    raise ValueError(
        f"categories must be a list of strings, got {type(value).__name__} "
        f"(customer_id={customer_id})"
    )


def assignments_to_dataframe(
    assignments: Sequence[Union[SegmentAssignment, ClusterAssignment]],
) -> pd.DataFrame:
    """Flatten segment or cluster assignments into a DataFrame.

    RFM assignments produce ``segment_name`` and ``recency_score`` /
    ``frequency_score`` / ``monetary_score`` columns; cluster assignments
    produce ``cluster_index``.
    """
    rows = []
    for a in assignments:
        row: dict = {
            "customer_id": a.customer_id,
            "score": a.score,
            "assigned_at": a.assigned_at,
        }
        if isinstance(a, SegmentAssignment):
            row["segment_name"] = a.segment_name.value
            row["recency_score"] = a.rfm_scores.recency
            row["frequency_score"] = a.rfm_scores.frequency
            row["monetary_score"] = a.rfm_scores.monetary
        else:
            row["cluster_index"] = a.cluster_index
        rows.append(row)
    return pd.DataFrame(rows)
