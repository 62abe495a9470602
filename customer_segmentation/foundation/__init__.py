"""Foundational building blocks for customer segmentation.

This package exposes purchase records, the completed-purchase aggregation
that defines the segmentation cohort, and rank-based RFM
(Recency-Frequency-Monetary) scoring.
"""

from .purchases import (
    PaymentStatus,
    PurchaseAggregate,
    PurchaseRecord,
    aggregate_completed_purchases,
)
from .rfm import (
    RFMScoredCustomer,
    RFMScores,
    calculate_recency_days,
    calculate_rfm_scores,
    rank_to_score,
)

__all__ = [
    "PaymentStatus",
    "PurchaseAggregate",
    "PurchaseRecord",
    "aggregate_completed_purchases",
    "RFMScoredCustomer",
    "RFMScores",
    "calculate_recency_days",
    "calculate_rfm_scores",
    "rank_to_score",
]
