"""Simplified spend/frequency clustering.

This is not iterative k-means. Each customer's total spend and purchase
count are normalised by the cohort maximum, averaged, and the average is
bucketed into ``k`` equal-width bands. Cluster indices carry no meaning
across runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np

from customer_segmentation.foundation.purchases import PurchaseAggregate
from customer_segmentation.segmentation.errors import DegenerateClusterInputError

DEFAULT_K = 4


@dataclass(frozen=True)
class ClusterAssignment:
    """The cluster a customer was placed in by one k-means run.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    score:
        ``round((normalised_spent + normalised_frequency) * 50)``, 0-100
    cluster_index:
        Band index in [0, k-1]
    assigned_at:
        When the run produced this assignment
    """

    customer_id: str
    score: int
    cluster_index: int
    assigned_at: datetime

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(
                f"Cluster score must be 0-100: {self.score} (customer_id={self.customer_id})"
            )
        if self.cluster_index < 0:
            raise ValueError(
                f"Cluster index cannot be negative: {self.cluster_index} (customer_id={self.customer_id})"
            )

    def as_dict(self) -> dict[str, object]:
        return {
            "customer_id": self.customer_id,
            "score": self.score,
            "cluster_index": self.cluster_index,
            "assigned_at": self.assigned_at.isoformat(),
        }


def assign_clusters(
    aggregates: Sequence[PurchaseAggregate],
    k: int = DEFAULT_K,
    assigned_at: Optional[datetime] = None,
) -> list[ClusterAssignment]:
    """Bucket customers into ``k`` clusters by normalised spend and frequency.

    Parameters
    ----------
    aggregates:
        The cohort, one aggregate per customer.
    k:
        Number of clusters (must be >= 1).
    assigned_at:
        Timestamp stamped on every assignment; defaults to now (UTC).

    Returns
    -------
    list[ClusterAssignment]
        One assignment per aggregate, in input order.

    Raises
    ------
    DegenerateClusterInputError
        If the cohort is empty or its maximum spend or frequency is zero.
    ValueError
        If ``k`` is less than 1.

    Examples
    --------
    >>> from decimal import Decimal
    >>> cohort = [
    ...     PurchaseAggregate("A", datetime(2024, 1, 1), Decimal("100"), 4, Decimal("25")),
    ...     PurchaseAggregate("B", datetime(2024, 1, 1), Decimal("50"), 1, Decimal("50")),
    ... ]
    >>> [(c.customer_id, c.cluster_index, c.score) for c in assign_clusters(cohort, k=4)]
    [('A', 3, 100), ('B', 1, 38)]
    """
    if k < 1:
        raise ValueError(f"Number of clusters must be at least 1: {k}")
    if not aggregates:
        raise DegenerateClusterInputError("Cannot cluster an empty cohort")

    spent = np.array([float(a.total_spent) for a in aggregates], dtype=float)
    frequency = np.array([a.frequency for a in aggregates], dtype=float)

    max_spent = spent.max()
    max_frequency = frequency.max()
    if max_spent <= 0:
        raise DegenerateClusterInputError(
            "Cannot normalise total spent: every customer in the cohort spent 0"
        )
    if max_frequency <= 0:
        raise DegenerateClusterInputError(
            "Cannot normalise frequency: every customer in the cohort has 0 purchases"
        )

    combined = spent / max_spent + frequency / max_frequency
    cluster_indices = np.minimum(np.floor(combined / 2 * k), k - 1).astype(int)
    # Half-up rounding; np.round would round halves to even
    scores = np.floor(combined * 50 + 0.5).astype(int)

    if assigned_at is None:
        assigned_at = datetime.now(timezone.utc)

    return [
        ClusterAssignment(
            customer_id=aggregate.customer_id,
            score=int(score),
            cluster_index=int(cluster_index),
            assigned_at=assigned_at,
        )
        for aggregate, score, cluster_index in zip(aggregates, scores, cluster_indices)
    ]
