"""Population summaries for segment and cluster assignment lists."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from customer_segmentation.segmentation.classifier import SegmentAssignment
from customer_segmentation.segmentation.clusters import ClusterAssignment
from customer_segmentation.segmentation.errors import EmptyAssignmentsError

@dataclass(frozen=True)
class SegmentMetrics:
    """Summary of one segmentation run.

    Attributes
    ----------
    total_customers:
        Number of assignments in the run
    distribution:
        Member count per segment name (RFM) or per cluster index (k-means)
    average_score:
        Exact arithmetic mean of the assignment scores (not rounded)
    """

    total_customers: int
    distribution: dict[str, int]
    average_score: Decimal

    def __post_init__(self) -> None:
        if self.total_customers <= 0:
            raise ValueError(
                f"Total customers must be positive: {self.total_customers}"
            )
        if sum(self.distribution.values()) != self.total_customers:
            raise ValueError(
                f"Distribution counts ({sum(self.distribution.values())}) do not add up to total customers ({self.total_customers})"
            )

    def as_dict(self, distribution_key: str = "distribution") -> dict[str, object]:
        return {
            "total_customers": self.total_customers,
            distribution_key: dict(self.distribution),
            "average_score": float(self.average_score),
        }


def _summarize(keys: Sequence[str], scores: Sequence[int]) -> SegmentMetrics:
    if not scores:
        raise EmptyAssignmentsError(
            "Cannot summarise an empty assignment list: the cohort has no customers"
        )
    average = Decimal(sum(scores)) / Decimal(len(scores))
    return SegmentMetrics(
        total_customers=len(scores),
        distribution=dict(Counter(keys)),
        average_score=average,
    )


def summarize_segments(assignments: Sequence[SegmentAssignment]) -> SegmentMetrics:
    """Count customers per segment name and average their scores.

    >>> from datetime import datetime
    >>> from customer_segmentation.foundation.rfm import RFMScores
    >>> from customer_segmentation.segmentation.classifier import SegmentName
    >>> ts = datetime(2024, 1, 1)
    >>> rows = [
    ...     SegmentAssignment("A", 100, SegmentName.CHAMPIONS, RFMScores(5, 5, 5), ts),
    ...     SegmentAssignment("B", 60, SegmentName.POTENTIAL_LOYALISTS, RFMScores(3, 2, 2), ts),
    ...     SegmentAssignment("C", 20, SegmentName.LOST_CUSTOMERS, RFMScores(1, 1, 1), ts),
    ... ]
    >>> summarize_segments(rows).average_score
    Decimal('60')
    """
    return _summarize(
        [a.segment_name.value for a in assignments], [a.score for a in assignments]
    )


def summarize_clusters(assignments: Sequence[ClusterAssignment]) -> SegmentMetrics:
    """Count customers per cluster index and average their scores.

    Cluster indices are used as string keys so the distribution serialises to
    JSON unchanged.
    """
    return _summarize(
        [str(a.cluster_index) for a in assignments], [a.score for a in assignments]
    )
