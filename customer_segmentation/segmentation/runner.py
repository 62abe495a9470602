"""End-to-end segmentation pipeline.

aggregate completed purchases -> score (RFM) or cluster (k-means) -> summarise

Each run is synchronous and self-contained: it either produces a complete
assignment list with summary metrics or raises. Nothing is persisted here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from customer_segmentation.foundation.purchases import (
    PurchaseRecord,
    aggregate_completed_purchases,
)
from customer_segmentation.foundation.rfm import calculate_rfm_scores
from customer_segmentation.segmentation.classifier import (
    SegmentAssignment,
    assign_segments,
)
from customer_segmentation.segmentation.clusters import (
    DEFAULT_K,
    ClusterAssignment,
    assign_clusters,
)
from customer_segmentation.segmentation.errors import UnsupportedAlgorithmError
from customer_segmentation.segmentation.metrics import (
    SegmentMetrics,
    summarize_clusters,
    summarize_segments,
)


class SegmentationAlgorithm(str, Enum):
    """Supported segmentation algorithms."""

    RFM = "rfm"
    KMEANS = "kmeans"

    @classmethod
    def parse(cls, value: Union[str, "SegmentationAlgorithm"]) -> "SegmentationAlgorithm":
        """Return the algorithm named by ``value`` or raise UnsupportedAlgorithmError."""
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedAlgorithmError(
                str(value), tuple(item.value for item in cls)
            ) from None


# Placeholder quality figures reported with every run. They are constants,
# not measurements, and must not be read as a model quality signal.
PLACEHOLDER_ACCURACY: dict[SegmentationAlgorithm, float] = {
    SegmentationAlgorithm.RFM: 0.85,
    SegmentationAlgorithm.KMEANS: 0.78,
}


@dataclass(frozen=True)
class SegmentationResult:
    """Output of a single segmentation run.

    Attributes
    ----------
    algorithm:
        The algorithm that produced the assignments
    assignments:
        One assignment per customer in the cohort
    accuracy:
        Fixed placeholder constant for the algorithm
    parameters:
        Run parameters (algorithm, cohort size, segment count or k, criteria)
    metrics:
        Population summary of the assignments
    """

    algorithm: SegmentationAlgorithm
    assignments: Sequence[Union[SegmentAssignment, ClusterAssignment]]
    accuracy: float
    parameters: dict[str, Any]
    metrics: SegmentMetrics
    completed_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def metrics_dict(self) -> dict[str, object]:
        key = (
            "segment_distribution"
            if self.algorithm == SegmentationAlgorithm.RFM
            else "cluster_distribution"
        )
        return self.metrics.as_dict(distribution_key=key)

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation of the run."""
        return {
            "algorithm": self.algorithm.value,
            "assignments": [a.as_dict() for a in self.assignments],
            "accuracy": self.accuracy,
            "parameters": dict(self.parameters),
            "metrics": self.metrics_dict(),
        }


def run_segmentation(
    algorithm: Union[str, SegmentationAlgorithm],
    criteria: Optional[Mapping[str, Any]],
    purchases: Iterable[PurchaseRecord],
    *,
    k: int = DEFAULT_K,
    now: Optional[datetime] = None,
) -> SegmentationResult:
    """Run the segmentation pipeline over a purchase snapshot.

    Parameters
    ----------
    algorithm:
        ``"rfm"`` or ``"kmeans"``. Anything else raises
        UnsupportedAlgorithmError before ``purchases`` is consumed.
    criteria:
        Selection criteria of the segment definition. They are echoed in
        ``parameters`` but do not filter the cohort.
    purchases:
        Purchase records in any payment state; only completed ones count.
    k:
        Number of clusters for the k-means path.
    now:
        Reference time for recency and assignment timestamps (default: now,
        UTC).

    Raises
    ------
    UnsupportedAlgorithmError
        Unknown algorithm.
    EmptyAssignmentsError
        RFM path with no completed purchases.
    DegenerateClusterInputError
        k-means path with no completed purchases or all-zero spend/frequency.
    """
    selected = SegmentationAlgorithm.parse(algorithm)
    if now is None:
        now = datetime.now(timezone.utc)

    aggregates = aggregate_completed_purchases(purchases)
    parameters: dict[str, Any] = {
        "algorithm": selected.value,
        "total_customers": len(aggregates),
        "criteria": dict(criteria or {}),
    }

    if selected == SegmentationAlgorithm.RFM:
        scored = calculate_rfm_scores(aggregates, now=now)
        segment_assignments = assign_segments(scored, assigned_at=now)
        metrics = summarize_segments(segment_assignments)
        parameters["segments"] = len(metrics.distribution)
        return SegmentationResult(
            algorithm=selected,
            assignments=segment_assignments,
            accuracy=PLACEHOLDER_ACCURACY[selected],
            parameters=parameters,
            metrics=metrics,
            completed_at=now,
        )

    cluster_assignments = assign_clusters(aggregates, k=k, assigned_at=now)
    metrics = summarize_clusters(cluster_assignments)
    parameters["k"] = k
    return SegmentationResult(
        algorithm=selected,
        assignments=cluster_assignments,
        accuracy=PLACEHOLDER_ACCURACY[selected],
        parameters=parameters,
        metrics=metrics,
        completed_at=now,
    )
