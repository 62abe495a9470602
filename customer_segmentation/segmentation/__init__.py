"""Customer segmentation: RFM segment classification and simplified clustering."""

from .classifier import (
    SEGMENT_RULES,
    SegmentAssignment,
    SegmentName,
    SegmentRule,
    assign_segments,
    classify_scores,
)
from .clusters import DEFAULT_K, ClusterAssignment, assign_clusters
from .errors import (
    DegenerateClusterInputError,
    EmptyAssignmentsError,
    SegmentationError,
    UnsupportedAlgorithmError,
)
from .metrics import SegmentMetrics, summarize_clusters, summarize_segments
from .runner import (
    PLACEHOLDER_ACCURACY,
    SegmentationAlgorithm,
    SegmentationResult,
    run_segmentation,
)

__all__ = [
    "SEGMENT_RULES",
    "SegmentAssignment",
    "SegmentName",
    "SegmentRule",
    "assign_segments",
    "classify_scores",
    "DEFAULT_K",
    "ClusterAssignment",
    "assign_clusters",
    "DegenerateClusterInputError",
    "EmptyAssignmentsError",
    "SegmentationError",
    "UnsupportedAlgorithmError",
    "SegmentMetrics",
    "summarize_clusters",
    "summarize_segments",
    "PLACEHOLDER_ACCURACY",
    "SegmentationAlgorithm",
    "SegmentationResult",
    "run_segmentation",
]
