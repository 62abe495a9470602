"""Map RFM score triples to named customer segments.

Segments are decided by an ordered list of rules. The rules overlap, so the
first matching rule wins and their order is part of the contract: a customer
scoring (4, 4, 2) fails the Champions and Loyal Customers rules on monetary
and only then matches New Customers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Sequence

from customer_segmentation.foundation.rfm import RFMScoredCustomer, RFMScores


class SegmentName(str, Enum):
    """The fixed set of RFM segments."""

    CHAMPIONS = "Champions"
    LOYAL_CUSTOMERS = "Loyal Customers"
    NEW_CUSTOMERS = "New Customers"
    AT_RISK = "At Risk"
    LOST_CUSTOMERS = "Lost Customers"
    POTENTIAL_LOYALISTS = "Potential Loyalists"


@dataclass(frozen=True)
class SegmentRule:
    """One entry in the ordered decision list."""

    segment: SegmentName
    score: int
    matches: Callable[[RFMScores], bool]


SEGMENT_RULES: tuple[SegmentRule, ...] = (
    SegmentRule(
        SegmentName.CHAMPIONS,
        100,
        lambda s: s.recency >= 4 and s.frequency >= 4 and s.monetary >= 4,
    ),
    SegmentRule(
        SegmentName.LOYAL_CUSTOMERS,
        85,
        lambda s: s.recency >= 3 and s.frequency >= 3 and s.monetary >= 3,
    ),
    SegmentRule(
        SegmentName.NEW_CUSTOMERS,
        70,
        lambda s: s.recency >= 4 and s.frequency <= 2,
    ),
    SegmentRule(
        SegmentName.AT_RISK,
        45,
        lambda s: s.recency <= 2 and s.frequency >= 3 and s.monetary >= 3,
    ),
    SegmentRule(
        SegmentName.LOST_CUSTOMERS,
        20,
        lambda s: s.recency <= 2 and s.frequency <= 2,
    ),
)

# Applied when no rule in SEGMENT_RULES matches
FALLBACK_SEGMENT = SegmentName.POTENTIAL_LOYALISTS
FALLBACK_SCORE = 60

SEGMENT_SCORES: dict[SegmentName, int] = {
    **{rule.segment: rule.score for rule in SEGMENT_RULES},
    FALLBACK_SEGMENT: FALLBACK_SCORE,
}


@dataclass(frozen=True)
class SegmentAssignment:
    """The segment a customer was placed in by one RFM run.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    score:
        Fixed value score of the segment (20, 45, 60, 70, 85 or 100)
    segment_name:
        Segment the customer belongs to
    rfm_scores:
        The score triple that produced the assignment
    assigned_at:
        When the run produced this assignment
    """

    customer_id: str
    score: int
    segment_name: SegmentName
    rfm_scores: RFMScores
    assigned_at: datetime

    def __post_init__(self) -> None:
        expected = SEGMENT_SCORES[self.segment_name]
        if self.score != expected:
            raise ValueError(
                f"Score {self.score} does not match segment {self.segment_name.value} ({expected}) (customer_id={self.customer_id})"
            )

    def as_dict(self) -> dict[str, object]:
        return {
            "customer_id": self.customer_id,
            "score": self.score,
            "segment_name": self.segment_name.value,
            "rfm_scores": self.rfm_scores.as_dict(),
            "assigned_at": self.assigned_at.isoformat(),
        }


def classify_scores(
    scores: RFMScores, rules: Sequence[SegmentRule] = SEGMENT_RULES
) -> tuple[SegmentName, int]:
    """Return the segment and segment score for an RFM score triple.

    >>> classify_scores(RFMScores(4, 4, 2))
    (<SegmentName.NEW_CUSTOMERS: 'New Customers'>, 70)
    """
    for rule in rules:
        if rule.matches(scores):
            return rule.segment, rule.score
    return FALLBACK_SEGMENT, FALLBACK_SCORE


def assign_segments(
    scored_customers: Sequence[RFMScoredCustomer],
    assigned_at: Optional[datetime] = None,
) -> list[SegmentAssignment]:
    """Classify every scored customer, one assignment each, in input order."""
    if assigned_at is None:
        assigned_at = datetime.now(timezone.utc)

    assignments: list[SegmentAssignment] = []
    for customer in scored_customers:
        segment, score = classify_scores(customer.scores)
        assignments.append(
            SegmentAssignment(
                customer_id=customer.customer_id,
                score=score,
                segment_name=segment,
                rfm_scores=customer.scores,
                assigned_at=assigned_at,
            )
        )
    return assignments
