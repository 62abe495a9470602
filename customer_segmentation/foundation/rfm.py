"""Rank-based RFM (Recency-Frequency-Monetary) scoring.

Scores are assigned by relative rank within the current cohort, not by
absolute thresholds:

- Recency: days since the last completed purchase (fewer is better)
- Frequency: number of completed purchases (more is better)
- Monetary: total amount spent (more is better)

Because scores are cohort-relative they must be recomputed whenever the
customer population changes.

**Tie-breaking**: customers with exactly equal values keep the order they
have in the input list (Python's sort is stable). The input order comes from
the purchase store and is not guaranteed, so scores for tied customers are
not deterministic across stores. This is accepted behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from customer_segmentation.foundation.purchases import PurchaseAggregate

MIN_SCORE = 1
MAX_SCORE = 5

_ONE_DAY = timedelta(days=1)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


@dataclass(frozen=True)
class RFMScores:
    """RFM scores (1-5) for a single customer.

    Attributes
    ----------
    recency:
        Recency score (5 = most recent)
    frequency:
        Frequency score from the position in a descending sort of
        purchase counts
    monetary:
        Monetary score from the position in a descending sort of total spend

    Notes
    -----
    Only recency is inverted. Frequency and monetary keep the raw quintile of
    their descending rank, so the most frequent customer lands in the first
    quintile and scores 1.
    """

    recency: int
    frequency: int
    monetary: int

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("recency", self.recency),
            ("frequency", self.frequency),
            ("monetary", self.monetary),
        ]:
            if not MIN_SCORE <= score_value <= MAX_SCORE:
                raise ValueError(
                    f"{score_name} score must be between {MIN_SCORE} and {MAX_SCORE}: {score_value}"
                )

    def as_dict(self) -> dict[str, int]:
        return {
            "recency": self.recency,
            "frequency": self.frequency,
            "monetary": self.monetary,
        }


@dataclass(frozen=True)
class RFMScoredCustomer:
    """A purchase aggregate together with its recency and RFM scores."""

    aggregate: PurchaseAggregate
    recency_days: int
    scores: RFMScores

    @property
    def customer_id(self) -> str:
        return self.aggregate.customer_id


def calculate_recency_days(last_purchase_date: datetime, now: datetime) -> int:
    """Whole days between ``last_purchase_date`` and ``now``, floored.

    Naive timestamps are taken to be UTC. A purchase dated after ``now``
    yields a negative value.

    >>> calculate_recency_days(datetime(2024, 1, 1, 12), datetime(2024, 1, 3, 11))
    1
    """
    return (_as_utc(now) - _as_utc(last_purchase_date)) // _ONE_DAY


def rank_to_score(rank: int, total: int) -> int:
    """Convert a 1-based rank into a 1-5 score: ``ceil(rank / total * 5)``.

    Integer arithmetic keeps the ceiling exact. The result never exceeds 5
    because ``rank <= total``.

    >>> [rank_to_score(r, 10) for r in range(1, 11)]
    [1, 1, 2, 2, 3, 3, 4, 4, 5, 5]
    """
    if not 1 <= rank <= total:
        raise ValueError(f"Rank must be between 1 and {total}: {rank}")
    return -(-rank * MAX_SCORE // total)


def _rank_positions(
    values: Sequence[tuple[str, Any]], descending: bool
) -> dict[str, int]:
    """Map customer id to its 1-based position in a stable sort of ``values``.

    One sort plus a lookup table replaces a linear search per customer.
    Duplicate ids keep the position of their first occurrence.
    """
    # sorted(reverse=True) also keeps equal elements in input order
    ordered = sorted(values, key=lambda item: item[1], reverse=descending)
    positions: dict[str, int] = {}
    for position, (customer_id, _) in enumerate(ordered, start=1):
        positions.setdefault(customer_id, position)
    return positions


def calculate_rfm_scores(
    aggregates: Sequence[PurchaseAggregate],
    now: Optional[datetime] = None,
) -> list[RFMScoredCustomer]:
    """Score each customer in the cohort on recency, frequency and monetary.

    Parameters
    ----------
    aggregates:
        The cohort, one aggregate per customer.
    now:
        Reference time for recency. Defaults to the current UTC time; a naive
        value is taken to be UTC.

    Returns
    -------
    list[RFMScoredCustomer]
        One entry per aggregate, in input order.

    Examples
    --------
    >>> from decimal import Decimal
    >>> solo = PurchaseAggregate("C1", datetime(2024, 1, 1), Decimal("10"), 1, Decimal("10"))
    >>> calculate_rfm_scores([solo], now=datetime(2024, 2, 1))[0].scores
    RFMScores(recency=5, frequency=5, monetary=5)
    """
    if not aggregates:
        return []

    now = datetime.now(timezone.utc) if now is None else _as_utc(now)

    total = len(aggregates)
    recency_days = {
        a.customer_id: calculate_recency_days(a.last_purchase_date, now)
        for a in aggregates
    }

    recency_rank = _rank_positions(
        [(a.customer_id, recency_days[a.customer_id]) for a in aggregates],
        descending=False,
    )
    frequency_rank = _rank_positions(
        [(a.customer_id, a.frequency) for a in aggregates], descending=True
    )
    monetary_rank = _rank_positions(
        [(a.customer_id, a.total_spent) for a in aggregates], descending=True
    )

    scored: list[RFMScoredCustomer] = []
    for aggregate in aggregates:
        customer_id = aggregate.customer_id
        if total == 1:
            # A lone customer is top of the cohort on every dimension
            scores = RFMScores(MAX_SCORE, MAX_SCORE, MAX_SCORE)
        else:
            scores = RFMScores(
                # Invert recency so that the most recent purchasers score highest
                recency=MAX_SCORE + 1 - rank_to_score(recency_rank[customer_id], total),
                frequency=rank_to_score(frequency_rank[customer_id], total),
                monetary=rank_to_score(monetary_rank[customer_id], total),
            )
        scored.append(
            RFMScoredCustomer(
                aggregate=aggregate,
                recency_days=recency_days[customer_id],
                scores=scores,
            )
        )
    return scored
