"""Purchase analytics overview for the admin dashboard.

Answers:
- How many users and purchases are there, and how much completed revenue?
- How much revenue did each calendar month in the last 30 days bring in?
- Which item categories sell the most?
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

import pandas as pd

from customer_segmentation.foundation.purchases import PaymentStatus, PurchaseRecord
from customer_segmentation.pandas import purchases_to_dataframe

MONTHLY_WINDOW = timedelta(days=30)
TOP_CATEGORY_LIMIT = 10
MONEY_PRECISION = Decimal("0.01")


@dataclass(frozen=True)
class CategorySale:
    """Revenue of one purchase line item, attributed to its category."""

    category: str
    total_price: Decimal


@dataclass(frozen=True)
class MonthlyRevenue:
    year: int
    month: int
    revenue: Decimal
    count: int


@dataclass(frozen=True)
class CategoryRevenue:
    category: str
    revenue: Decimal
    count: int


@dataclass(frozen=True)
class AnalyticsOverview:
    """Dashboard overview figures.

    Attributes
    ----------
    total_users:
        Registered users
    total_purchases:
        Purchases in any payment state
    total_revenue:
        Sum of completed purchase totals
    average_order_value:
        total_revenue / total_purchases (0 when there are no purchases).
        The denominator counts every purchase, not only completed ones.
    monthly_revenue:
        Completed revenue per calendar month over the last 30 days
    top_categories:
        Categories ranked by line-item revenue across all purchases
    """

    total_users: int
    total_purchases: int
    total_revenue: Decimal
    average_order_value: Decimal
    monthly_revenue: list[MonthlyRevenue]
    top_categories: list[CategoryRevenue]

    def as_dict(self) -> dict[str, object]:
        return {
            "overview": {
                "total_users": self.total_users,
                "total_purchases": self.total_purchases,
                "total_revenue": float(self.total_revenue),
                "average_order_value": float(self.average_order_value),
            },
            "monthly_revenue": [
                {
                    "year": m.year,
                    "month": m.month,
                    "revenue": float(m.revenue),
                    "count": m.count,
                }
                for m in self.monthly_revenue
            ],
            "top_categories": [
                {"category": c.category, "revenue": float(c.revenue), "count": c.count}
                for c in self.top_categories
            ],
        }


def _money(value: float | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def build_overview(
    purchases: Sequence[PurchaseRecord],
    category_sales: Sequence[CategorySale],
    total_users: int,
    now: Optional[datetime] = None,
) -> AnalyticsOverview:
    """Compute the dashboard overview.

    Parameters
    ----------
    purchases:
        Every purchase, in any payment state.
    category_sales:
        Every purchase line item with its category and total price.
    total_users:
        Number of registered users.
    now:
        Reference time for the monthly window (default: now, UTC).
    """
    if now is None:
        now = datetime.now(timezone.utc)

    total_purchases = len(purchases)
    completed = [p for p in purchases if p.payment_status == PaymentStatus.COMPLETED]
    total_revenue = _money(sum((p.total_amount for p in completed), Decimal("0")))
    average_order_value = (
        _money(total_revenue / total_purchases) if total_purchases else Decimal("0.00")
    )

    monthly: list[MonthlyRevenue] = []
    df = purchases_to_dataframe(completed)
    if not df.empty:
        # Naive timestamps are taken to be UTC
        dates = pd.to_datetime(df["transaction_date"], utc=True)
        cutoff = pd.Timestamp(now)
        cutoff = (
            cutoff.tz_localize("UTC") if cutoff.tzinfo is None else cutoff.tz_convert("UTC")
        ) - pd.Timedelta(MONTHLY_WINDOW)
        recent = df[dates >= cutoff].assign(year=dates.dt.year, month=dates.dt.month)
        grouped = (
            recent.groupby(["year", "month"])["total_amount"]
            .agg(["sum", "count"])
            .reset_index()
            .sort_values(["year", "month"])
        )
        monthly = [
            MonthlyRevenue(
                year=int(row["year"]),
                month=int(row["month"]),
                revenue=_money(row["sum"]),
                count=int(row["count"]),
            )
            for _, row in grouped.iterrows()
        ]

    top: list[CategoryRevenue] = []
    if category_sales:
        sales = pd.DataFrame(
            {
                "category": [s.category for s in category_sales],
                "total_price": [float(s.total_price) for s in category_sales],
            }
        )
        ranked = (
            sales.groupby("category")["total_price"]
            .agg(["sum", "count"])
            .sort_values("sum", ascending=False)
            .head(TOP_CATEGORY_LIMIT)
        )
        top = [
            CategoryRevenue(category=str(category), revenue=_money(row["sum"]), count=int(row["count"]))
            for category, row in ranked.iterrows()
        ]

    return AnalyticsOverview(
        total_users=total_users,
        total_purchases=total_purchases,
        total_revenue=total_revenue,
        average_order_value=average_order_value,
        monthly_revenue=monthly,
        top_categories=top,
    )
