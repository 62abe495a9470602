"""Dashboard analyses built on purchase records."""

from .overview import (
    AnalyticsOverview,
    CategoryRevenue,
    CategorySale,
    MonthlyRevenue,
    build_overview,
)

__all__ = [
    "AnalyticsOverview",
    "CategoryRevenue",
    "CategorySale",
    "MonthlyRevenue",
    "build_overview",
]
