"""Pandas integration adapters for customer segmentation.

This module provides DataFrame conversion utilities for purchase records and
segmentation assignments.

Example:
    >>> from customer_segmentation.pandas import purchases_to_dataframe
    >>> df = purchases_to_dataframe(purchases)
    >>> df.groupby("customer_id")["total_amount"].sum()
"""

from .purchases import (
    assignments_to_dataframe,
    dataframe_to_purchases,
    purchases_to_dataframe,
)

__all__ = [
    "assignments_to_dataframe",
    "dataframe_to_purchases",
    "purchases_to_dataframe",
]
