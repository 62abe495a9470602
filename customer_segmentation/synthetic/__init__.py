"""Synthetic data generation utilities.

This package produces realistic-but-fake users and purchases to seed a
development database and exercise the segmentation pipeline without
production data.
"""

from .generator import (
    CATALOG,
    SyntheticItem,
    SyntheticPurchase,
    SyntheticUser,
    generate_purchases,
    generate_users,
)

__all__ = [
    "CATALOG",
    "SyntheticItem",
    "SyntheticPurchase",
    "SyntheticUser",
    "generate_purchases",
    "generate_users",
]
