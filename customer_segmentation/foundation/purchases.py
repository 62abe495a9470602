"""Purchase records and per-customer purchase aggregation.

The segmentation cohort is defined as "customers who have purchased": only
purchases whose payment completed count, and a customer with no completed
purchase is absent from the aggregate list rather than zero-filled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable

# Monetary values are reported to the cent
MONEY_PRECISION = Decimal("0.01")


class PaymentStatus(str, Enum):
    """Lifecycle states of a purchase payment."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class PurchaseRecord:
    """A single purchase as read from the purchase store.

    Attributes
    ----------
    customer_id:
        Identifier of the purchasing customer
    transaction_date:
        When the purchase was made. Naive values are taken to be UTC.
    total_amount:
        Order total (non-negative)
    payment_status:
        Current payment state; only completed purchases are aggregated
    categories:
        Category of every line item on the order
    """

    customer_id: str
    transaction_date: datetime
    total_amount: Decimal
    payment_status: PaymentStatus = PaymentStatus.COMPLETED
    categories: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.transaction_date.tzinfo is None:
            object.__setattr__(
                self, "transaction_date", self.transaction_date.replace(tzinfo=timezone.utc)
            )
        if self.total_amount < 0:
            raise ValueError(
                f"Total amount cannot be negative: {self.total_amount} (customer_id={self.customer_id})"
            )


@dataclass(frozen=True)
class PurchaseAggregate:
    """Completed-purchase history for one customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    last_purchase_date:
        Timestamp of the most recent completed purchase
    total_spent:
        Sum of completed order totals
    frequency:
        Number of completed purchases (always >= 1)
    avg_order_value:
        total_spent / frequency
    categories:
        Every item category the customer bought. Collected for
        compatibility with category-aware clustering; nothing reads it yet.
    """

    customer_id: str
    last_purchase_date: datetime
    total_spent: Decimal
    frequency: int
    avg_order_value: Decimal
    categories: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Validate aggregate fields."""
        if self.frequency <= 0:
            raise ValueError(
                f"Frequency must be positive: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.total_spent < 0:
            raise ValueError(
                f"Total spent cannot be negative: {self.total_spent} (customer_id={self.customer_id})"
            )
        expected = self.total_spent / self.frequency
        if abs(self.avg_order_value - expected) > MONEY_PRECISION:
            raise ValueError(
                f"Average order value ({self.avg_order_value}) != total_spent / frequency ({expected}) (customer_id={self.customer_id})"
            )


def aggregate_completed_purchases(
    purchases: Iterable[PurchaseRecord],
) -> list[PurchaseAggregate]:
    """Group completed purchases by customer.

    Parameters
    ----------
    purchases:
        Purchase records in any payment state. Non-completed purchases are
        skipped.

    Returns
    -------
    list[PurchaseAggregate]
        One aggregate per customer with at least one completed purchase, in
        the order customers first appear in ``purchases``. The order is kept
        as-is because RFM rank ties are broken by it.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> records = [
    ...     PurchaseRecord("A", datetime(2024, 1, 1), Decimal("100")),
    ...     PurchaseRecord("A", datetime(2024, 2, 1), Decimal("50")),
    ...     PurchaseRecord("B", datetime(2024, 3, 1), Decimal("30"), PaymentStatus.PENDING),
    ... ]
    >>> [(a.customer_id, a.total_spent, a.frequency) for a in aggregate_completed_purchases(records)]
    [('A', Decimal('150.00'), 2)]
    """
    grouped: dict[str, dict] = {}
    for purchase in purchases:
        if purchase.payment_status != PaymentStatus.COMPLETED:
            continue

        data = grouped.get(purchase.customer_id)
        if data is None:
            data = grouped[purchase.customer_id] = {
                "last_purchase_date": purchase.transaction_date,
                "total_spent": Decimal("0"),
                "frequency": 0,
                "categories": set(),
            }

        if purchase.transaction_date > data["last_purchase_date"]:
            data["last_purchase_date"] = purchase.transaction_date
        data["total_spent"] += Decimal(purchase.total_amount)
        data["frequency"] += 1
        data["categories"].update(purchase.categories)

    aggregates: list[PurchaseAggregate] = []
    for customer_id, data in grouped.items():
        total_spent = data["total_spent"].quantize(
            MONEY_PRECISION, rounding=ROUND_HALF_UP
        )
        avg_order_value = (data["total_spent"] / data["frequency"]).quantize(
            MONEY_PRECISION, rounding=ROUND_HALF_UP
        )
        aggregates.append(
            PurchaseAggregate(
                customer_id=customer_id,
                last_purchase_date=data["last_purchase_date"],
                total_spent=total_spent,
                frequency=data["frequency"],
                avg_order_value=avg_order_value,
                categories=frozenset(data["categories"]),
            )
        )
    return aggregates
