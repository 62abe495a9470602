from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import random
from typing import List, Optional, Sequence

from customer_segmentation.foundation.purchases import PaymentStatus, PurchaseRecord

FIRST_NAMES = ("John", "Jane", "Michael", "Sarah", "David", "Emma", "James", "Lisa", "Robert", "Mary")
LAST_NAMES = ("Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Rodriguez", "Martinez")
CITIES = ("Accra", "Kumasi", "Takoradi", "Tamale", "Cape Coast")

CATALOG: dict[str, tuple[str, ...]] = {
    "Electronics": ("Smartphone", "Laptop", "Headphones", "Tablet", "Smart Watch"),
    "Clothing": ("T-Shirt", "Jeans", "Dress", "Shoes", "Jacket"),
    "Books": ("Novel", "Textbook", "Biography", "Cookbook", "Self-Help"),
    "Home & Garden": ("Furniture", "Appliance", "Decor", "Tools", "Plants"),
    "Sports": ("Equipment", "Apparel", "Shoes", "Accessories", "Supplements"),
    "Beauty": ("Skincare", "Makeup", "Perfume", "Hair Care", "Tools"),
    "Automotive": ("Parts", "Accessories", "Tools", "Fluids", "Electronics"),
    "Toys": ("Action Figures", "Board Games", "Educational", "Electronic", "Outdoor"),
}

PAYMENT_METHODS = ("card", "mobile_money", "bank_transfer")
SEED_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.PENDING, PaymentStatus.FAILED)


@dataclass(frozen=True)
class SyntheticUser:
    first_name: str
    last_name: str
    email: str
    city: str


@dataclass(frozen=True)
class SyntheticItem:
    product_id: str
    product_name: str
    category: str
    sku: str
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class SyntheticPurchase:
    """A generated order for one user.

    Attributes
    ----------
    email: Email of the purchasing user; doubles as the customer id.
    items: Line items (one per order, like the seed data of the admin tool).
    payment_status: Uniformly drawn from completed, pending and failed.
    payment_method: Uniformly drawn from card, mobile money and bank transfer.
    reference: Unique gateway reference.
    transaction_date: Uniformly drawn within ``days_back`` of ``now``.
    """

    email: str
    items: tuple[SyntheticItem, ...]
    payment_status: PaymentStatus
    payment_method: str
    reference: str
    transaction_date: datetime

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0"))

    def to_record(self) -> PurchaseRecord:
        return PurchaseRecord(
            customer_id=self.email,
            transaction_date=self.transaction_date,
            total_amount=self.total_amount,
            payment_status=self.payment_status,
            categories=tuple(item.category for item in self.items),
        )


def generate_users(n: int, *, seed: Optional[int] = None) -> List[SyntheticUser]:
    """Generate ``n`` users with emails ``user1@example.com`` .. ``user{n}@example.com``."""

    if n <= 0:
        return []
    rng = random.Random(seed)
    return [
        SyntheticUser(
            first_name=rng.choice(FIRST_NAMES),
            last_name=rng.choice(LAST_NAMES),
            email=f"user{i}@example.com",
            city=rng.choice(CITIES),
        )
        for i in range(1, n + 1)
    ]


def generate_purchases(
    users: Sequence[SyntheticUser],
    n: int,
    *,
    now: Optional[datetime] = None,
    days_back: int = 365,
    seed: Optional[int] = None,
) -> List[SyntheticPurchase]:
    """Generate ``n`` single-item purchases spread randomly over ``users``."""

    if n <= 0 or not users:
        return []
    if days_back <= 0:
        raise ValueError("days_back must be positive")

    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)
    categories = list(CATALOG)

    purchases: List[SyntheticPurchase] = []
    for i in range(n):
        user = rng.choice(users)
        category = rng.choice(categories)
        item = SyntheticItem(
            product_id=f"prod_{i}",
            product_name=rng.choice(CATALOG[category]),
            category=category,
            sku=f"SKU-{category[:3].upper()}-{i:03d}",
            quantity=rng.randint(1, 3),
            unit_price=Decimal(rng.randint(20, 519)),
        )
        purchases.append(
            SyntheticPurchase(
                email=user.email,
                items=(item,),
                payment_status=rng.choice(SEED_STATUSES),
                payment_method=rng.choice(PAYMENT_METHODS),
                reference=f"ref_seed_{i}",
                transaction_date=now - timedelta(seconds=rng.uniform(0, days_back * 86400)),
            )
        )
    return purchases
