"""Populate the database with an admin, synthetic customers and purchases.

Usage:
    customer-segmentation-seed --users 20 --purchases 100 --seed 42
"""

import argparse
import logging
import sys

import structlog
from sqlalchemy import delete
from sqlalchemy.orm import Session

from analytics.services.api_server.config import Settings, get_settings
from analytics.services.api_server.database import get_session_factory, init_database
from analytics.services.api_server.models import (
    Campaign,
    Purchase,
    PurchaseItem,
    Segment,
    User,
)
from analytics.services.api_server.security import hash_password
from customer_segmentation.synthetic import generate_purchases, generate_users

logger = structlog.get_logger(__name__)

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin123!"
CUSTOMER_PASSWORD = "Password123!"


def clear_database(session: Session) -> None:
    for model in (Campaign, Segment, PurchaseItem, Purchase, User):
        session.execute(delete(model))
    session.commit()


def seed_database(
    session: Session,
    settings: Settings,
    n_users: int = 20,
    n_purchases: int = 100,
    seed: int | None = None,
) -> dict[str, int]:
    """Replace all data with an admin, ``n_users`` customers and ``n_purchases`` purchases.

    Returns counts of the created rows.
    """
    clear_database(session)

    admin = User(
        first_name="Admin",
        last_name="User",
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD, rounds=settings.bcrypt_rounds),
        role="admin",
        email_verified=True,
    )
    session.add(admin)

    # One hash shared by every synthetic customer keeps seeding fast
    customer_hash = hash_password(CUSTOMER_PASSWORD, rounds=settings.bcrypt_rounds)
    synthetic_users = generate_users(n_users, seed=seed)
    users_by_email: dict[str, User] = {}
    for synthetic in synthetic_users:
        user = User(
            first_name=synthetic.first_name,
            last_name=synthetic.last_name,
            email=synthetic.email,
            password_hash=customer_hash,
            city=synthetic.city,
            country="Ghana",
        )
        session.add(user)
        users_by_email[synthetic.email] = user
    session.flush()

    purchases = generate_purchases(synthetic_users, n_purchases, seed=seed)
    for index, synthetic in enumerate(purchases):
        user = users_by_email[synthetic.email]
        session.add(
            Purchase(
                user_id=user.id,
                customer_id=user.email,
                order_number=f"ORD-{synthetic.transaction_date:%Y%m%d}-{index:06d}",
                total_amount=synthetic.total_amount,
                payment_method=synthetic.payment_method,
                payment_status=synthetic.payment_status.value,
                paystack_reference=synthetic.reference,
                transaction_date=synthetic.transaction_date,
                items=[
                    PurchaseItem(
                        product_id=item.product_id,
                        product_name=item.product_name,
                        category=item.category,
                        sku=item.sku,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total_price=item.total_price,
                    )
                    for item in synthetic.items
                ],
            )
        )

    session.add(
        Segment(
            name="All Customers",
            description="Every customer with a completed purchase",
            criteria={},
            created_by=admin.id,
        )
    )
    session.commit()

    counts = {"users": len(synthetic_users) + 1, "purchases": len(purchases), "segments": 1}
    logger.info("database_seeded", **counts)
    return counts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--users", type=int, default=20, help="Synthetic customers (default: 20)")
    parser.add_argument(
        "--purchases", type=int, default=100, help="Synthetic purchases (default: 100)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    args = parser.parse_args(argv)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=logging.INFO)

    settings = get_settings()
    init_database(settings.database_url)
    with get_session_factory()() as session:
        counts = seed_database(
            session, settings, n_users=args.users, n_purchases=args.purchases, seed=args.seed
        )

    print(f"Seeded {counts['users']} users and {counts['purchases']} purchases")
    print(f"Admin login: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
