"""Tests for database seeding."""

from sqlalchemy import func, select

from analytics.services.api_server.models import Purchase, Segment, User
from analytics.services.api_server.repositories import PurchaseRepository
from analytics.services.api_server.seed import ADMIN_EMAIL, ADMIN_PASSWORD, seed_database
from analytics.services.api_server.security import verify_password
from customer_segmentation.segmentation import run_segmentation


def _count(session, model):
    return session.scalar(select(func.count()).select_from(model))


def test_seed_counts(db_session, settings):
    counts = seed_database(db_session, settings, n_users=5, n_purchases=30, seed=7)

    assert counts == {"users": 6, "purchases": 30, "segments": 1}
    assert _count(db_session, User) == 6
    assert _count(db_session, Purchase) == 30
    assert _count(db_session, Segment) == 1

    admin = db_session.scalar(select(User).where(User.email == ADMIN_EMAIL))
    assert admin.is_admin
    assert verify_password(ADMIN_PASSWORD, admin.password_hash)


def test_seeding_replaces_existing_rows(db_session, settings, customer):
    seed_database(db_session, settings, n_users=3, n_purchases=10, seed=1)
    seed_database(db_session, settings, n_users=3, n_purchases=10, seed=1)

    assert _count(db_session, User) == 4
    assert _count(db_session, Purchase) == 10
    assert db_session.scalar(select(User).where(User.email == "customer@example.com")) is None


def test_seeded_data_can_be_segmented(db_session, settings):
    seed_database(db_session, settings, n_users=10, n_purchases=80, seed=3)

    records = list(PurchaseRepository(db_session).iter_completed_purchases())
    assert records

    result = run_segmentation("rfm", {}, iter(records))
    customers = {r.customer_id for r in records}
    assert {a.customer_id for a in result.assignments} == customers
