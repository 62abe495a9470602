"""Shared fixtures for the API server tests.

Every test gets a fresh in-memory SQLite database. Requests go through
FastAPI's TestClient with the session, settings and Paystack client
dependencies overridden; the app lifespan is not run.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from analytics.services.api_server import models  # noqa: F401
from analytics.services.api_server.config import Settings, get_settings
from analytics.services.api_server.database import Base, create_db_engine, get_session
from analytics.services.api_server.main import app
from analytics.services.api_server.models import Purchase, PurchaseItem, Segment, User
from analytics.services.api_server.payments import PaystackClient, get_paystack_client
from analytics.services.api_server.security import create_access_token, hash_password


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        paystack_secret_key="sk_test_secret",
        frontend_url="http://localhost:3000",
        enable_tracing=False,
    )


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def paystack_client():
    return Mock(spec=PaystackClient)


@pytest.fixture
def client(session_factory, settings, paystack_client):
    def override_session():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_paystack_client] = lambda: paystack_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory, settings):
    """Create a user and return ``(user_id, auth_headers)``."""

    def _make_user(
        email="customer@example.com",
        password="Password123!",
        role="customer",
        is_active=True,
    ):
        with session_factory() as session:
            user = User(
                first_name="Test",
                last_name=role.title(),
                email=email,
                password_hash=hash_password(password, rounds=settings.bcrypt_rounds),
                role=role,
                is_active=is_active,
            )
            session.add(user)
            session.commit()
            user_id = user.id
        token = create_access_token(user_id, settings)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role="admin")


@pytest.fixture
def customer(make_user):
    return make_user(email="customer@example.com")


@pytest.fixture
def add_purchase(session_factory):
    """Insert a purchase with one line item and return its id."""
    counter = {"n": 0}

    def _add_purchase(
        user_id,
        amount,
        status="completed",
        days_ago=1,
        category="Books",
        reference=None,
    ):
        counter["n"] += 1
        n = counter["n"]
        amount = Decimal(amount)
        with session_factory() as session:
            purchase = Purchase(
                user_id=user_id,
                customer_id=f"user{user_id}@example.com",
                order_number=f"ORD-TEST-{n:04d}",
                total_amount=amount,
                payment_status=status,
                paystack_reference=reference or f"ref_test_{n}",
                transaction_date=datetime.now(timezone.utc) - timedelta(days=days_ago),
                items=[
                    PurchaseItem(
                        product_id=f"prod_{n}",
                        product_name="Item",
                        category=category,
                        quantity=1,
                        unit_price=amount,
                        total_price=amount,
                    )
                ],
            )
            session.add(purchase)
            session.commit()
            return purchase.id

    return _add_purchase


@pytest.fixture
def add_segment(session_factory):
    def _add_segment(name="All Customers", criteria=None, is_active=True):
        with session_factory() as session:
            segment = Segment(name=name, criteria=criteria or {}, is_active=is_active)
            session.add(segment)
            session.commit()
            return segment.id

    return _add_segment
