"""Purchase lifecycle driven by Paystack transactions.

A purchase is created ``pending`` when a payment is initialised and moves to
``completed``, ``failed`` or ``refunded`` as the gateway reports back, either
through an explicit verify call or a webhook event. Only completed purchases
feed segmentation.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from fastapi import Depends
from sqlalchemy.orm import Session

from analytics.services.api_server.config import Settings, get_settings
from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import Purchase, PurchaseItem, User
from analytics.services.api_server.payments.paystack import (
    PaymentGatewayError,
    PaystackClient,
    from_minor_units,
)
from analytics.services.api_server.repositories import PurchaseRepository
from customer_segmentation.foundation import PaymentStatus

logger = structlog.get_logger(__name__)

GATEWAY_STATUS_MAP = {
    "success": PaymentStatus.COMPLETED,
    "failed": PaymentStatus.FAILED,
    "abandoned": PaymentStatus.CANCELLED,
    "reversed": PaymentStatus.REFUNDED,
}

WEBHOOK_EVENT_MAP = {
    "charge.success": PaymentStatus.COMPLETED,
    "charge.failed": PaymentStatus.FAILED,
    "refund.processed": PaymentStatus.REFUNDED,
}


class PaymentNotFoundError(LookupError):
    pass


class PaymentStateError(ValueError):
    pass


@dataclass(frozen=True)
class LineItem:
    product_id: str
    product_name: str
    category: str
    quantity: int
    unit_price: Decimal
    sku: str | None = None

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


def _order_number(now: datetime) -> str:
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def _reference() -> str:
    return f"ref_{secrets.token_hex(10)}"


class PaymentService:
    def __init__(self, session: Session, client: PaystackClient, settings: Settings):
        self.session = session
        self.client = client
        self.settings = settings
        self.purchases = PurchaseRepository(session)

    def initialize(
        self,
        user: User,
        items: list[LineItem],
        currency: str = "GHS",
        payment_method: str = "card",
        metadata: dict[str, Any] | None = None,
    ) -> tuple[Purchase, dict[str, Any]]:
        """Create a pending purchase and open a Paystack transaction for it.

        Nothing is stored when the gateway call fails.
        """
        if not items:
            raise PaymentStateError("A purchase needs at least one item")

        now = datetime.now(timezone.utc)
        total = sum((item.total_price for item in items), Decimal("0"))
        reference = _reference()
        purchase = Purchase(
            user_id=user.id,
            customer_id=user.email,
            order_number=_order_number(now),
            total_amount=total,
            currency=currency,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            paystack_reference=reference,
            transaction_date=now,
            details=dict(metadata or {}),
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
                for item in items
            ],
        )
        self.session.add(purchase)
        self.session.flush()

        callback_url = (
            f"{self.settings.frontend_url.rstrip('/')}/payment/callback"
            if self.settings.frontend_url
            else None
        )
        try:
            gateway = self.client.initialize_transaction(
                email=user.email,
                amount=total,
                currency=currency,
                reference=reference,
                callback_url=callback_url,
                metadata={"purchase_id": purchase.id, "user_id": user.id},
            )
        except PaymentGatewayError:
            self.session.rollback()
            raise

        self.session.commit()
        logger.info(
            "payment_initialized",
            purchase_id=purchase.id,
            reference=reference,
            amount=str(total),
        )
        return purchase, gateway

    def get_by_reference(self, reference: str) -> Purchase:
        purchase = self.purchases.get_by_reference(reference)
        if purchase is None:
            raise PaymentNotFoundError(f"No purchase with reference {reference!r}")
        return purchase

    def verify(self, reference: str) -> tuple[Purchase, dict[str, Any]]:
        """Ask Paystack for the transaction outcome and record it."""
        purchase = self.get_by_reference(reference)
        gateway = self.client.verify_transaction(reference)

        new_status = GATEWAY_STATUS_MAP.get(str(gateway.get("status", "")).lower())
        if new_status is PaymentStatus.COMPLETED and gateway.get("amount") is not None:
            paid = from_minor_units(int(gateway["amount"]))
            if paid != purchase.total_amount:
                logger.warning(
                    "payment_amount_mismatch",
                    purchase_id=purchase.id,
                    reference=reference,
                    expected=str(purchase.total_amount),
                    paid=str(paid),
                )
        if new_status is not None and purchase.payment_status != PaymentStatus.REFUNDED.value:
            self._set_status(purchase, new_status, gateway)
        self.session.commit()
        return purchase, gateway

    def refund(self, reference: str, amount: Decimal | None = None) -> tuple[Purchase, dict[str, Any]]:
        purchase = self.get_by_reference(reference)
        if purchase.payment_status != PaymentStatus.COMPLETED.value:
            raise PaymentStateError(
                f"Only completed payments can be refunded (status: {purchase.payment_status})"
            )
        if amount is not None and amount > purchase.total_amount:
            raise PaymentStateError("Refund amount exceeds the purchase total")

        gateway = self.client.refund(reference, amount)
        self._set_status(purchase, PaymentStatus.REFUNDED, gateway)
        self.session.commit()
        return purchase, gateway

    def handle_webhook(self, event: dict[str, Any]) -> Purchase | None:
        """Apply a verified webhook event. Unknown events and references are ignored."""
        event_type = event.get("event")
        data = event.get("data") or {}
        new_status = WEBHOOK_EVENT_MAP.get(event_type)
        reference = data.get("reference") or data.get("transaction_reference")
        if new_status is None or not reference:
            logger.info("webhook_event_ignored", event_type=event_type)
            return None

        purchase = self.purchases.get_by_reference(str(reference))
        if purchase is None:
            logger.warning("webhook_reference_unknown", event_type=event_type, reference=reference)
            return None

        self._set_status(purchase, new_status, data)
        self.session.commit()
        return purchase

    def _set_status(self, purchase: Purchase, status: PaymentStatus, gateway: dict[str, Any]):
        previous = purchase.payment_status
        purchase.payment_status = status.value
        purchase.details = {
            **(purchase.details or {}),
            "gateway_status": gateway.get("status"),
            "gateway_response": gateway.get("gateway_response"),
        }
        logger.info(
            "payment_status_changed",
            purchase_id=purchase.id,
            reference=purchase.paystack_reference,
            previous=previous,
            current=status.value,
        )


def get_paystack_client(settings: Settings = Depends(get_settings)) -> PaystackClient:
    return PaystackClient(
        secret_key=settings.paystack_secret_key,
        base_url=settings.paystack_base_url,
        timeout=settings.paystack_timeout_seconds,
    )


def get_payment_service(
    session: Session = Depends(get_session),
    client: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
) -> PaymentService:
    return PaymentService(session, client, settings)
