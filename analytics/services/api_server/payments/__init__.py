"""Paystack payments: gateway client and purchase lifecycle."""

from analytics.services.api_server.payments.paystack import (
    PaymentGatewayError,
    PaystackClient,
    from_minor_units,
    to_minor_units,
    verify_signature,
)
from analytics.services.api_server.payments.service import (
    LineItem,
    PaymentNotFoundError,
    PaymentService,
    PaymentStateError,
    get_payment_service,
    get_paystack_client,
)

__all__ = [
    "PaymentGatewayError",
    "PaystackClient",
    "from_minor_units",
    "to_minor_units",
    "verify_signature",
    "LineItem",
    "PaymentNotFoundError",
    "PaymentService",
    "PaymentStateError",
    "get_payment_service",
    "get_paystack_client",
]
