"""Thin client for the Paystack transactions API."""

import hashlib
import hmac
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests
import structlog

logger = structlog.get_logger(__name__)

MINOR_UNITS = Decimal("100")


class PaymentGatewayError(RuntimeError):
    """Paystack was unreachable or rejected the request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (e.g. cedis) to pesewas.

    >>> to_minor_units(Decimal("12.345"))
    1235
    """
    return int((amount * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / MINOR_UNITS).quantize(Decimal("0.01"))


def verify_signature(secret_key: str, body: bytes, signature: str | None) -> bool:
    """Check a webhook body against its ``x-paystack-signature`` header (HMAC-SHA512)."""
    if not signature or not secret_key:
        return False
    expected = hmac.new(secret_key.encode("utf-8"), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaystackClient:
    """Calls Paystack with the account's secret key.

    Each call is made once; network errors and non-success responses raise
    :class:`PaymentGatewayError`.
    """

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {secret_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("paystack_request_failed", path=path, error=str(e))
            raise PaymentGatewayError(f"Paystack request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or not body.get("status"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning(
                "paystack_request_rejected",
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise PaymentGatewayError(
                f"Paystack rejected the request: {message}", status_code=response.status_code
            )
        return body.get("data") or {}

    def initialize_transaction(
        self,
        email: str,
        amount: Decimal,
        currency: str,
        reference: str,
        callback_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "email": email,
            "amount": to_minor_units(amount),
            "currency": currency,
            "reference": reference,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url
        return self._request("POST", "/transaction/initialize", json=payload)

    def verify_transaction(self, reference: str) -> dict[str, Any]:
        return self._request("GET", f"/transaction/verify/{reference}")

    def refund(self, reference: str, amount: Decimal | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"transaction": reference}
        if amount is not None:
            payload["amount"] = to_minor_units(amount)
        return self._request("POST", "/refund", json=payload)
