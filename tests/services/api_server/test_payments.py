"""Tests for the Paystack client and the payment endpoints."""

import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests
from structlog.testing import capture_logs

from analytics.services.api_server.models import Purchase
from analytics.services.api_server.payments import (
    PaymentGatewayError,
    PaystackClient,
    from_minor_units,
    to_minor_units,
    verify_signature,
)

ORDER = {
    "items": [
        {
            "product_id": "prod_1",
            "product_name": "Novel",
            "category": "Books",
            "quantity": 2,
            "unit_price": "12.50",
        },
        {
            "product_id": "prod_2",
            "product_name": "Headphones",
            "category": "Electronics",
            "quantity": 1,
            "unit_price": "75.00",
        },
    ]
}


def _sign(secret, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


class TestPaystackHelpers:
    def test_minor_units(self):
        assert to_minor_units(Decimal("100.00")) == 10000
        assert to_minor_units(Decimal("0.005")) == 1
        assert from_minor_units(12345) == Decimal("123.45")

    def test_verify_signature(self):
        body = b'{"event": "charge.success"}'
        assert verify_signature("secret", body, _sign("secret", body))
        assert not verify_signature("secret", body, _sign("other", body))
        assert not verify_signature("secret", body, None)
        assert not verify_signature("", body, _sign("", body))


class TestPaystackClient:
    def _client(self, response=None, error=None):
        session = Mock(spec=requests.Session)
        session.headers = {}
        if error is not None:
            session.request.side_effect = error
        else:
            session.request.return_value = response
        return PaystackClient("sk_test", base_url="https://paystack.test/", session=session), session

    def _response(self, status_code=200, body=None):
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.ok = status_code < 400
        response.json.return_value = body if body is not None else {}
        return response

    def test_initialize_sends_minor_units(self):
        response = self._response(body={"status": True, "data": {"reference": "ref_1"}})
        client, session = self._client(response)

        data = client.initialize_transaction(
            email="a@example.com", amount=Decimal("100.50"), currency="GHS", reference="ref_1"
        )

        assert data == {"reference": "ref_1"}
        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://paystack.test/transaction/initialize")
        assert session.request.call_args.kwargs["json"]["amount"] == 10050
        assert session.headers["Authorization"] == "Bearer sk_test"

    def test_rejected_request_raises(self):
        response = self._response(400, {"status": False, "message": "Invalid key"})
        client, _ = self._client(response)
        with pytest.raises(PaymentGatewayError, match="Invalid key") as exc_info:
            client.verify_transaction("ref_1")
        assert exc_info.value.status_code == 400

    def test_network_error_raises_once(self):
        client, session = self._client(error=requests.ConnectionError("down"))
        with pytest.raises(PaymentGatewayError, match="request failed"):
            client.refund("ref_1")
        assert session.request.call_count == 1


class TestPaymentEndpoints:
    def test_initialize_creates_pending_purchase(self, client, customer, paystack_client, db_session):
        user_id, headers = customer
        paystack_client.initialize_transaction.return_value = {
            "authorization_url": "https://checkout.paystack.com/abc",
            "access_code": "abc",
        }

        response = client.post("/api/payments/initialize", headers=headers, json=ORDER)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["authorization_url"] == "https://checkout.paystack.com/abc"
        assert data["purchase"]["payment_status"] == "pending"
        assert data["purchase"]["total_amount"] == 100.0
        assert len(data["purchase"]["items"]) == 2

        kwargs = paystack_client.initialize_transaction.call_args.kwargs
        assert kwargs["amount"] == Decimal("100.00")
        assert kwargs["email"] == "customer@example.com"
        assert kwargs["reference"] == data["reference"]
        assert kwargs["callback_url"] == "http://localhost:3000/payment/callback"

        purchase = db_session.get(Purchase, data["purchase"]["id"])
        assert purchase.user_id == user_id

    def test_gateway_failure_stores_nothing(self, client, customer, paystack_client, db_session):
        _, headers = customer
        paystack_client.initialize_transaction.side_effect = PaymentGatewayError("down")

        response = client.post("/api/payments/initialize", headers=headers, json=ORDER)
        assert response.status_code == 502
        assert response.json()["success"] is False
        assert db_session.query(Purchase).count() == 0

    def test_empty_order_rejected(self, client, customer):
        _, headers = customer
        response = client.post("/api/payments/initialize", headers=headers, json={"items": []})
        assert response.status_code == 422

    def test_verify_completes_purchase(self, client, customer, add_purchase, paystack_client):
        user_id, headers = customer
        add_purchase(user_id, "40", status="pending", reference="ref_verify")
        paystack_client.verify_transaction.return_value = {"status": "success"}

        response = client.get("/api/payments/verify/ref_verify", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["purchase"]["payment_status"] == "completed"
        assert data["gateway_status"] == "success"

    def test_verify_flags_amount_mismatch(self, client, customer, add_purchase, paystack_client):
        user_id, headers = customer
        add_purchase(user_id, "40", status="pending", reference="ref_short")
        paystack_client.verify_transaction.return_value = {"status": "success", "amount": 3000}

        with capture_logs() as logs:
            response = client.get("/api/payments/verify/ref_short", headers=headers)

        assert response.json()["data"]["purchase"]["payment_status"] == "completed"
        mismatch = [e for e in logs if e["event"] == "payment_amount_mismatch"]
        assert mismatch and mismatch[0]["paid"] == "30.00"

    def test_verify_failed_payment(self, client, customer, add_purchase, paystack_client):
        user_id, headers = customer
        add_purchase(user_id, "40", status="pending", reference="ref_fail")
        paystack_client.verify_transaction.return_value = {"status": "failed"}

        response = client.get("/api/payments/verify/ref_fail", headers=headers)
        assert response.json()["data"]["purchase"]["payment_status"] == "failed"

    def test_verify_other_users_payment(self, client, customer, make_user, add_purchase):
        _, headers = customer
        other_id, _ = make_user(email="other@example.com")
        add_purchase(other_id, "40", status="pending", reference="ref_other")
        assert client.get("/api/payments/verify/ref_other", headers=headers).status_code == 403

    def test_verify_unknown_reference(self, client, customer):
        _, headers = customer
        response = client.get("/api/payments/verify/ref_missing", headers=headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Payment not found"

    def test_history(self, client, customer, make_user, add_purchase):
        user_id, headers = customer
        other_id, _ = make_user(email="other@example.com")
        add_purchase(user_id, "10", days_ago=3)
        add_purchase(user_id, "20", days_ago=1)
        add_purchase(other_id, "30")

        data = client.get("/api/payments/history", headers=headers).json()["data"]
        assert [p["total_amount"] for p in data["purchases"]] == [20.0, 10.0]
        assert data["pagination"]["total"] == 2

    def test_refund(self, client, admin, customer, add_purchase, paystack_client):
        _, headers = admin
        user_id, _ = customer
        add_purchase(user_id, "40", reference="ref_refund")
        paystack_client.refund.return_value = {"status": "pending"}

        response = client.post("/api/payments/refund", headers=headers, json={"reference": "ref_refund"})
        assert response.status_code == 200
        assert response.json()["data"]["purchase"]["payment_status"] == "refunded"
        paystack_client.refund.assert_called_once_with("ref_refund", None)

    def test_refund_requires_completed_payment(self, client, admin, customer, add_purchase, paystack_client):
        _, headers = admin
        user_id, _ = customer
        add_purchase(user_id, "40", status="pending", reference="ref_pending")

        response = client.post("/api/payments/refund", headers=headers, json={"reference": "ref_pending"})
        assert response.status_code == 400
        paystack_client.refund.assert_not_called()

    def test_refund_requires_admin(self, client, customer):
        _, headers = customer
        response = client.post("/api/payments/refund", headers=headers, json={"reference": "x"})
        assert response.status_code == 403


class TestWebhook:
    def test_charge_success_completes_purchase(self, client, customer, add_purchase, settings, db_session):
        user_id, _ = customer
        purchase_id = add_purchase(user_id, "40", status="pending", reference="ref_hook")
        body = json.dumps({"event": "charge.success", "data": {"reference": "ref_hook"}}).encode()

        response = client.post(
            "/api/payments/webhook",
            content=body,
            headers={
                "x-paystack-signature": _sign(settings.paystack_secret_key, body),
                "content-type": "application/json",
            },
        )
        assert response.status_code == 200
        assert response.json()["data"]["purchase_id"] == purchase_id
        assert db_session.get(Purchase, purchase_id).payment_status == "completed"

    def test_invalid_signature_rejected(self, client):
        body = json.dumps({"event": "charge.success", "data": {"reference": "x"}}).encode()
        response = client.post(
            "/api/payments/webhook", content=body, headers={"x-paystack-signature": "bad"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid signature"

    def test_unknown_event_is_acknowledged(self, client, settings):
        body = json.dumps({"event": "transfer.success", "data": {}}).encode()
        response = client.post(
            "/api/payments/webhook",
            content=body,
            headers={"x-paystack-signature": _sign(settings.paystack_secret_key, body)},
        )
        assert response.status_code == 200
        assert response.json()["data"]["purchase_id"] is None
