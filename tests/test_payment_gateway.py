"""
Tests for the Toss Payments client. requests is monkeypatched; nothing leaves the process.
"""

import base64

import pytest
import requests

from core import payment_gateway
from core.payment_gateway import GatewayError, TossPaymentsGateway, get_payment_gateway


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture
def gateway():
    return TossPaymentsGateway(secret_key="test_sk", base_url="https://toss.test/v1/", timeout=3)


class TestRequests:

    def test_basic_auth_header(self, gateway):
        expected = base64.b64encode(b"test_sk:").decode("ascii")
        assert gateway.headers["Authorization"] == f"Basic {expected}"

    def test_confirm_posts_order(self, gateway, monkeypatch):
        calls = []

        def fake_post(url, headers, json, timeout):
            calls.append((url, json, timeout))
            return FakeResponse(200, {"status": "DONE"})

        monkeypatch.setattr(payment_gateway.requests, "post", fake_post)

        assert gateway.confirm("pk_1", "ORDER_1", 1_100_000) == {"status": "DONE"}
        assert calls == [(
            "https://toss.test/v1/payments/confirm",
            {"paymentKey": "pk_1", "orderId": "ORDER_1", "amount": 1_100_000},
            3,
        )]

    def test_cancel_with_partial_amount(self, gateway, monkeypatch):
        calls = []
        monkeypatch.setattr(
            payment_gateway.requests, "post",
            lambda url, headers, json, timeout: calls.append((url, json)) or FakeResponse(200, {"status": "CANCELED"}),
        )

        gateway.cancel("pk_1", "Budget cut", amount=500)

        assert calls == [("https://toss.test/v1/payments/pk_1/cancel", {"cancelReason": "Budget cut", "cancelAmount": 500})]

    def test_get_payment(self, gateway, monkeypatch):
        monkeypatch.setattr(
            payment_gateway.requests, "get",
            lambda url, headers, timeout: FakeResponse(200, {"paymentKey": "pk_1", "url": url}),
        )
        assert gateway.get_payment("pk_1")["url"] == "https://toss.test/v1/payments/pk_1"


class TestErrors:

    def test_client_error_is_a_decline(self, gateway, monkeypatch):
        monkeypatch.setattr(
            payment_gateway.requests, "post",
            lambda *a, **kw: FakeResponse(400, {"code": "REJECT_CARD_PAYMENT", "message": "Card declined"}),
        )
        with pytest.raises(GatewayError) as exc:
            gateway.confirm("pk_1", "ORDER_1", 100)
        assert exc.value.declined is True
        assert exc.value.code == "REJECT_CARD_PAYMENT"
        assert str(exc.value) == "Card declined"

    def test_server_error_is_not_a_decline(self, gateway, monkeypatch):
        monkeypatch.setattr(payment_gateway.requests, "post", lambda *a, **kw: FakeResponse(503, text="Service Unavailable"))
        with pytest.raises(GatewayError) as exc:
            gateway.confirm("pk_1", "ORDER_1", 100)
        assert exc.value.declined is False
        assert str(exc.value) == "Service Unavailable"

    def test_transport_failure(self, gateway, monkeypatch):
        def boom(*args, **kwargs):
            raise requests.exceptions.ConnectTimeout("timed out")

        monkeypatch.setattr(payment_gateway.requests, "post", boom)
        with pytest.raises(GatewayError) as exc:
            gateway.confirm("pk_1", "ORDER_1", 100)
        assert exc.value.declined is False


class TestFactory:

    def test_no_key_means_no_gateway(self, monkeypatch):
        monkeypatch.setattr(payment_gateway, "TOSS_SECRET_KEY", "")
        assert get_payment_gateway() is None

    def test_key_configured(self, monkeypatch):
        monkeypatch.setattr(payment_gateway, "TOSS_SECRET_KEY", "live_sk")
        assert isinstance(get_payment_gateway(), TossPaymentsGateway)
