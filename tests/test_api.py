"""
HTTP tests for the lifecycle API.

Covers:
- Health endpoints
- Error body shape {"error": code, "detail": message}
- Role gates and authentication
- One campaign end to end: create, pay, apply, deliver, settle, report
"""

import inspect
from datetime import datetime

import pytest

from core.payment_gateway import GatewayError

CAMPAIGN = {
    "title": "Spring launch",
    "description": "Short-form reviews of the spring line",
    "budget": 1_000_000,
    "platform_fee_rate": "0.1",
    "start_date": "2026-11-01T00:00:00",
    "end_date": "2026-12-01T00:00:00",
}
BANK = {"bank_name": "Kookmin", "account_number": "123-456-7890", "account_holder": "Kim Creator"}


class DecliningGateway:
    def confirm(self, payment_key, order_id, amount):
        raise GatewayError("Card declined", code="REJECT_CARD_PAYMENT", declined=True)


@pytest.fixture
def create_campaign(client, auth_headers, business):
    def _create(**overrides):
        response = client.post("/api/campaigns", json=dict(CAMPAIGN, **overrides), headers=auth_headers(business))
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def submitted_campaign(client, auth_headers, business, create_campaign):
    """A campaign its owner has sent to review, which makes it payable."""
    def _submit(**overrides):
        campaign = create_campaign(**overrides)
        response = client.patch(f"/api/campaigns/{campaign['id']}/status", json={"status": "pending"}, headers=auth_headers(business))
        assert response.status_code == 200, response.text
        return response.json()
    return _submit


@pytest.fixture
def open_payment(client, auth_headers, business):
    def _open(campaign):
        response = client.post(
            "/api/payments",
            json={"campaign_id": campaign["id"], "amount": campaign["required_payment_amount"]},
            headers=auth_headers(business),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _open


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"


class TestHandlers:

    def test_lifecycle_handlers_are_sync(self, client):
        """Blocking service calls run in the threadpool, not on the event loop."""
        routes = [r for r in client.app.routes if getattr(r, "path", "").startswith("/api/")]
        assert routes
        for route in routes:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path


class TestErrors:
    """Lifecycle errors and request validation share one body shape."""

    def test_not_found(self, client, auth_headers, business):
        response = client.get("/api/campaigns/missing", headers=auth_headers(business))
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["detail"]

    def test_request_validation(self, client, auth_headers, business):
        response = client.post("/api/campaigns", json=dict(CAMPAIGN, budget=0), headers=auth_headers(business))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_fee_rate_out_of_range(self, client, auth_headers, business):
        response = client.post("/api/campaigns", json=dict(CAMPAIGN, platform_fee_rate="1.5"), headers=auth_headers(business))
        assert response.status_code == 400

    def test_amount_mismatch(self, client, submitted_campaign, open_payment):
        payment = open_payment(submitted_campaign())["payment"]
        response = client.post("/api/payments/confirm", json={
            "order_id": payment["order_id"], "payment_key": "pk_1", "amount": 1,
        })
        assert response.status_code == 400
        assert response.json()["error"] == "amount_mismatch"

    def test_draft_cannot_be_paid(self, client, auth_headers, business, create_campaign):
        campaign = create_campaign()
        response = client.post(
            "/api/payments",
            json={"campaign_id": campaign["id"], "amount": campaign["required_payment_amount"]},
            headers=auth_headers(business),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "not_eligible"

    def test_invalid_transition(self, client, auth_headers, business, create_campaign):
        campaign = create_campaign()
        response = client.patch(f"/api/campaigns/{campaign['id']}/status", json={"status": "active"}, headers=auth_headers(business))
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_gateway_decline_is_402(self, client, submitted_campaign, open_payment, monkeypatch):
        monkeypatch.setattr("routers.payments.get_payment_gateway", lambda: DecliningGateway())
        payment = open_payment(submitted_campaign())["payment"]

        response = client.post("/api/payments/confirm", json={
            "order_id": payment["order_id"], "payment_key": "pk_1", "amount": payment["amount"],
        })

        assert response.status_code == 402
        assert response.json()["error"] == "payment_declined"


class TestAuth:

    def test_missing_token(self, client):
        assert client.get("/api/payments").status_code in (401, 403)

    def test_bad_token(self, client):
        response = client.get("/api/payments", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_influencer_cannot_create_campaign(self, client, auth_headers, influencer):
        response = client.post("/api/campaigns", json=CAMPAIGN, headers=auth_headers(influencer))
        assert response.status_code == 403

    def test_business_cannot_review(self, client, auth_headers, business, create_campaign):
        campaign = create_campaign()
        response = client.post(f"/api/campaigns/{campaign['id']}/review", json={"approved": True}, headers=auth_headers(business))
        assert response.status_code == 403

    def test_business_cannot_see_revenue(self, client, auth_headers, business):
        assert client.get("/api/revenue/summary", headers=auth_headers(business)).status_code == 403

    def test_service_ownership_check(self, client, auth_headers, other_business, create_campaign):
        campaign = create_campaign()
        response = client.patch(f"/api/campaigns/{campaign['id']}", json={"title": "Mine"}, headers=auth_headers(other_business))
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"


class TestCampaignLifecycle:

    def test_end_to_end(self, client, auth_headers, business, influencer, admin, create_campaign, open_payment):
        campaign = create_campaign()
        assert campaign["status"] == "draft"
        assert campaign["required_payment_amount"] == 1_100_000

        # Submit, then admin review
        response = client.patch(f"/api/campaigns/{campaign['id']}/status", json={"status": "pending"}, headers=auth_headers(business))
        assert response.json()["status"] == "pending"
        response = client.post(f"/api/campaigns/{campaign['id']}/review", json={"approved": True}, headers=auth_headers(admin))
        assert response.json()["status"] == "approved"

        # Payment
        created = open_payment(campaign)
        assert created["checkout"]["amount"] == 1_100_000
        order = {"order_id": created["payment"]["order_id"], "payment_key": "pk_1", "amount": 1_100_000}

        response = client.post("/api/payments/confirm", json=order)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        # Gateway retries the callback
        assert client.post("/api/payments/confirm", json=order).json()["status"] == "approved"

        campaign = client.get(f"/api/campaigns/{campaign['id']}", headers=auth_headers(business)).json()
        assert campaign["status"] == "active"
        assert campaign["is_paid"] is True
        assert campaign["platform_fee"] == 100_000

        # Application and content
        response = client.post(f"/api/campaigns/{campaign['id']}/apply", json={"proposed_price": 300_000}, headers=auth_headers(influencer))
        assert response.status_code == 201
        application = response.json()

        response = client.patch(f"/api/applications/{application['id']}", json={"status": "approved"}, headers=auth_headers(business))
        assert response.json()["status"] == "approved"

        response = client.post(
            f"/api/applications/{application['id']}/content",
            json={"media_urls": ["https://cdn.revu.test/v/1.mp4"], "caption": "Unboxing"},
            headers=auth_headers(influencer),
        )
        assert response.status_code == 201
        content = response.json()

        response = client.patch(f"/api/content/{content['id']}/review", json={"status": "approved"}, headers=auth_headers(business))
        assert response.json()["review_status"] == "approved"

        # Settlement
        response = client.post("/api/settlements", json={"bank_account": BANK}, headers=auth_headers(influencer))
        assert response.status_code == 201
        settlement = response.json()
        assert settlement["total_amount"] == 300_000
        assert len(settlement["items"]) == 1

        response = client.post("/api/settlements", json={"bank_account": BANK}, headers=auth_headers(influencer))
        assert response.status_code == 400
        assert response.json()["error"] == "nothing_to_settle"

        response = client.post(f"/api/settlements/{settlement['id']}/process", json={"approved": True}, headers=auth_headers(admin))
        assert response.json()["status"] == "approved"

        response = client.post(f"/api/settlements/{settlement['id']}/paid", json={"payout_reference": "TRANSFER-001"}, headers=auth_headers(admin))
        assert response.json()["status"] == "paid"

        # Reporting
        summary = client.get(f"/api/revenue/summary?year={datetime.utcnow().year}", headers=auth_headers(admin)).json()
        assert summary["campaign_fee_total"] == 100_000

        payments = client.get("/api/payments?type=settlement", headers=auth_headers(influencer)).json()
        assert payments["total"] == 1
        assert payments["items"][0]["amount"] == 300_000

    def test_offline_payment(self, client, auth_headers, admin, submitted_campaign):
        campaign = submitted_campaign()
        response = client.post("/api/payments/offline", json={"campaign_id": campaign["id"], "reference": "BANK-1"}, headers=auth_headers(admin))

        assert response.status_code == 201
        assert response.json()["method"] == "offline"
        assert response.json()["status"] == "approved"

    def test_superchat(self, client, auth_headers, business, influencer):
        response = client.post(
            "/api/payments/superchat",
            json={"creator_id": influencer.user_id, "amount": 10_000, "message": "Great video"},
            headers=auth_headers(business),
        )
        assert response.status_code == 201
        payment = response.json()["payment"]

        client.post("/api/payments/confirm", json={"order_id": payment["order_id"], "payment_key": "pk_sc", "amount": 10_000})

        earnings = client.get("/api/revenue/earnings", headers=auth_headers(influencer)).json()
        assert earnings["net_total"] == 9_000
        assert earnings["entries"][0]["revenue_type"] == "creator_earning"

    def test_refund(self, client, auth_headers, business, submitted_campaign, open_payment):
        campaign = submitted_campaign()
        payment = open_payment(campaign)["payment"]
        client.post("/api/payments/confirm", json={"order_id": payment["order_id"], "payment_key": "pk_1", "amount": payment["amount"]})

        response = client.post(f"/api/payments/{payment['id']}/cancel", json={"reason": "Budget cut"}, headers=auth_headers(business))

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        campaign = client.get(f"/api/campaigns/{campaign['id']}", headers=auth_headers(business)).json()
        assert campaign["status"] == "pending"
        assert campaign["is_paid"] is False


class TestNotifications:

    def test_list_and_mark_read(self, client, auth_headers, business, submitted_campaign, open_payment):
        payment = open_payment(submitted_campaign())["payment"]
        client.post("/api/payments/confirm", json={"order_id": payment["order_id"], "payment_key": "pk_1", "amount": payment["amount"]})

        notifications = client.get("/api/notifications", headers=auth_headers(business)).json()
        assert [n["type"] for n in notifications] == ["campaign_activated"]

        response = client.post(f"/api/notifications/{notifications[0]['id']}/read", headers=auth_headers(business))
        assert response.status_code == 200
        assert client.get("/api/notifications?unread_only=true", headers=auth_headers(business)).json() == []

    def test_unknown_notification(self, client, auth_headers, business):
        response = client.post("/api/notifications/missing/read", headers=auth_headers(business))
        assert response.status_code == 404
