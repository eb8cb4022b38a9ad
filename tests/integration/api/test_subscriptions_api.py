"""Integration tests for Subscription API endpoints"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from httpx import AsyncClient

from src.domain.subscription import SubscriptionStatus
from tests.fixtures.provider import provider_transaction


class TestSubscriptionsAPIIntegration:

    @pytest.mark.asyncio
    async def test_create_and_activate(self, client: AsyncClient, plans):
        response = await client.post(
            "/billing/subscriptions",
            json={"user_id": "user_1", "plan_id": "plan_basic", "provider_customer_id": "CUS_1"},
        )
        assert response.status_code == 201
        subscription_id = response.json()["subscription"]["id"]

        payload = {
            "evidence": {
                "reference": "ref_1",
                "provider_payment_id": "7001",
                "amount": 1000,
                "currency": "NGN",
            },
            "source": "webhook",
        }
        first = await client.post(f"/billing/subscriptions/{subscription_id}/activate", json=payload)
        second = await client.post(f"/billing/subscriptions/{subscription_id}/activate", json=payload)

        assert first.status_code == 200
        assert first.json()["subscription"]["status"] == "active"
        assert first.json()["changed"] is True
        assert second.status_code == 200
        assert second.json()["changed"] is False

        history = await client.get(f"/billing/subscriptions/{subscription_id}/history")
        assert [entry["action"] for entry in history.json()] == ["created", "activated"]

    @pytest.mark.asyncio
    async def test_duplicate_open_subscription_returns_409(self, client: AsyncClient, make_subscription):
        await make_subscription()

        response = await client.post(
            "/billing/subscriptions", json={"user_id": "user_1", "plan_id": "plan_pro"}
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_unknown_subscription_returns_404(self, client: AsyncClient):
        response = await client.post(
            "/billing/subscriptions/missing/cancel", json={"reason": "user_request"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_invalid_request_returns_422(self, client: AsyncClient):
        response = await client.post("/billing/subscriptions", json={"user_id": ""})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unsupported_currency_returns_400(self, client: AsyncClient, make_subscription):
        await make_subscription()

        response = await client.post(
            "/billing/subscriptions/sub_1/activate",
            json={"evidence": {"reference": "ref_1", "amount": 100, "currency": "XYZ"}},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_reconcile_by_reference(self, client: AsyncClient, gateway, make_subscription):
        await make_subscription()
        gateway.add(provider_transaction("9001", "ref_checkout"))

        response = await client.post(
            "/billing/subscriptions/sub_1/reconcile", json={"reference": "ref_checkout"}
        )

        assert response.status_code == 200
        assert response.json()["tier"] == "reference"
        assert response.json()["source"] == "manual_recovery_ref"

    @pytest.mark.asyncio
    async def test_reconcile_exhausted_returns_422_with_details(
        self, client: AsyncClient, make_subscription
    ):
        await make_subscription()

        response = await client.post("/billing/subscriptions/sub_1/reconcile", json={})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "RECONCILIATION_EXHAUSTED"
        assert error["details"]["diagnostic"] == "no_provider_transactions"
        assert len(error["details"]["tiers"]) == 4

    @pytest.mark.asyncio
    async def test_change_plan_with_proration(
        self, client: AsyncClient, make_subscription, active_period
    ):
        await make_subscription(status=SubscriptionStatus.ACTIVE, **active_period)

        response = await client.post(
            "/billing/subscriptions/sub_1/change-plan",
            json={"new_plan_id": "plan_pro", "effective_date": "immediate", "prorate": True},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["new_plan_id"] == "plan_pro"
        assert Decimal(data["proration"]["amount"]) == Decimal("6.67")
        assert data["payment_id"] is not None

    @pytest.mark.asyncio
    async def test_dunning_and_grace_sweep(self, client: AsyncClient, make_subscription, active_period):
        await make_subscription(status=SubscriptionStatus.ACTIVE, **active_period)

        past_due = await client.post(
            "/billing/subscriptions/sub_1/past-due", json={"reason": "card_declined"}
        )
        grace = await client.post("/billing/subscriptions/sub_1/grace-period", json={"days": 3})
        sweep = await client.post("/billing/subscriptions/grace-sweep")

        assert past_due.json()["subscription"]["status"] == "past_due"
        assert grace.json()["subscription"]["status"] == "grace_period"
        grace_end = datetime.fromisoformat(grace.json()["subscription"]["grace_period_end"])
        assert grace_end - datetime.utcnow() < timedelta(days=3)
        assert sweep.status_code == 200
        assert sweep.json()["processed"] == 1
        assert sweep.json()["warned"] == 1

    @pytest.mark.asyncio
    async def test_cancel_already_canceled_is_noop(self, client: AsyncClient, make_subscription):
        await make_subscription(status=SubscriptionStatus.CANCELED)

        response = await client.post(
            "/billing/subscriptions/sub_1/cancel", json={"reason": "user_request"}
        )

        assert response.status_code == 200
        assert response.json()["changed"] is False
