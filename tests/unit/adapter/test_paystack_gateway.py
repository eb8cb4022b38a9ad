"""Unit tests for PaystackGateway using httpx.MockTransport"""

import httpx
import pytest

from src.adapter.services.paystack_gateway import PaystackGateway
from src.app.errors import ErrorCode


def paystack_transaction(txn_id=4099260516, reference="ref_1", status="success", amount=500000):
    return {
        "id": txn_id,
        "reference": reference,
        "status": status,
        "amount": amount,
        "currency": "NGN",
        "paid_at": "2024-03-11T12:00:00.000Z",
        "authorization": {"authorization_code": "AUTH_8dfhjjdt"},
        "customer": {"customer_code": "CUS_1"},
    }


def gateway_for(handler, secret_key="sk_test"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PaystackGateway(secret_key=secret_key, client=client, page_size=20)


@pytest.mark.asyncio
class TestVerifyTransaction:

    async def test_verified_transaction_is_normalized(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200, json={"status": True, "message": "ok", "data": paystack_transaction()}
            )

        result = await gateway_for(handler).verify_transaction("ref_1")

        assert result.is_ok()
        transaction = result.value
        assert transaction.id == "4099260516"
        assert transaction.amount == 500000
        assert transaction.is_successful
        assert transaction.authorization_code == "AUTH_8dfhjjdt"
        assert transaction.customer_code == "CUS_1"
        assert requests[0].url.path == "/transaction/verify/ref_1"
        assert requests[0].headers["Authorization"] == "Bearer sk_test"

    async def test_unknown_reference_is_provider_error(self):
        def handler(request):
            return httpx.Response(
                400, json={"status": False, "message": "Transaction reference not found"}
            )

        result = await gateway_for(handler).verify_transaction("missing")

        assert result.is_err()
        assert result.error.code == ErrorCode.PROVIDER_ERROR
        assert result.error.reason == "Transaction reference not found"

    async def test_timeout_is_provider_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = await gateway_for(handler).verify_transaction("ref_1")

        assert result.error.code == ErrorCode.PROVIDER_ERROR
        assert result.error.message == "Paystack request failed"

    async def test_malformed_body_is_provider_error(self):
        def handler(request):
            return httpx.Response(200, json={"status": True, "data": {"reference": "ref_1"}})

        result = await gateway_for(handler).verify_transaction("ref_1")

        assert result.error.message == "Malformed Paystack response"

    async def test_missing_secret_key_short_circuits(self):
        def handler(request):
            raise AssertionError("no request expected")

        result = await gateway_for(handler, secret_key="").verify_transaction("ref_1")

        assert result.error.reason == "missing secret key"


@pytest.mark.asyncio
class TestListTransactions:

    async def test_lists_customer_transactions(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": [
                        paystack_transaction(1, "ref_a"),
                        paystack_transaction(2, "ref_b", amount=250000),
                    ],
                },
            )

        result = await gateway_for(handler).list_transactions("CUS_1")

        assert [t.reference for t in result.value] == ["ref_a", "ref_b"]
        assert result.value[1].amount == 250000
        assert seen == {"customer": "CUS_1", "status": "success", "perPage": "20"}

    async def test_empty_listing(self):
        def handler(request):
            return httpx.Response(200, json={"status": True, "data": []})

        result = await gateway_for(handler).list_transactions("CUS_1")

        assert result.value == []

    async def test_connection_error_is_provider_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = await gateway_for(handler).list_transactions("CUS_1")

        assert result.error.code == ErrorCode.PROVIDER_ERROR
