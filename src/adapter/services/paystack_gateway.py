"""Paystack Payment Gateway Implementation

Thin async wrapper around the Paystack REST API.
"""

import logging
from typing import Any, Dict, List, Optional
import httpx
from libs.result import Result, Return, Error
from src.app.errors import ErrorCode
from src.app.services.payment_gateway import PaymentGateway, ProviderTransaction, PROVIDER_SUCCESS

logger = logging.getLogger(__name__)

PAYSTACK_BASE_URL = "https://api.paystack.co"


class PaystackGateway(PaymentGateway):
    """
    Paystack implementation of PaymentGateway

    Every call carries an explicit timeout. Transport failures and
    non-success envelopes are returned as PROVIDER_ERROR results.
    """

    def __init__(
        self,
        secret_key: str,
        base_url: str = PAYSTACK_BASE_URL,
        timeout: float = 30.0,
        page_size: int = 50,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the gateway

        Args:
            secret_key: Paystack secret key
            base_url: API base URL
            timeout: Request timeout in seconds
            page_size: Transactions requested per list call
            client: Optional shared client (tests inject a MockTransport client)
        """
        self._secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self._client = client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._secret_key}",
            "Content-Type": "application/json",
        }

    def is_configured(self) -> bool:
        return bool(self._secret_key)

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            response = await self._client.get(url, params=params, headers=self._headers())
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params, headers=self._headers())
        return response.json()

    @staticmethod
    def _to_transaction(data: Dict[str, Any]) -> ProviderTransaction:
        authorization = data.get("authorization") or {}
        customer = data.get("customer") or {}
        return ProviderTransaction(
            id=str(data["id"]),
            reference=data.get("reference") or "",
            status=data.get("status") or "",
            amount=int(data.get("amount") or 0),
            currency=data.get("currency") or "",
            authorization_code=authorization.get("authorization_code"),
            customer_code=customer.get("customer_code"),
            paid_at=data.get("paid_at") or data.get("paidAt"),
        )

    def _provider_error(self, message: str, reason: str) -> Error:
        return Error(code=ErrorCode.PROVIDER_ERROR, message=message, reason=reason)

    async def verify_transaction(self, reference: str) -> Result[ProviderTransaction]:
        if not self.is_configured():
            return Return.err(self._provider_error("Paystack is not configured", "missing secret key"))

        try:
            body = await self._get(f"/transaction/verify/{reference}")
            if not body.get("status"):
                logger.warning(f"Paystack verify failed for {reference}: {body.get('message')}")
                return Return.err(
                    self._provider_error(
                        f"Verification failed for reference {reference}",
                        str(body.get("message", "unknown provider error")),
                    )
                )
            return Return.ok(self._to_transaction(body["data"]))
        except httpx.HTTPError as e:
            logger.error(f"Paystack verify request failed for {reference}: {e}")
            return Return.err(self._provider_error("Paystack request failed", str(e)))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected Paystack verify response for {reference}: {e}")
            return Return.err(self._provider_error("Malformed Paystack response", str(e)))

    async def list_transactions(
        self, customer: str, status: str = PROVIDER_SUCCESS
    ) -> Result[List[ProviderTransaction]]:
        if not self.is_configured():
            return Return.err(self._provider_error("Paystack is not configured", "missing secret key"))

        params = {"customer": customer, "status": status, "perPage": self.page_size}
        try:
            body = await self._get("/transaction", params=params)
            if not body.get("status"):
                logger.warning(
                    f"Paystack transaction list failed for customer {customer}: {body.get('message')}"
                )
                return Return.err(
                    self._provider_error(
                        f"Transaction list failed for customer {customer}",
                        str(body.get("message", "unknown provider error")),
                    )
                )
            transactions = [self._to_transaction(item) for item in body.get("data") or []]
            return Return.ok(transactions)
        except httpx.HTTPError as e:
            logger.error(f"Paystack list request failed for customer {customer}: {e}")
            return Return.err(self._provider_error("Paystack request failed", str(e)))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected Paystack list response for customer {customer}: {e}")
            return Return.err(self._provider_error("Malformed Paystack response", str(e)))
