"""Paystack Transfers API adapter.

Flow:
1. POST /transferrecipient  (nuban recipient for the employee's account)
2. POST /transfer           (debit the integration balance)
3. GET  /transfer/{code}    (status query, safe to retry)

Amounts are passed through exactly as supplied; no kobo conversion.
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from urllib.parse import quote

import httpx

from disbursement_engine.exceptions import GatewayError
from disbursement_engine.gateway.base import TransferReceipt

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.paystack.co"


def _json_amount(amount: Decimal) -> int | float:
    """Encode an amount as a JSON number without changing its value."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


class PaystackGateway:
    """Synchronous Paystack client.

    Only get_transfer_status() is retried (transport errors and 5xx), with
    exponential backoff. Recipient creation and transfer initiation are
    attempted exactly once.
    """

    provider_name = "paystack"

    def __init__(
        self,
        secret_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        status_retry_count: int = 3,
        backoff_seconds: float = 0.5,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the adapter.

        Args:
            secret_key: Paystack secret key (sent as a bearer token).
            base_url: API root, overridable for sandboxes.
            timeout_seconds: Per-request timeout.
            status_retry_count: Extra attempts for status queries.
            backoff_seconds: First retry delay; doubles on each attempt.
            client: Pre-built httpx client (tests inject a MockTransport).
            sleep: Delay function used between retries.
        """
        self.status_retry_count = status_retry_count
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout_seconds)
        self._client.headers["Authorization"] = f"Bearer {secret_key}"

    def close(self) -> None:
        """Close the underlying HTTP client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> PaystackGateway:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def create_recipient(
        self,
        *,
        name: str,
        account_number: str,
        bank_code: str,
        currency: str,
    ) -> str:
        """Create a nuban transfer recipient and return its recipient_code."""
        data = self._post(
            "/transferrecipient",
            {
                "type": "nuban",
                "name": name,
                "account_number": account_number,
                "bank_code": bank_code,
                "currency": currency,
            },
            action="creating recipient",
        )
        recipient_code = data.get("recipient_code")
        if not recipient_code:
            raise GatewayError("Paystack did not return a recipient_code", payload=data)
        return str(recipient_code)

    def initiate_transfer(
        self,
        *,
        recipient_code: str,
        amount: Decimal,
        reason: str,
    ) -> TransferReceipt:
        """Initiate a balance transfer to a recipient."""
        data = self._post(
            "/transfer",
            {
                "source": "balance",
                "amount": _json_amount(amount),
                "recipient": recipient_code,
                "reason": reason or "Salary disbursement",
            },
            action="initiating transfer",
        )
        transfer_code = data.get("transfer_code")
        if not transfer_code:
            raise GatewayError("Paystack did not return a transfer_code", payload=data)

        echoed = data.get("amount")
        amount = None
        if echoed is not None:
            try:
                amount = Decimal(str(echoed))
            except InvalidOperation:
                raise GatewayError(
                    f"Paystack returned a non-numeric amount: {echoed!r}", payload=data
                ) from None

        return TransferReceipt(
            transfer_code=str(transfer_code),
            status=str(data.get("status") or "pending").lower(),
            amount=amount,
            raw=data,
        )

    def get_transfer_status(self, transfer_code: str) -> dict[str, Any]:
        """Fetch transfer details, retrying transient failures."""
        path = f"/transfer/{quote(transfer_code, safe='')}"
        attempts = self.status_retry_count + 1

        for attempt in range(attempts):
            try:
                response = self._client.get(path)
                if response.status_code >= 500:
                    raise GatewayError(
                        f"Paystack returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
            except (httpx.TransportError, GatewayError) as e:
                if attempt == attempts - 1:
                    if isinstance(e, GatewayError):
                        raise
                    raise GatewayError(f"No response from Paystack: {e}") from e
                delay = self.backoff_seconds * (2**attempt)
                logger.warning(
                    "Transfer status query for %s failed (attempt %d/%d), retrying in %.2fs: %s",
                    transfer_code,
                    attempt + 1,
                    attempts,
                    delay,
                    e,
                )
                self._sleep(delay)
                continue
            return self._unwrap(response, action="fetching transfer status")

        raise GatewayError("Failed to fetch transfer status")

    def _post(self, path: str, body: dict[str, Any], *, action: str) -> dict[str, Any]:
        try:
            response = self._client.post(path, json=body)
        except httpx.TransportError as e:
            raise GatewayError(f"No response from Paystack when {action}: {e}") from e
        return self._unwrap(response, action=action)

    def _unwrap(self, response: httpx.Response, *, action: str) -> dict[str, Any]:
        """Unwrap Paystack's {status, message, data} envelope."""
        try:
            body = response.json()
        except ValueError:
            raise GatewayError(
                f"Invalid response from Paystack when {action}",
                status_code=response.status_code,
            ) from None

        if not body or not isinstance(body, dict):
            raise GatewayError(
                f"No response from Paystack when {action}",
                status_code=response.status_code,
            )
        if not body.get("status"):
            raise GatewayError(
                body.get("message") or f"Paystack failed when {action}",
                status_code=response.status_code,
                payload=body,
            )
        return body.get("data") or {}
