"""Omise payment gateway implementation.

Covers PromptPay/PayNow QR charges, card charges against stored customer
cards, customers and cards, and the recipient/transfer payout objects.
Talks to the Omise REST API with HTTP Basic auth (secret key, empty
password).
"""

import logging
from typing import Any, Optional

import httpx

from paygate.modules.payment_gateway.interface import (
    PaymentGatewayInterface,
    GatewayError,
    GatewayRequestError,
    WebhookResult,
    error_body,
    opaque_id,
)
from paygate.modules.payment_gateway.methods import QRMethod, CARD_CURRENCY, PAYOUT_CURRENCY

logger = logging.getLogger(__name__)

CHARGE_SUCCESSFUL = "successful"


class OmiseGateway(PaymentGatewayInterface):
    """Omise payment gateway implementation for Thailand and Singapore.

    Supports:
    - PromptPay QR (THB) and PayNow QR (SGD) charges
    - Card charges on stored customer cards
    - Recipients and transfers for payouts
    """

    provider = "omise"

    def __init__(
        self,
        api_secret: Optional[str],
        base_url: str = "https://api.omise.co",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_secret, timeout=timeout, transport=transport)
        self.base_url = base_url.rstrip("/")

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        operation: str,
        data: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict:
        """Make authenticated request to Omise API.

        Args:
            method: HTTP method
            endpoint: API endpoint
            operation: Operation name used for spans and metrics
            data: Request body data
            params: Query string parameters

        Returns:
            Response JSON

        Raises:
            GatewayRequestError: Omise answered with an error or was unreachable
        """
        with self._track(operation):
            async with self._client() as client:
                try:
                    response = await client.request(
                        method=method,
                        url=f"{self.base_url}{endpoint}",
                        auth=(self.api_secret, ""),
                        json=data,
                        params=params,
                    )
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    body = error_body(e.response)
                    raise GatewayRequestError(
                        body.get("message") or f"Omise returned HTTP {e.response.status_code}",
                        provider=self.provider,
                        status_code=e.response.status_code,
                        body=body,
                    ) from e
                except httpx.HTTPError as e:
                    raise GatewayRequestError(
                        str(e) or e.__class__.__name__,
                        provider=self.provider,
                    ) from e
            return response.json() if response.content else {}

    # ==================== Charges ====================

    async def create_qr_charge(
        self,
        method: QRMethod,
        amount: int,
        metadata: dict,
    ) -> dict:
        """Create a QR charge (PromptPay or PayNow).

        Args:
            method: QR scheme to charge through
            amount: Amount in the smallest currency unit
            metadata: Metadata echoed back on the webhook event

        Returns:
            Omise charge object (holds the QR image under ``source``)
        """
        return await self._make_request(
            "POST",
            "/charges",
            "create_qr_charge",
            {
                "amount": amount,
                "currency": method.omise_currency,
                "source": {"type": method.omise_source_type},
                "metadata": metadata,
            },
        )

    async def create_card_charge(
        self,
        amount: int,
        customer_id: str,
        card_id: str,
        metadata: dict,
    ) -> dict:
        """Charge a card stored on a customer (amount in satang)."""
        return await self._make_request(
            "POST",
            "/charges",
            "create_card_charge",
            {
                "amount": amount,
                "currency": CARD_CURRENCY,
                "customer": customer_id,
                "card": card_id,
                "metadata": metadata,
            },
        )

    async def retrieve_charge(self, charge_id: str) -> dict:
        return await self._make_request("GET", f"/charges/{charge_id}", "retrieve_charge")

    async def is_charge_successful(self, charge_id: str) -> bool:
        """Re-read a charge from Omise and check that it settled.

        Any failure to read the charge counts as not successful.
        """
        try:
            charge = await self.retrieve_charge(charge_id)
        except GatewayError as e:
            logger.error(f"Error retrieving Omise charge {charge_id}: {e}")
            return False
        return charge.get("status") == CHARGE_SUCCESSFUL

    async def mark_charge_as_paid(self, charge_id: str) -> dict:
        return await self._make_request(
            "POST", f"/charges/{charge_id}/mark_as_paid", "mark_charge_as_paid"
        )

    # ==================== Customers & Cards ====================

    async def create_customer(self, email: str) -> dict:
        return await self._make_request(
            "POST",
            "/customers",
            "create_customer",
            {"email": email, "description": f"Customer for {email}"},
        )

    async def search_customers(self, email: str, limit: int = 1) -> list[dict]:
        """Search customers by email.

        Args:
            email: Email to search for
            limit: Maximum number of matches

        Returns:
            Matching customer objects
        """
        result = await self._make_request(
            "GET",
            "/search",
            "search_customers",
            params={"scope": "customer", "query": email, "limit": limit},
        )
        return result.get("data") or []

    async def attach_card(self, customer_id: str, card_token: str) -> dict:
        """Attach a tokenized card to a customer.

        Returns:
            The updated customer object
        """
        return await self._make_request(
            "PATCH",
            f"/customers/{customer_id}",
            "attach_card",
            {"card": card_token},
        )

    async def list_cards(self, customer_id: str) -> list[dict]:
        result = await self._make_request(
            "GET", f"/customers/{customer_id}/cards", "list_cards"
        )
        return result.get("data") or []

    # ==================== Payouts ====================

    async def create_recipient(self, name: str, bank_account: dict) -> dict:
        return await self._make_request(
            "POST",
            "/recipients",
            "create_recipient",
            {
                "name": name,
                "type": "individual",
                "bank_account": {
                    "brand": bank_account.get("brand"),
                    "number": bank_account.get("number"),
                    "name": bank_account.get("name"),
                },
            },
        )

    async def verify_recipient(self, recipient_id: str) -> dict:
        return await self._make_request(
            "PATCH", f"/recipients/{recipient_id}/verify", "verify_recipient"
        )

    async def destroy_recipient(self, recipient_id: str) -> dict:
        return await self._make_request(
            "DELETE", f"/recipients/{recipient_id}", "destroy_recipient"
        )

    async def create_transfer(self, amount: int, recipient_id: str) -> dict:
        return await self._make_request(
            "POST",
            "/transfers",
            "create_transfer",
            {"amount": amount, "currency": PAYOUT_CURRENCY, "recipient": recipient_id},
        )

    async def mark_transfer_as_sent(self, transfer_id: str) -> dict:
        return await self._make_request(
            "POST", f"/transfers/{transfer_id}/mark_as_sent", "mark_transfer_as_sent"
        )

    async def mark_transfer_as_paid(self, transfer_id: str) -> dict:
        return await self._make_request(
            "POST", f"/transfers/{transfer_id}/mark_as_paid", "mark_transfer_as_paid"
        )

    async def destroy_transfer(self, transfer_id: str) -> dict:
        return await self._make_request(
            "DELETE", f"/transfers/{transfer_id}", "destroy_transfer"
        )

    # ==================== Webhooks ====================

    def parse_webhook(self, payload: Any) -> WebhookResult:
        """Parse an Omise event.

        Omise events are not signed; a successful event still has to be
        confirmed with :meth:`is_charge_successful` before it is trusted.
        """
        data = payload.get("data") or {}
        metadata = data.get("metadata") or {}
        status = data.get("status")
        amount = data.get("amount")

        return WebhookResult(
            provider=self.provider,
            event_type=payload.get("key") or payload.get("object") or "unknown",
            is_successful=status == CHARGE_SUCCESSFUL,
            transaction_id=data.get("id"),
            amount=amount / 100 if amount is not None else None,
            user_id=opaque_id(metadata.get("payniUserId")),
            currency_id=opaque_id(metadata.get("currencyId")),
            status=status,
        )
