"""Chapa adapter for mobile-money payments.

Chapa identifies a transaction by the merchant's own ``tx_ref``, so the
payment's transaction reference doubles as the external reference.
"""

import json
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import httpx

from hotelops.config import settings
from hotelops.errors import AuthenticityCheckFailed, GatewayUnavailable
from hotelops.gateways.base import (
    BeginResult,
    CallbackEvent,
    GatewayAdapter,
    Outcome,
    lower_headers,
    verify_hmac_sha256,
)

logger = logging.getLogger(__name__)

STATUS_OUTCOMES = {
    "success": Outcome.SUCCEEDED,
    "failed": Outcome.FAILED,
}

SIGNATURE_HEADERS = ("chapa-signature", "x-chapa-signature")

# Payer details Chapa accepts on initialize; anything else stays local.
_PAYER_FIELDS = ("email", "first_name", "last_name", "phone_number")


class ChapaGateway(GatewayAdapter):
    name = "chapa"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=settings.chapa_base_url,
            timeout=settings.chapa_timeout_seconds,
            transport=self._transport,
            headers={"Authorization": f"Bearer {settings.chapa_secret_key}"},
        )

    async def begin(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Mapping[str, Any],
    ) -> BeginResult:
        if not settings.chapa_secret_key:
            raise GatewayUnavailable(self.name, "CHAPA_SECRET_KEY is not configured")

        body = {
            "amount": str(amount),
            "currency": currency,
            "tx_ref": reference,
            "callback_url": settings.chapa_callback_url,
            "customization": {"title": "Hotel Payment", "description": "Payment for hotel booking"},
            **{key: metadata[key] for key in _PAYER_FIELDS if metadata.get(key)},
        }

        logger.info("Initializing Chapa transaction %s (%s %s)", reference, amount, currency)
        try:
            async with self._client() as client:
                response = await client.post("/transaction/initialize", json=body)
        except httpx.TransportError as e:
            raise GatewayUnavailable(self.name, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise GatewayUnavailable(self.name, f"HTTP {response.status_code}: {message}")

        data = response.json().get("data") or {}
        checkout_url = data.get("checkout_url")
        return BeginResult(
            external_ref=reference,
            metadata={"gateway": self.name, "checkout_url": checkout_url},
            checkout_url=checkout_url,
        )

    def parse_callback(self, payload: bytes, headers: Mapping[str, str]) -> CallbackEvent | None:
        lowered = lower_headers(headers)
        signature = next((lowered[h] for h in SIGNATURE_HEADERS if lowered.get(h)), None)
        verify_hmac_sha256(self.name, settings.webhook_secret(self.name), payload, signature)

        try:
            data = json.loads(payload)
        except ValueError as e:
            raise AuthenticityCheckFailed(self.name, "invalid payload") from e

        reference = data.get("tx_ref") or data.get("trx_ref")
        outcome = STATUS_OUTCOMES.get(str(data.get("status", "")).lower())
        if not reference or outcome is None:
            logger.debug("Ignoring Chapa callback without a settled status: %s", data.get("status"))
            return None

        return CallbackEvent(
            gateway=self.name,
            external_ref=reference,
            outcome=outcome,
            payload=data,
            event_id=data.get("reference"),
        )
