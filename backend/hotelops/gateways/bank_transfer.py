"""Bank transfer adapter.

Nothing is sent to the bank when a transfer is initiated: the payer quotes
the transaction reference, and the bank-reconciliation feed later posts a
signed ``{"reference": ..., "outcome": "succeeded" | "failed"}`` callback.
"""

import json
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from hotelops.config import settings
from hotelops.errors import AuthenticityCheckFailed
from hotelops.gateways.base import (
    BeginResult,
    CallbackEvent,
    GatewayAdapter,
    Outcome,
    lower_headers,
    verify_hmac_sha256,
)


class BankTransferGateway(GatewayAdapter):
    name = "bank_transfer"

    async def begin(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Mapping[str, Any],
    ) -> BeginResult:
        return BeginResult(
            external_ref=reference,
            metadata={
                "gateway": self.name,
                "instructions": f"Transfer {amount} {currency} quoting reference {reference}",
                **{key: metadata[key] for key in ("bank_name", "account_number") if metadata.get(key)},
            },
        )

    def parse_callback(self, payload: bytes, headers: Mapping[str, str]) -> CallbackEvent | None:
        verify_hmac_sha256(
            self.name,
            settings.webhook_secret(self.name),
            payload,
            lower_headers(headers).get("x-signature"),
        )
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise AuthenticityCheckFailed(self.name, "invalid payload") from e

        outcome = data.get("outcome")
        if not data.get("reference") or outcome not in Outcome.ALL:
            return None
        return CallbackEvent(
            gateway=self.name,
            external_ref=data["reference"],
            outcome=outcome,
            payload=data,
            event_id=data.get("statement_line"),
        )
