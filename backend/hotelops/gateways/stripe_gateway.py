"""Stripe adapter for card and digital-wallet payments (PaymentIntents)."""

import json
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import stripe
from stripe import StripeClient

from hotelops.config import settings
from hotelops.errors import AuthenticityCheckFailed, GatewayUnavailable
from hotelops.gateways.base import BeginResult, CallbackEvent, GatewayAdapter, Outcome, lower_headers, to_minor_units

logger = logging.getLogger(__name__)

# Stripe event types that settle a PaymentIntent. Anything else is ignored.
EVENT_OUTCOMES = {
    "payment_intent.succeeded": Outcome.SUCCEEDED,
    "payment_intent.payment_failed": Outcome.FAILED,
}


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


class StripeGateway(GatewayAdapter):
    name = "stripe"

    async def begin(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Mapping[str, Any],
    ) -> BeginResult:
        if not settings.stripe_secret_key:
            raise GatewayUnavailable(self.name, "STRIPE_SECRET_KEY is not configured")

        client = get_stripe_client()
        logger.info("Creating PaymentIntent for %s (%s %s)", reference, amount, currency)
        try:
            intent = await client.v1.payment_intents.create_async(
                params={
                    "amount": to_minor_units(amount),
                    "currency": currency.lower(),
                    "metadata": {"transaction_ref": reference, **{k: str(v) for k, v in metadata.items()}},
                }
            )
        except (stripe.APIConnectionError, stripe.RateLimitError) as e:
            raise GatewayUnavailable(self.name, str(e)) from e
        except stripe.StripeError as e:
            raise GatewayUnavailable(self.name, e.user_message or str(e)) from e

        logger.info("Created PaymentIntent %s for %s", intent.id, reference)
        return BeginResult(
            external_ref=intent.id,
            metadata={"gateway": self.name, "payment_intent": intent.id},
            client_secret=intent.client_secret,
        )

    def parse_callback(self, payload: bytes, headers: Mapping[str, str]) -> CallbackEvent | None:
        secret = settings.webhook_secret(self.name)
        if not secret:
            raise AuthenticityCheckFailed(self.name, "webhook secret not configured")

        sig_header = lower_headers(headers).get("stripe-signature", "")
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, secret)
        except stripe.SignatureVerificationError as e:
            raise AuthenticityCheckFailed(self.name, "signature mismatch") from e
        except ValueError as e:
            raise AuthenticityCheckFailed(self.name, "invalid payload") from e

        outcome = EVENT_OUTCOMES.get(event.type)
        if outcome is None:
            logger.debug("Ignoring Stripe event type %s (id=%s)", event.type, event.id)
            return None

        intent = event.data.object
        return CallbackEvent(
            gateway=self.name,
            external_ref=intent.id,
            outcome=outcome,
            payload=json.loads(payload),
            event_id=event.id,
        )
