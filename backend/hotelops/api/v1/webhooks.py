"""Gateway webhook endpoints: verify, match and reconcile payment outcomes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from hotelops.database import async_session_factory
from hotelops.engine.payments import reconcile
from hotelops.errors import AuthenticityCheckFailed, BookingEngineError
from hotelops.gateways import get_gateway
from hotelops.schemas.payment import WebhookResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


async def _process(gateway_name: str, request: Request) -> dict[str, str]:
    # 1. Read raw body (MUST be raw bytes for signature verification)
    payload = await request.body()
    gateway = get_gateway(gateway_name)

    # 2. Verify before matching anything
    try:
        event = gateway.parse_callback(payload, request.headers)
    except AuthenticityCheckFailed as e:
        logger.error("Rejected %s callback: %s %s", gateway_name, e.message, e.details)
        raise

    if event is None:
        return {"status": "ignored"}

    logger.info("Processing %s callback for %s: %s (id=%s)", gateway_name, event.external_ref, event.outcome, event.event_id)

    # 3. Own DB session; the callback has no request context to share
    async with async_session_factory() as db:
        try:
            result = await reconcile(db, event)
        except BookingEngineError:
            raise
        except Exception as e:
            logger.exception("Error processing %s callback for %s", gateway_name, event.external_ref)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Webhook processing failed",
            ) from e

    return {"status": "processed" if result.applied else "duplicate"}


@router.post("/stripe", response_model=WebhookResponse)
async def stripe_webhook(request: Request) -> dict[str, str]:
    """Stripe PaymentIntent events (card, digital wallet)."""
    return await _process("stripe", request)


@router.post("/chapa", response_model=WebhookResponse)
async def chapa_webhook(request: Request) -> dict[str, str]:
    """Chapa transaction callbacks (mobile money)."""
    return await _process("chapa", request)


@router.post("/bank-transfer", response_model=WebhookResponse)
async def bank_transfer_webhook(request: Request) -> dict[str, str]:
    """Signed outcomes from the bank reconciliation feed."""
    return await _process("bank_transfer", request)
