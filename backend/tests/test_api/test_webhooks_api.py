"""API tests for gateway webhooks: verification, matching and idempotent reconciliation."""

import hashlib
import hmac
import json
import time
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from hotelops.engine.bookings import create_booking
from hotelops.gateways.base import sign_hmac_sha256
from hotelops.models import Payment

pytestmark = pytest.mark.asyncio

BANK_SECRET = "bank_test_hotelops"
CHAPA_SECRET = "chapa_test_hotelops"
STRIPE_SECRET = "whsec_test_hotelops"


@pytest_asyncio.fixture
async def booking(db_session, inventory):
    return await create_booking(
        db_session,
        guest_id=inventory["guest"].id,
        unit_id=inventory["unit"].id,
        check_in=date(2024, 6, 7),
        check_out=date(2024, 6, 9),
    )


async def _pending(db_session, booking, method: str, transaction_ref: str, external_ref: str) -> Payment:
    payment = Payment(
        booking_id=booking.id,
        amount=Decimal("240.00"),
        currency="USD",
        method=method,
        status="pending",
        transaction_ref=transaction_ref,
        external_ref=external_ref,
        gateway_metadata={},
    )
    db_session.add(payment)
    await db_session.commit()
    return payment


async def _bank_callback(client, reference: str, outcome: str = "succeeded", secret: str = BANK_SECRET):
    payload = json.dumps({"reference": reference, "outcome": outcome}).encode()
    return await client.post(
        "/api/v1/webhooks/bank-transfer",
        content=payload,
        headers={"Content-Type": "application/json", "X-Signature": sign_hmac_sha256(secret, payload)},
    )


class TestBankTransfer:
    async def test_success_confirms_once(self, client, booking):
        initiated = await client.post(
            "/api/v1/payments",
            json={"booking_id": str(booking.id), "amount": "240.00", "method": "bank_transfer"},
        )
        reference = initiated.json()["transaction_ref"]

        first = await _bank_callback(client, reference)
        assert first.status_code == 200
        assert first.json() == {"status": "processed"}

        second = await _bank_callback(client, reference)
        assert second.status_code == 200
        assert second.json() == {"status": "duplicate"}

        payments = (await client.get("/api/v1/payments", params={"status": "completed"})).json()
        assert payments["total"] == 1
        detail = (await client.get(f"/api/v1/bookings/{booking.id}")).json()
        assert detail["status"] == "confirmed"
        assert detail["balance"]["is_paid"] is True

    async def test_conflicting_outcome(self, client, booking):
        initiated = await client.post(
            "/api/v1/payments",
            json={"booking_id": str(booking.id), "amount": "240.00", "method": "bank_transfer"},
        )
        reference = initiated.json()["transaction_ref"]

        await _bank_callback(client, reference, "failed")
        response = await _bank_callback(client, reference, "succeeded")
        assert response.status_code == 409
        assert response.json()["error"] == "ReconciliationConflict"

        detail = (await client.get(f"/api/v1/bookings/{booking.id}")).json()
        assert detail["status"] == "pending"

    async def test_bad_signature(self, client, booking):
        response = await _bank_callback(client, "TXN_ANY", secret="forged")
        assert response.status_code == 400
        assert response.json()["error"] == "AuthenticityCheckFailed"

    async def test_unknown_reference(self, client, booking):
        response = await _bank_callback(client, "TXN_NOPE")
        assert response.status_code == 404
        assert response.json()["error"] == "UnknownTransaction"
        assert (await client.get("/api/v1/payments")).json()["total"] == 0

    async def test_card_payment_reference_not_settled(self, client, db_session, booking):
        payment = await _pending(db_session, booking, "card", "TXN_CARD", "pi_card")

        response = await _bank_callback(client, "TXN_CARD")
        assert response.status_code == 404
        assert response.json()["error"] == "UnknownTransaction"

        stored = (await client.get(f"/api/v1/payments/{payment.id}")).json()
        assert stored["status"] == "pending"
        detail = (await client.get(f"/api/v1/bookings/{booking.id}")).json()
        assert detail["status"] == "pending"


class TestStripe:
    def _signed(self, event: dict, secret: str = STRIPE_SECRET) -> tuple[bytes, dict[str, str]]:
        payload = json.dumps(event)
        timestamp = int(time.time())
        signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
        return payload.encode(), {"Content-Type": "application/json", "Stripe-Signature": f"t={timestamp},v1={signature}"}

    def _event(self, event_type: str, intent_id: str) -> dict:
        return {
            "id": "evt_e2e",
            "object": "event",
            "type": event_type,
            "data": {"object": {"id": intent_id, "object": "payment_intent"}},
        }

    async def test_succeeded_intent_confirms(self, client, db_session, booking):
        await _pending(db_session, booking, "card", "TXN_STRIPE", "pi_e2e")
        payload, headers = self._signed(self._event("payment_intent.succeeded", "pi_e2e"))

        response = await client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"status": "processed"}

        detail = (await client.get(f"/api/v1/bookings/{booking.id}")).json()
        assert detail["status"] == "confirmed"

    async def test_failed_intent(self, client, db_session, booking):
        payment = await _pending(db_session, booking, "card", "TXN_STRIPE", "pi_fail")
        payload, headers = self._signed(self._event("payment_intent.payment_failed", "pi_fail"))

        response = await client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)
        assert response.json() == {"status": "processed"}

        stored = (await client.get(f"/api/v1/payments/{payment.id}")).json()
        assert stored["status"] == "failed"
        assert stored["gateway_metadata"]["event_id"] == "evt_e2e"

    async def test_other_event_ignored(self, client):
        payload, headers = self._signed(self._event("customer.created", "cus_1"))
        response = await client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}

    async def test_bad_signature(self, client):
        payload, headers = self._signed(self._event("payment_intent.succeeded", "pi_x"), secret="whsec_wrong")
        response = await client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)
        assert response.status_code == 400


class TestChapa:
    async def test_success_by_tx_ref(self, client, db_session, booking):
        await _pending(db_session, booking, "mobile_money", "TXN_CHAPA", "TXN_CHAPA")
        payload = json.dumps({"tx_ref": "TXN_CHAPA", "status": "success", "reference": "AP1"}).encode()

        response = await client.post(
            "/api/v1/webhooks/chapa",
            content=payload,
            headers={"Content-Type": "application/json", "Chapa-Signature": sign_hmac_sha256(CHAPA_SECRET, payload)},
        )
        assert response.status_code == 200
        assert response.json() == {"status": "processed"}

        balance = (await client.get(f"/api/v1/bookings/{booking.id}/balance")).json()
        assert balance["paid"] == "240.00"
