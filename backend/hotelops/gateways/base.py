"""Gateway adapter contract shared by every asynchronous payment method.

An adapter opens an external transaction with ``begin`` and turns the
gateway's webhook into a verified ``CallbackEvent`` with ``parse_callback``.
The engine treats every adapter identically through these two calls.
"""

from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from hotelops.errors import AuthenticityCheckFailed


class Outcome:
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    ALL = (SUCCEEDED, FAILED)


@dataclass(frozen=True)
class BeginResult:
    """What a gateway hands back when a transaction is opened."""

    external_ref: str
    metadata: dict[str, Any] = field(default_factory=dict)  # persisted on the payment
    client_secret: str | None = None  # returned to the caller only, never stored
    checkout_url: str | None = None


@dataclass(frozen=True)
class CallbackEvent:
    """A verified gateway notification about one transaction."""

    gateway: str
    external_ref: str
    outcome: str
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: str | None = None


class GatewayAdapter(ABC):
    """One adapter per payment method family."""

    name: str = "gateway"

    @abstractmethod
    async def begin(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Mapping[str, Any],
    ) -> BeginResult:
        """Open an external transaction. Raises ``GatewayUnavailable`` on transport failure."""

    @abstractmethod
    def parse_callback(self, payload: bytes, headers: Mapping[str, str]) -> CallbackEvent | None:
        """Verify and decode a webhook.

        Raises ``AuthenticityCheckFailed`` when the signature does not match.
        Returns ``None`` for event types that carry no payment outcome.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name!r})>"


def lower_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {key.lower(): value for key, value in headers.items()}


def sign_hmac_sha256(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_hmac_sha256(gateway: str, secret: str, payload: bytes, signature: str | None) -> None:
    """Constant-time check of a hex HMAC-SHA256 signature over the raw body."""
    if not secret:
        raise AuthenticityCheckFailed(gateway, "webhook secret not configured")
    if not signature:
        raise AuthenticityCheckFailed(gateway, "missing signature header")
    expected = sign_hmac_sha256(secret, payload)
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise AuthenticityCheckFailed(gateway, "signature mismatch")


def to_minor_units(amount: Decimal) -> int:
    """Amount in cents, as gateways expect."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
