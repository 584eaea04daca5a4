"""Payment gateway adapters, looked up by gateway name or payment method."""

from hotelops.errors import UnsupportedPaymentMethod
from hotelops.gateways.bank_transfer import BankTransferGateway
from hotelops.gateways.base import BeginResult, CallbackEvent, GatewayAdapter, Outcome
from hotelops.gateways.chapa import ChapaGateway
from hotelops.gateways.stripe_gateway import StripeGateway
from hotelops.models.payment import PaymentMethod

METHOD_GATEWAYS: dict[str, str] = {
    PaymentMethod.CARD: "stripe",
    PaymentMethod.DIGITAL_WALLET: "stripe",
    PaymentMethod.MOBILE_MONEY: "chapa",
    PaymentMethod.BANK_TRANSFER: "bank_transfer",
}

_registry: dict[str, GatewayAdapter] = {
    "stripe": StripeGateway(),
    "chapa": ChapaGateway(),
    "bank_transfer": BankTransferGateway(),
}


def get_gateway(name: str) -> GatewayAdapter:
    try:
        return _registry[name]
    except KeyError:
        raise UnsupportedPaymentMethod(name) from None


def gateway_for_method(method: str) -> GatewayAdapter:
    """Adapter handling an asynchronous payment method."""
    if method not in METHOD_GATEWAYS:
        raise UnsupportedPaymentMethod(method)
    return get_gateway(METHOD_GATEWAYS[method])


def register_gateway(adapter: GatewayAdapter) -> GatewayAdapter | None:
    """Install an adapter under its name, returning the one it replaces."""
    previous = _registry.get(adapter.name)
    _registry[adapter.name] = adapter
    return previous


__all__ = [
    "BeginResult",
    "CallbackEvent",
    "GatewayAdapter",
    "METHOD_GATEWAYS",
    "Outcome",
    "gateway_for_method",
    "get_gateway",
    "register_gateway",
]
