"""Payment gateway factory.

Provides get_gateway() / set_gateway() per gateway family. Unconfigured
families fall back to a FakeGateway speaking that family's vocabulary.
"""

from commerce.gateway.fake_adapter import FakeGateway
from commerce.gateway.port import PaymentGateway

_gateways: dict[str, PaymentGateway] = {}


def get_gateway(family: str = "stripe") -> PaymentGateway:
    """Return the gateway for ``family``. Defaults to FakeGateway."""
    if family not in _gateways:
        _gateways[family] = FakeGateway(family=family)
    return _gateways[family]


def set_gateway(family: str, gateway: PaymentGateway) -> None:
    """Override the gateway used for ``family`` (useful for tests)."""
    _gateways[family] = gateway


def reset_gateways() -> None:
    _gateways.clear()
