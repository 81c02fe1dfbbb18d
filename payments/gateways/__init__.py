# payments/gateways/__init__.py
from django.conf import settings

from ..exceptions import UnknownGateway
from .base import PaymentGatewayBase, RedirectionForm
from .fake import FakeGateway
from .paystar import PaystarGateway
from .transport import RequestsTransport

GATEWAYS = {
    PaystarGateway.name: PaystarGateway,
    FakeGateway.name: FakeGateway,
}


def default_gateway_name() -> str:
    cfg = getattr(settings, "PAYMENTS", {}) or {}
    return (cfg.get("DEFAULT_GATEWAY") or "paystar").strip().lower()


def get_gateway(name=None, transport=None) -> PaymentGatewayBase:
    cfg = getattr(settings, "PAYMENTS", {}) or {}
    name = (name or default_gateway_name()).strip().lower()
    options = cfg.get("GATEWAYS", {}).get(name, {})

    cls = GATEWAYS.get(name)
    if cls is None:
        raise UnknownGateway(f"Unknown gateway: {name}")

    if transport is None:
        transport = RequestsTransport(timeout=cfg.get("HTTP_TIMEOUT"))
    return cls(options, transport=transport)


__all__ = [
    "GATEWAYS",
    "PaymentGatewayBase",
    "RedirectionForm",
    "FakeGateway",
    "PaystarGateway",
    "default_gateway_name",
    "get_gateway",
]
