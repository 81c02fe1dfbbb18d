# payments/gateways/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from ..invoice import Invoice, Receipt
from .transport import HttpTransport, RequestsTransport


@dataclass(frozen=True)
class RedirectionForm:
    """
    توضیح اینکه فرانت چطور کاربر را به درگاه بفرستد.
    GET بدون inputs یعنی ریدایرکت ساده؛ POST یعنی submit فرم با inputs.
    """

    action: str
    inputs: Dict[str, str] = field(default_factory=dict)
    method: str = "POST"

    def to_dict(self) -> dict:
        return {"url": self.action, "method": self.method, "data": dict(self.inputs)}


class PaymentGatewayBase(ABC):
    name: str = "base"

    def __init__(self, config=None, transport: Optional[HttpTransport] = None):
        self.config = config or {}
        self.transport = transport or RequestsTransport()

    @abstractmethod
    def purchase(self, invoice: Invoice) -> str:
        """Create payment session on the provider; return the transaction id."""
        raise NotImplementedError

    @abstractmethod
    def pay(self, invoice: Invoice) -> RedirectionForm:
        raise NotImplementedError

    @abstractmethod
    def verify(self, invoice: Invoice, callback_params: Optional[Mapping] = None) -> Receipt:
        """Handle callback. Raise InvalidPayment when the provider rejects it."""
        raise NotImplementedError

    # ───────────── Helpers ─────────────
    def redirect_with_form(self, action: str, inputs: Optional[Mapping] = None, method: str = "POST") -> RedirectionForm:
        return RedirectionForm(action=action, inputs=dict(inputs or {}), method=method.upper())

    def create_receipt(self, reference_id: str) -> Receipt:
        return Receipt(self.name, reference_id)
