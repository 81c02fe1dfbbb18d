# payments/invoice.py
from __future__ import annotations

from uuid import uuid4
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Union

from django.utils import timezone

Amount = Union[int, Decimal]


@dataclass
class Invoice:
    """
    فاکتور قابل پرداخت.
    مالک آن فراخوان است؛ درایور فقط transaction_id را بعد از purchase موفق ست می‌کند.
    """

    amount: Amount
    details: Dict[str, str] = field(default_factory=dict)
    transaction_id: Optional[str] = None
    uuid: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self):
        if self.amount is None or self.amount <= 0:
            raise ValueError(f"invoice amount must be positive, got {self.amount!r}")

    def detail(self, key: str, default: Optional[str] = None) -> Optional[str]:
        v = self.details.get(key)
        return v if v is not None else default


@dataclass(frozen=True)
class Receipt:
    gateway: str
    reference_id: str
    date: datetime = field(default_factory=timezone.now)

    def to_dict(self) -> dict:
        return {
            "gateway": self.gateway,
            "reference_id": self.reference_id,
            "date": self.date.isoformat(),
        }
