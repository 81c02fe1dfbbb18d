# payments/exceptions.py
from __future__ import annotations


class GatewayError(Exception):
    """خطای پایه‌ی درگاه‌ها؛ message همان متنی است که به کاربر نشان داده می‌شود."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class PurchaseFailed(GatewayError):
    """درگاه به درخواست خرید کد خطا برگرداند."""


class InvalidPayment(GatewayError):
    """تأیید پرداخت ناموفق بود."""


class MissingTransactionId(GatewayError): ...


class UnknownGateway(GatewayError): ...


class InvalidIntentState(GatewayError):
    """وضعیت intent اجازه‌ی این مرحله را نمی‌دهد (مثلاً failed نهایی است)."""
