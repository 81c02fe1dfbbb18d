# payments/gateways/paystar.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from ..exceptions import InvalidPayment, MissingTransactionId, PurchaseFailed
from ..invoice import Invoice, Receipt
from .base import PaymentGatewayBase, RedirectionForm

log = logging.getLogger("payments")

API_PURCHASE_URL = "https://paystar.ir/api/create/"
API_PAYMENT_URL = "https://paystar.ir/paying/"
API_VERIFICATION_URL = "https://paystar.ir/api/verify/"
DEFAULT_DESCRIPTION = "payment using paystar"

# بدنه‌ی موفق verify
VERIFY_SUCCESS = "1"

# کلیدها و متن‌ها همان‌طور که از مستند درگاه رسیده‌اند (encoding خراب)؛ دست نزن.
STATUS_MESSAGES = {
    "???1": "???????? ???????????? ???????????????? ???????? ????????.",
    "???2": "???? ?????? ??????????(???? ??????????) ???????????????? ???????? ????????.",
    "???3": "???????? ???????????? (callback) ???????????????? ???????? ????????.",
    "???4": "???????? ???????????? ???????? ???????? ????????.",
    "???5": "???????? ???????????? ???????? ???????????? ???? ?????? ????????.",
    "???6": "???? ?????? ?????????? (??????????) ???????????? ??????.",
    "???7": "???????? ???????? ???? ???????? ?????????? ???????????? ??????????",
    "???8": "???? ???????????? (transid) ???????????????? ???????? ????????.",
    "???9": "???????????? ???????? ?????? ???????? ??????????.",
    "???10": "?????????? ?????????? ???? ?????????? ???????????? ???????????? ??????????.",
    "???11": "???????? ???? ???????? ???????????? ???????????? ??????????.",
    "-12": "???????? ?????????????? ???????????? ??????.",
    "-13": "?????????? ?????????????? ??????.",
    "-14": "???????? ?????????? ?????????? ???????? ??????.",
}

UNKNOWN_ERROR = "???????? ???????????????? ???? ???????? ??????."

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def translate_status(status) -> str:
    return STATUS_MESSAGES.get(str(status), UNKNOWN_ERROR)


def is_numeric(body: str) -> bool:
    return bool(_NUMERIC_RE.match(body or ""))


@dataclass(frozen=True)
class PaystarSettings:
    merchant_id: str
    callback_url: str
    api_purchase_url: str = API_PURCHASE_URL
    api_payment_url: str = API_PAYMENT_URL
    api_verification_url: str = API_VERIFICATION_URL
    description: str = DEFAULT_DESCRIPTION

    @classmethod
    def from_options(cls, options: Mapping) -> "PaystarSettings":
        """ساخت از دیکشنری PAYMENTS["GATEWAYS"]["paystar"] (کلیدهای بزرگ مثل settings)."""
        o = {str(k).upper(): v for k, v in (options or {}).items()}
        return cls(
            merchant_id=str(o.get("MERCHANT_ID") or ""),
            callback_url=str(o.get("CALLBACK_URL") or ""),
            api_purchase_url=o.get("API_PURCHASE_URL") or API_PURCHASE_URL,
            api_payment_url=o.get("API_PAYMENT_URL") or API_PAYMENT_URL,
            api_verification_url=o.get("API_VERIFICATION_URL") or API_VERIFICATION_URL,
            description=o.get("DESCRIPTION") or DEFAULT_DESCRIPTION,
        )


class PaystarGateway(PaymentGatewayBase):
    """
    درایور Paystar:
      1) purchase → POST فرم به api/create، بدنه یا transid است یا کد خطای عددی
      2) pay      → ریدایرکت GET به paying/<transid>
      3) verify   → POST فرم به api/verify، بدنه‌ی "1" یعنی موفق
    """

    name = "paystar"

    def __init__(self, config=None, transport=None):
        super().__init__(config, transport)
        if isinstance(self.config, PaystarSettings):
            self.settings = self.config
        else:
            self.settings = PaystarSettings.from_options(self.config)

    def purchase(self, invoice: Invoice) -> str:
        data = {
            "amount": invoice.amount,
            "email": invoice.detail("email"),
            "phone": invoice.detail("mobile", invoice.detail("phone")),
            "pin": self.settings.merchant_id,
            "desc": invoice.detail("description", self.settings.description),
            "callback": self.settings.callback_url,
        }
        data = {k: v for k, v in data.items() if v is not None}

        res = self.transport.send("POST", self.settings.api_purchase_url, data)
        body = (res.body or "").strip()

        # بدنه‌ی عددی = کد خطا
        if is_numeric(body):
            log.warning("PAYSTAR_PURCHASE_FAILED | invoice=%s http=%s code=%s", invoice.uuid, res.status_code, body)
            raise PurchaseFailed(translate_status(body))
        if not body:
            log.warning("PAYSTAR_PURCHASE_EMPTY | invoice=%s http=%s", invoice.uuid, res.status_code)
            raise PurchaseFailed(UNKNOWN_ERROR)

        invoice.transaction_id = body
        log.info("PAYSTAR_PURCHASE_OK | invoice=%s transid=%s", invoice.uuid, body)
        return invoice.transaction_id

    def pay(self, invoice: Invoice) -> RedirectionForm:
        if not invoice.transaction_id:
            raise MissingTransactionId("invoice has no transaction id; purchase() must run first")

        pay_url = f"{self.settings.api_payment_url}{invoice.transaction_id}"
        return self.redirect_with_form(pay_url, {}, "GET")

    def verify(self, invoice: Invoice, callback_params: Optional[Mapping] = None) -> Receipt:
        trans_id = invoice.transaction_id or (callback_params or {}).get("transid")
        if not trans_id:
            raise InvalidPayment(UNKNOWN_ERROR)

        data = {
            "amount": invoice.amount,
            "pin": self.settings.merchant_id,
            "transid": trans_id,
        }
        res = self.transport.send("POST", self.settings.api_verification_url, data)
        body = (res.body or "").strip()

        if body != VERIFY_SUCCESS:
            log.warning("PAYSTAR_VERIFY_FAILED | invoice=%s transid=%s http=%s code=%s",
                        invoice.uuid, trans_id, res.status_code, body)
            raise InvalidPayment(translate_status(body))

        log.info("PAYSTAR_VERIFY_OK | invoice=%s transid=%s", invoice.uuid, trans_id)
        return self.create_receipt(trans_id)
