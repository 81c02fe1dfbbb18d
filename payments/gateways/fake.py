# payments/gateways/fake.py
import uuid
from urllib.parse import urlencode

from django.conf import settings

from ..exceptions import MissingTransactionId
from .base import PaymentGatewayBase


class FakeGateway(PaymentGatewayBase):
    """درگاه آزمایشی جهت تست جریان پرداخت بدون بانک"""

    name = "fake"

    def _callback_url(self):
        return (
            self.config.get("CALLBACK_URL")
            or settings.PAYMENTS.get("CALLBACK_URL")
            or "http://localhost:8000/api/payments/callback/fake/"
        )

    def purchase(self, invoice):
        invoice.transaction_id = f"FAKE-{uuid.uuid4().hex[:12].upper()}"
        return invoice.transaction_id

    def pay(self, invoice):
        if not invoice.transaction_id:
            raise MissingTransactionId("invoice has no transaction id; purchase() must run first")
        # شبیه‌سازی برگشت از بانک: مستقیم به callback خودمان
        cb = self._callback_url()
        sep = "&" if "?" in cb else "?"
        return self.redirect_with_form(f"{cb}{sep}{urlencode({'transid': invoice.transaction_id})}", {}, "GET")

    def verify(self, invoice, callback_params=None):
        # در حالت فیک، موفق برمی‌گردونیم
        ref = invoice.transaction_id or (callback_params or {}).get("transid") or f"FAKE-{invoice.uuid[:8].upper()}"
        return self.create_receipt(ref)
