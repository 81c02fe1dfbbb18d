from __future__ import annotations

import secrets
import string

from django.core.validators import MinValueValidator
from django.db import models, transaction

from .invoice import Invoice


def _gen_public_id(n: int = 12) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(n))


class PaymentIntent(models.Model):
    GATEWAY_CHOICES = [
        ("paystar", "پی‌استار"),
        ("fake", "درگاه آزمایشی"),
    ]
    STATUS_CHOICES = [
        ("initiated", "ایجاد شده"),
        ("redirected", "ارسال به درگاه"),
        ("paid", "پرداخت موفق"),
        ("failed", "ناموفق/لغو"),
    ]

    # شناسه‌ی عمومی (برای URL/Frontend)
    public_id = models.CharField(
        max_length=16,
        unique=True,
        db_index=True,
        default=_gen_public_id,
        editable=False,
    )

    gateway = models.CharField(
        max_length=20, choices=GATEWAY_CHOICES, default="paystar"
    )
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default="initiated"
    )

    # مبلغ (ریال) — اجازه‌ی 0 برای پرداخت رایگان
    amount = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    description = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    mobile = models.CharField(max_length=20, blank=True, default="")

    # بازگشت به فرانت (صفحه‌ی نتیجه). اگر خالی باشد از settings.PAYMENTS["RETURN_URL"] استفاده می‌شود.
    callback_url = models.URLField(blank=True, default="")

    # داده‌های درگاه
    token = models.CharField(
        max_length=128, blank=True, default=""
    )  # transid
    ref_id = models.CharField(max_length=128, blank=True, default="")
    error_message = models.CharField(max_length=255, blank=True, default="")
    extra = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "تراکنش/Intent"
        verbose_name_plural = "تراکنش‌ها"
        indexes = [
            models.Index(fields=["status"], name="pay_intent_status_idx"),
            models.Index(fields=["token"], name="pay_intent_token_idx"),
            models.Index(fields=["created_at"], name="pay_intent_created_idx"),
        ]

    def __str__(self):
        return f"{self.public_id} - {self.amount} R - {self.status}"

    # ───────────── Properties ─────────────
    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    @property
    def is_free(self) -> bool:
        return int(self.amount or 0) <= 0

    @property
    def can_start(self) -> bool:
        return self.status in ("initiated", "failed")

    @property
    def can_verify(self) -> bool:
        # failed نهایی است؛ فقط intent ارسال‌شده به درگاه verify می‌شود
        return self.status == "redirected" or (self.status == "initiated" and bool(self.token))

    # ───────────── Helpers ─────────────
    def default_return_url(self) -> str:
        from django.conf import settings as _s

        return (getattr(_s, "PAYMENTS", {}) or {}).get("RETURN_URL") or "/"

    def return_url(self) -> str:
        return self.callback_url or self.default_return_url()

    def to_invoice(self) -> Invoice:
        details = {}
        if self.email:
            details["email"] = self.email
        if self.mobile:
            details["mobile"] = self.mobile
        if self.description:
            details["description"] = self.description
        return Invoice(
            amount=int(self.amount),
            details=details,
            transaction_id=self.token or None,
        )

    # ───────────── State transitions ─────────────
    def mark_redirected(self, token: str):
        self.token = token
        self.status = "redirected"
        self.error_message = ""
        self.save(update_fields=["token", "status", "error_message", "updated_at"])

    @transaction.atomic
    def mark_paid(self, ref_id=None, extra=None):
        """
        قطعی‌سازی پرداخت.
        idempotent: اگر قبلاً paid شده، دوباره اعمال نکن.
        """
        if self.status == "paid":
            return

        if ref_id:
            self.ref_id = ref_id
        if extra:
            self.extra = extra if isinstance(extra, dict) else {"extra": extra}

        self.status = "paid"
        self.error_message = ""
        self.save(update_fields=["status", "ref_id", "extra", "error_message", "updated_at"])

    def mark_failed(self, message: str = ""):
        if self.status == "paid":
            return
        self.status = "failed"
        self.error_message = (message or "")[:255]
        self.save(update_fields=["status", "error_message", "updated_at"])
