# payments/services/payment_flow.py
from __future__ import annotations

import logging
from typing import Mapping, Optional

from django.db import transaction

from ..exceptions import InvalidIntentState, InvalidPayment, PurchaseFailed
from ..gateways import PaymentGatewayBase, RedirectionForm, get_gateway
from ..invoice import Receipt
from ..models import PaymentIntent

log = logging.getLogger("payments")


def start_payment(intent: PaymentIntent, gateway: Optional[PaymentGatewayBase] = None) -> RedirectionForm:
    """
    purchase + pay برای یک intent.
    خروجی: RedirectionForm که فرانت باید کاربر را با آن به درگاه بفرستد.
    PurchaseFailed بعد از failed کردن intent دوباره raise می‌شود.
    اگر در فاصله‌ی purchase درخواست دیگری intent را جلو برده باشد، InvalidIntentState.
    """
    gateway = gateway or get_gateway(intent.gateway)
    started_status, started_token = intent.status, intent.token
    invoice = intent.to_invoice()
    # هر شروع، transid تازه می‌خواهد
    invoice.transaction_id = None

    try:
        transid = gateway.purchase(invoice)
    except PurchaseFailed as e:
        with transaction.atomic():
            intent = PaymentIntent.objects.select_for_update().get(pk=intent.pk)
            if intent.can_start and intent.token == started_token:
                intent.mark_failed(e.message)
        log.warning("PAY_START_FAILED | pid=%s gateway=%s err=%s", intent.public_id, gateway.name, e.message)
        raise

    form = gateway.pay(invoice)

    with transaction.atomic():
        intent = PaymentIntent.objects.select_for_update().get(pk=intent.pk)
        # double-click: درخواست دیگری زودتر transid ثبت کرده؛ آن را بازنویسی نکن
        if intent.status != started_status or intent.token != started_token:
            log.warning("PAY_START_RACE | pid=%s status=%s kept=%s dropped=%s",
                        intent.public_id, intent.status, intent.token, transid)
            raise InvalidIntentState(f"intent already {intent.status}")
        intent.mark_redirected(transid)

    log.info("PAY_START_OK | pid=%s gateway=%s transid=%s", intent.public_id, gateway.name, transid)
    return form


def resume_payment(intent: PaymentIntent, gateway: Optional[PaymentGatewayBase] = None) -> RedirectionForm:
    """ریدایرکت دوباره به درگاه با همان transid ذخیره‌شده (کاربر صفحه‌ی بانک را رها کرده بود)."""
    if intent.status != "redirected" or not intent.token:
        raise InvalidIntentState(f"cannot resume intent in status {intent.status}")
    gateway = gateway or get_gateway(intent.gateway)
    return gateway.pay(intent.to_invoice())


def verify_payment(
    intent: PaymentIntent,
    callback_params: Optional[Mapping] = None,
    gateway: Optional[PaymentGatewayBase] = None,
) -> Receipt:
    """
    تأیید پرداخت بعد از برگشت کاربر از درگاه.
    اگر intent قبلاً paid شده، بدون تماس با درگاه همان رسید را برمی‌گرداند.
    intent در وضعیت failed دوباره verify نمی‌شود (InvalidIntentState).
    """
    if intent.is_paid:
        return Receipt(intent.gateway, intent.ref_id or intent.token)
    if not intent.can_verify:
        raise InvalidIntentState(f"cannot verify intent in status {intent.status}")

    gateway = gateway or get_gateway(intent.gateway)
    invoice = intent.to_invoice()

    try:
        receipt = gateway.verify(invoice, callback_params)
    except InvalidPayment as e:
        with transaction.atomic():
            intent = PaymentIntent.objects.select_for_update().get(pk=intent.pk)
            if intent.can_verify:
                intent.mark_failed(e.message)
        log.warning("PAY_VERIFY_FAILED | pid=%s gateway=%s err=%s", intent.public_id, gateway.name, e.message)
        raise

    with transaction.atomic():
        intent = PaymentIntent.objects.select_for_update().get(pk=intent.pk)
        if intent.is_paid:
            return Receipt(intent.gateway, intent.ref_id or intent.token)
        if not intent.can_verify:
            log.warning("PAY_VERIFY_STATE_CHANGED | pid=%s status=%s", intent.public_id, intent.status)
            raise InvalidIntentState(f"cannot verify intent in status {intent.status}")
        intent.mark_paid(ref_id=receipt.reference_id, extra={"receipt": receipt.to_dict()})

    log.info("PAY_VERIFY_OK | pid=%s gateway=%s ref=%s", intent.public_id, receipt.gateway, receipt.reference_id)
    return receipt
