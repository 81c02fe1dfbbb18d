# payments/views.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from urllib.parse import urlencode, urlparse

import requests
from django.conf import settings
from django.db import transaction
from django.http import HttpResponseRedirect
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import GatewayError, InvalidIntentState, InvalidPayment, PurchaseFailed, UnknownGateway
from .gateways import GATEWAYS
from .models import PaymentIntent
from .serializers import InitiateSerializer, PaymentIntentSerializer
from .services.payment_flow import resume_payment, start_payment, verify_payment

log = logging.getLogger("payments")


# ───────────────────────── Helpers ─────────────────────────
def _callback_allowed(host):
    allowed = set((getattr(settings, "PAYMENTS", {}) or {}).get("ALLOWED_CALLBACK_HOSTS", []))
    if not allowed:
        allowed = {"localhost", "127.0.0.1"}
    return (host or "").lower() in {h.lower() for h in allowed}


def _with_query(url: str, **params) -> str:
    sep = "&" if "?" in (url or "") else "?"
    return f"{url}{sep}{urlencode(params)}"


def _already_redirected(intent: PaymentIntent) -> Response:
    form = resume_payment(intent)
    return Response(
        {
            "already_redirected": True,
            "gateway": intent.gateway,
            "payment": form.to_dict(),
            "token": intent.token,
            "public_id": intent.public_id,
        },
        status=status.HTTP_409_CONFLICT,
    )


def _callback_params(request) -> dict:
    # درگاه ممکن است transid را در query یا body بفرستد
    params = {k: v for k, v in request.GET.items()}
    if request.method == "POST":
        params.update({k: v for k, v in request.POST.items()})
    return params


# ─────────────────── Create Intent ───────────────────
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def create_intent(request):
    ser = InitiateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    cb = ser.validated_data.get("callback_url")
    if cb and not _callback_allowed(urlparse(cb).netloc):
        return Response({"detail": "callback_url not allowed"}, status=status.HTTP_400_BAD_REQUEST)

    intent = ser.save()
    log.info("INTENT_CREATED | pid=%s amount=%s gateway=%s", intent.public_id, intent.amount, intent.gateway)
    return Response(PaymentIntentSerializer(intent).data, status=status.HTTP_201_CREATED)


# ─────────────────── Start Payment ───────────────────
class StartPaymentView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request, public_id):
        with transaction.atomic():
            intent = get_object_or_404(PaymentIntent.objects.select_for_update(), public_id=public_id)

            if intent.is_paid:
                redirect_url = _with_query(intent.return_url(), ok=1, pid=intent.public_id, ref=intent.ref_id or "")
                return Response({"already_paid": True, "redirect_url": redirect_url})

            if intent.status == "redirected" and intent.token:
                return _already_redirected(intent)

            if not intent.can_start:
                return Response({"detail": f"invalid status: {intent.status}"}, status=status.HTTP_409_CONFLICT)

            # رایگان
            if intent.is_free:
                intent.mark_paid(ref_id="FREE-0-RIAL", extra={"free": True})
                redirect_url = _with_query(intent.return_url(), ok=1, pid=intent.public_id, ref=intent.ref_id)
                return Response(
                    {
                        "gateway": "free",
                        "redirect_url": redirect_url,
                        "public_id": intent.public_id,
                        "ref_id": intent.ref_id,
                    }
                )

        try:
            form = start_payment(intent)
        except PurchaseFailed as e:
            return Response(
                {"detail": "payment init failed", "error": e.message},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        except UnknownGateway as e:
            return Response({"detail": e.message}, status=status.HTTP_400_BAD_REQUEST)
        except InvalidIntentState:
            # درخواست هم‌زمان دیگری زودتر به درگاه رفته
            intent.refresh_from_db()
            if intent.status == "redirected" and intent.token:
                return _already_redirected(intent)
            return Response({"detail": f"invalid status: {intent.status}"}, status=status.HTTP_409_CONFLICT)
        except requests.RequestException as e:
            log.exception("PAY_START_TRANSPORT_ERROR | pid=%s err=%s", intent.public_id, e)
            with transaction.atomic():
                locked = PaymentIntent.objects.select_for_update().get(pk=intent.pk)
                if locked.can_start:
                    locked.mark_failed("gateway unreachable")
            return Response({"detail": "gateway unreachable"}, status=status.HTTP_502_BAD_GATEWAY)

        intent.refresh_from_db()
        return Response(
            {
                "gateway": intent.gateway,
                "payment": form.to_dict(),
                "token": intent.token,
                "public_id": intent.public_id,
            }
        )


# ─────────────────── Gateway Callback ───────────────────
@method_decorator(csrf_exempt, name="dispatch")
class GatewayCallbackView(APIView):
    permission_classes = [permissions.AllowAny]

    def _handle(self, request, gateway_name):
        if gateway_name not in GATEWAYS:
            return Response({"detail": "unsupported callback"}, status=status.HTTP_400_BAD_REQUEST)

        params = _callback_params(request)
        transid = (params.get("transid") or "").strip()
        pid = (params.get("pid") or "").strip()

        log.warning("CALLBACK_IN | gateway=%s method=%s transid=%s pid=%s", gateway_name, request.method, transid, pid)

        intent = None
        if transid:
            intent = PaymentIntent.objects.filter(token=transid, gateway=gateway_name).first()
        if not intent and pid:
            intent = PaymentIntent.objects.filter(public_id=pid, gateway=gateway_name).first()
        if not intent:
            return Response(
                {"detail": "intent not found", "pid": pid, "transid": transid},
                status=status.HTTP_404_NOT_FOUND,
            )

        return_url = intent.return_url()
        try:
            receipt = verify_payment(intent, params)
        except InvalidPayment:
            return HttpResponseRedirect(_with_query(return_url, ok=0, pid=intent.public_id))
        except requests.RequestException as e:
            # وضعیت intent عوض نمی‌شود تا verify دوباره قابل انجام باشد
            log.exception("CALLBACK_VERIFY_TRANSPORT_ERROR | pid=%s err=%s", intent.public_id, e)
            return HttpResponseRedirect(_with_query(return_url, ok=0, pid=intent.public_id))
        except GatewayError as e:
            log.error("CALLBACK_VERIFY_ERROR | pid=%s err=%s", intent.public_id, e.message)
            return HttpResponseRedirect(_with_query(return_url, ok=0, pid=intent.public_id))

        return HttpResponseRedirect(
            _with_query(return_url, ok=1, pid=intent.public_id, ref=receipt.reference_id)
        )

    def get(self, request, gateway_name):
        return self._handle(request, gateway_name)

    def post(self, request, gateway_name):
        return self._handle(request, gateway_name)
