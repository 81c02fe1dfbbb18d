from unittest.mock import patch

import requests
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from payments.exceptions import InvalidIntentState
from payments.gateways import PaystarGateway
from payments.gateways.paystar import STATUS_MESSAGES, UNKNOWN_ERROR
from payments.models import PaymentIntent
from payments.services.payment_flow import start_payment, verify_payment

from .fakes import FakeTransport

PAYMENTS = {
    "DEFAULT_GATEWAY": "paystar",
    "RETURN_URL": "https://front.test/payment/result",
    "ALLOWED_GATEWAYS": ["paystar", "fake"],
    "ALLOWED_CALLBACK_HOSTS": ["front.test"],
    "GATEWAYS": {
        "paystar": {
            "MERCHANT_ID": "PIN-1",
            "CALLBACK_URL": "https://api.test/api/payments/callback/paystar/",
            "API_PAYMENT_URL": "https://paystar.test/paying/",
        },
        "fake": {"CALLBACK_URL": "https://api.test/api/payments/callback/fake/"},
    },
}


def _paystar(*bodies):
    return PaystarGateway(PAYMENTS["GATEWAYS"]["paystar"], transport=FakeTransport(*bodies))


@override_settings(PAYMENTS=PAYMENTS)
class CreateIntentTest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_create(self):
        res = self.client.post(
            reverse("payments:create_intent"),
            {"amount": 10000, "email": "a@b.com", "mobile": "0912", "description": "order 7"},
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        intent = PaymentIntent.objects.get(public_id=res.data["public_id"])
        self.assertEqual(intent.gateway, "paystar")
        self.assertEqual(intent.status, "initiated")
        self.assertEqual(intent.amount, 10000)

    def test_unsupported_gateway(self):
        res = self.client.post(reverse("payments:create_intent"), {"amount": 1, "gateway": "sadad"}, format="json")
        self.assertEqual(res.status_code, 400)

    def test_callback_host_not_allowed(self):
        res = self.client.post(
            reverse("payments:create_intent"),
            {"amount": 1, "callback_url": "https://evil.test/x"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)


@override_settings(PAYMENTS=PAYMENTS)
class StartPaymentTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.intent = PaymentIntent.objects.create(amount=10000, email="a@b.com", mobile="0912")
        self.url = reverse("payments:start_payment", args=[self.intent.public_id])

    def test_purchase_and_redirect(self):
        with patch("payments.services.payment_flow.get_gateway", return_value=_paystar("tx-123456789")):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(
            res.data["payment"],
            {"url": "https://paystar.test/paying/tx-123456789", "method": "GET", "data": {}},
        )
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "redirected")
        self.assertEqual(self.intent.token, "tx-123456789")

    def test_purchase_failed(self):
        with patch("payments.services.payment_flow.get_gateway", return_value=_paystar("-12")):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 502)
        self.assertEqual(res.data["error"], STATUS_MESSAGES["-12"])
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "failed")
        self.assertEqual(self.intent.error_message, STATUS_MESSAGES["-12"])

    def test_transport_error(self):
        gw = _paystar()
        with patch("payments.services.payment_flow.get_gateway", return_value=gw), \
                patch.object(gw.transport, "send", side_effect=requests.ConnectionError("down")):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 502)
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "failed")

    def test_retry_after_failure(self):
        self.intent.mark_failed("x")
        with patch("payments.services.payment_flow.get_gateway", return_value=_paystar("tx-2")):
            res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["token"], "tx-2")

    def test_already_redirected_resumes_with_stored_token(self):
        self.intent.mark_redirected("tx-1")
        gw = _paystar()
        with patch("payments.services.payment_flow.get_gateway", return_value=gw):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertTrue(res.data["already_redirected"])
        self.assertEqual(res.data["payment"], {"url": "https://paystar.test/paying/tx-1", "method": "GET", "data": {}})
        self.assertEqual(gw.transport.calls, [])
        self.intent.refresh_from_db()
        self.assertEqual((self.intent.status, self.intent.token), ("redirected", "tx-1"))

    def test_concurrent_start_keeps_first_token(self):
        intent = self.intent

        class RacingGateway(PaystarGateway):
            def purchase(self, invoice):
                # درخواست دیگری در همین فاصله به درگاه رفته است
                PaymentIntent.objects.filter(pk=intent.pk).update(status="redirected", token="tx-A")
                return super().purchase(invoice)

        gw = RacingGateway(PAYMENTS["GATEWAYS"]["paystar"], transport=FakeTransport("tx-B"))
        with patch("payments.services.payment_flow.get_gateway", return_value=gw):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertTrue(res.data["already_redirected"])
        self.assertEqual(res.data["token"], "tx-A")
        intent.refresh_from_db()
        self.assertEqual((intent.status, intent.token), ("redirected", "tx-A"))

    def test_concurrent_start_service_raises(self):
        intent = self.intent

        class RacingGateway(PaystarGateway):
            def purchase(self, invoice):
                PaymentIntent.objects.filter(pk=intent.pk).update(status="redirected", token="tx-A")
                return super().purchase(invoice)

        gw = RacingGateway(PAYMENTS["GATEWAYS"]["paystar"], transport=FakeTransport("tx-B"))
        with self.assertRaises(InvalidIntentState):
            start_payment(intent, gateway=gw)
        intent.refresh_from_db()
        self.assertEqual(intent.token, "tx-A")

    def test_free_intent_is_paid_without_gateway(self):
        intent = PaymentIntent.objects.create(amount=0)
        res = self.client.post(reverse("payments:start_payment", args=[intent.public_id]), {}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["gateway"], "free")
        intent.refresh_from_db()
        self.assertTrue(intent.is_paid)

    def test_already_paid(self):
        self.intent.mark_paid(ref_id="R1")
        res = self.client.post(self.url, {}, format="json")
        self.assertTrue(res.data["already_paid"])
        self.assertIn("ok=1", res.data["redirect_url"])

    def test_not_found(self):
        res = self.client.post(reverse("payments:start_payment", args=["nope"]), {}, format="json")
        self.assertEqual(res.status_code, 404)


@override_settings(PAYMENTS=PAYMENTS)
class GatewayCallbackTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.intent = PaymentIntent.objects.create(amount=10000)
        self.intent.mark_redirected("123456789")
        self.url = reverse("payments:callback", args=["paystar"])

    def test_verify_success(self):
        gw = _paystar("1")
        with patch("payments.services.payment_flow.get_gateway", return_value=gw):
            res = self.client.get(self.url, {"transid": "123456789"})

        self.assertEqual(res.status_code, 302)
        self.assertEqual(
            res["Location"],
            f"https://front.test/payment/result?ok=1&pid={self.intent.public_id}&ref=123456789",
        )
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "paid")
        self.assertEqual(self.intent.ref_id, "123456789")
        self.assertEqual(gw.transport.calls[0][2], {"amount": 10000, "pin": "PIN-1", "transid": "123456789"})

    def test_verify_failure(self):
        with patch("payments.services.payment_flow.get_gateway", return_value=_paystar("0")):
            res = self.client.post(self.url, {"transid": "123456789"})

        self.assertEqual(res.status_code, 302)
        self.assertIn("ok=0", res["Location"])
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "failed")
        self.assertEqual(self.intent.error_message, UNKNOWN_ERROR)

    def test_failed_intent_is_not_verified_again(self):
        gw = _paystar("0", "1")
        with patch("payments.services.payment_flow.get_gateway", return_value=gw):
            first = self.client.get(self.url, {"transid": "123456789"})
            second = self.client.get(self.url, {"transid": "123456789"})

        self.assertIn("ok=0", first["Location"])
        self.assertIn("ok=0", second["Location"])
        self.assertEqual(len(gw.transport.calls), 1)
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "failed")

    def test_verify_service_refuses_failed_intent(self):
        self.intent.mark_failed("x")
        gw = _paystar("1")
        with self.assertRaises(InvalidIntentState):
            verify_payment(self.intent, {"transid": "123456789"}, gateway=gw)
        self.assertEqual(gw.transport.calls, [])
        self.intent.refresh_from_db()
        self.assertEqual(self.intent.status, "failed")

    def test_paid_intent_is_not_verified_again(self):
        self.intent.mark_paid(ref_id="123456789")
        gw = _paystar()
        with patch("payments.services.payment_flow.get_gateway", return_value=gw):
            res = self.client.get(self.url, {"transid": "123456789"})
        self.assertIn("ok=1", res["Location"])
        self.assertEqual(gw.transport.calls, [])

    def test_unknown_transid(self):
        res = self.client.get(self.url, {"transid": "nope"})
        self.assertEqual(res.status_code, 404)

    def test_unsupported_gateway(self):
        res = self.client.get(reverse("payments:callback", args=["sadad"]), {"transid": "1"})
        self.assertEqual(res.status_code, 400)


@override_settings(PAYMENTS=PAYMENTS)
class FakeGatewayFlowTest(TestCase):
    def test_fake_payment_flow(self):
        client = APIClient()
        res = client.post(reverse("payments:create_intent"), {"amount": 5000, "gateway": "fake"}, format="json")
        pid = res.data["public_id"]

        res = client.post(reverse("payments:start_payment", args=[pid]), {}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["gateway"], "fake")
        token = res.data["token"]
        self.assertTrue(res.data["payment"]["url"].endswith(f"?transid={token}"))

        res = client.get(reverse("payments:callback", args=["fake"]), {"transid": token})
        self.assertEqual(res.status_code, 302)
        intent = PaymentIntent.objects.get(public_id=pid)
        self.assertTrue(intent.is_paid)
        self.assertEqual(intent.ref_id, token)
