# -*- coding: utf-8 -*-
import logging
from django.conf import settings
from rest_framework import serializers

from .gateways import GATEWAYS, default_gateway_name
from .models import PaymentIntent

log = logging.getLogger("payments")


def _payments_cfg() -> dict:
    return getattr(settings, "PAYMENTS", {}) or {}


def _allowed_gateways():
    allowed = set(_payments_cfg().get("ALLOWED_GATEWAYS") or [])
    if not allowed:
        allowed = set(GATEWAYS)
    return allowed & set(GATEWAYS)


class InitiateSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=0)
    description = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    mobile = serializers.CharField(required=False, allow_blank=True, default="", max_length=20)
    callback_url = serializers.URLField(required=False, allow_blank=True, default="")
    gateway = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_gateway(self, v: str) -> str:
        name = (v or "").strip().lower() or default_gateway_name()
        if name not in _allowed_gateways():
            raise serializers.ValidationError("unsupported gateway")
        return name

    def validate_mobile(self, v: str) -> str:
        return (v or "").strip()

    def create(self, validated_data):
        return PaymentIntent.objects.create(**validated_data)


class PaymentIntentSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentIntent
        fields = (
            "public_id",
            "gateway",
            "status",
            "amount",
            "description",
            "token",
            "ref_id",
            "error_message",
            "created_at",
        )
        read_only_fields = fields
