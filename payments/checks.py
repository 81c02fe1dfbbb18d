# payments/checks.py
from django.conf import settings
from django.core.checks import Warning, register

from .gateways import GATEWAYS


@register()
def check_gateway_settings(app_configs=None, **kwargs):
    cfg = getattr(settings, "PAYMENTS", {}) or {}
    errors = []

    default = (cfg.get("DEFAULT_GATEWAY") or "paystar").strip().lower()
    if default not in GATEWAYS:
        errors.append(
            Warning(
                f"PAYMENTS['DEFAULT_GATEWAY'] = {default!r} is not a registered gateway.",
                hint=f"Use one of: {', '.join(sorted(GATEWAYS))}",
                id="payments.W001",
            )
        )

    paystar = (cfg.get("GATEWAYS") or {}).get("paystar") or {}
    if default == "paystar":
        for key in ("MERCHANT_ID", "CALLBACK_URL"):
            if not paystar.get(key):
                errors.append(
                    Warning(
                        f"PAYMENTS['GATEWAYS']['paystar']['{key}'] is empty.",
                        hint="Set PAYSTAR_MERCHANT_ID / PAY_CALLBACK_URL in .env",
                        id="payments.W002",
                    )
                )
    return errors
