# payments/apps.py
from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    name = "payments"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # چک تنظیمات درگاه هنگام بوت (manage.py check)
        from . import checks  # noqa: F401
