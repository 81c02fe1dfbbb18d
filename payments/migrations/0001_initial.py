import django.core.validators
from django.db import migrations, models

import payments.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PaymentIntent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.CharField(db_index=True, default=payments.models._gen_public_id, editable=False, max_length=16, unique=True)),
                ("gateway", models.CharField(choices=[("paystar", "پی‌استار"), ("fake", "درگاه آزمایشی")], default="paystar", max_length=20)),
                ("status", models.CharField(choices=[("initiated", "ایجاد شده"), ("redirected", "ارسال به درگاه"), ("paid", "پرداخت موفق"), ("failed", "ناموفق/لغو")], default="initiated", max_length=20)),
                ("amount", models.PositiveIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("mobile", models.CharField(blank=True, default="", max_length=20)),
                ("callback_url", models.URLField(blank=True, default="")),
                ("token", models.CharField(blank=True, default="", max_length=128)),
                ("ref_id", models.CharField(blank=True, default="", max_length=128)),
                ("error_message", models.CharField(blank=True, default="", max_length=255)),
                ("extra", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "تراکنش/Intent",
                "verbose_name_plural": "تراکنش‌ها",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="pay_intent_status_idx"),
                    models.Index(fields=["token"], name="pay_intent_token_idx"),
                    models.Index(fields=["created_at"], name="pay_intent_created_idx"),
                ],
            },
        ),
    ]
