from django.contrib import admin
from .models import PaymentIntent


@admin.register(PaymentIntent)
class PaymentIntentAdmin(admin.ModelAdmin):
    list_display = ("public_id", "amount", "status", "gateway", "token", "ref_id", "created_at")
    list_filter = ("gateway", "status", "created_at")
    search_fields = ("public_id", "ref_id", "token", "email", "mobile")
    readonly_fields = ("created_at", "updated_at", "error_message")
    ordering = ("-created_at",)
    list_per_page = 50
