# paydesk/urls.py
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/payments/", include(("payments.urls", "payments"), namespace="payments")),
]
