# payments/urls.py
from django.urls import path

from .views import GatewayCallbackView, StartPaymentView, create_intent

app_name = "payments"

urlpatterns = [
    path("intent/", create_intent, name="create_intent"),
    path("start/<str:public_id>/", StartPaymentView.as_view(), name="start_payment"),
    path("callback/<str:gateway_name>/", GatewayCallbackView.as_view(), name="callback"),
]
