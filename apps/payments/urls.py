from django.urls import path

from .webhook import StripeConnectWebhookView

urlpatterns = [
    path("payments/stripe/connect-webhook/", StripeConnectWebhookView.as_view(), name="stripe-connect-webhook"),
]
