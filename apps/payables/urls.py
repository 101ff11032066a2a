from __future__ import annotations

from django.urls import re_path

from apps.payables.views import (
    ExecutePayoutView,
    PayoutConfigView,
    PayoutStatsView,
    RetryPendingPayoutsView,
    SimulatePayoutView,
    UnclaimedPayoutsView,
    UserPayoutHistoryView,
)

urlpatterns = [
    re_path(r"^rp/simulate/?$", SimulatePayoutView.as_view(), name="rp-simulate"),
    re_path(r"^rp/execute/?$", ExecutePayoutView.as_view(), name="rp-execute"),
    re_path(r"^rp/retry-pending/?$", RetryPendingPayoutsView.as_view(), name="rp-retry-pending"),
    re_path(r"^rp/unclaimed/?$", UnclaimedPayoutsView.as_view(), name="rp-unclaimed"),
    re_path(r"^rp/config/?$", PayoutConfigView.as_view(), name="rp-config"),
    re_path(r"^rp/stats/?$", PayoutStatsView.as_view(), name="rp-stats"),
    re_path(r"^rp/payouts/?$", UserPayoutHistoryView.as_view(), name="rp-payouts"),
]
