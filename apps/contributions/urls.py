from __future__ import annotations

from django.urls import re_path

from apps.contributions.views import ContributionView, PointTransferView, WinProbabilityView

urlpatterns = [
    re_path(r"^rp/contribution/?$", ContributionView.as_view(), name="rp-contribution"),
    re_path(r"^rp/probability/?$", WinProbabilityView.as_view(), name="rp-probability"),
    re_path(r"^rp/transfer/?$", PointTransferView.as_view(), name="rp-transfer"),
]
