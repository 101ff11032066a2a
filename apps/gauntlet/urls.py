from __future__ import annotations

from django.urls import path

from apps.gauntlet.views import (
    ChallengeAbandonView,
    ChallengeCancelView,
    ChallengeDetailView,
    ChallengeListCreateView,
    ChallengeResolveView,
    ChallengeStartView,
)

urlpatterns = [
    path("gauntlet/challenges/", ChallengeListCreateView.as_view(), name="gauntlet-challenges"),
    path("gauntlet/challenges/<int:challenge_id>/", ChallengeDetailView.as_view(), name="gauntlet-challenge-detail"),
    path("gauntlet/challenges/<int:challenge_id>/start/", ChallengeStartView.as_view(), name="gauntlet-challenge-start"),
    path(
        "gauntlet/challenges/<int:challenge_id>/resolve/",
        ChallengeResolveView.as_view(),
        name="gauntlet-challenge-resolve",
    ),
    path(
        "gauntlet/challenges/<int:challenge_id>/cancel/",
        ChallengeCancelView.as_view(),
        name="gauntlet-challenge-cancel",
    ),
    path(
        "gauntlet/challenges/<int:challenge_id>/abandon/",
        ChallengeAbandonView.as_view(),
        name="gauntlet-challenge-abandon",
    ),
]
