from django.urls import include, path

urlpatterns = [
    path("auth/", include("apps.users.urls")),
    path("", include("apps.payments.urls")),
    path("", include("apps.contributions.urls")),
    path("", include("apps.payables.urls")),
    path("", include("apps.gauntlet.urls")),
]
