from django.urls import re_path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

urlpatterns = [
    re_path(r"^login/?$", TokenObtainPairView.as_view(), name="auth-login"),
    re_path(r"^refresh/?$", TokenRefreshView.as_view(), name="auth-refresh"),
]
