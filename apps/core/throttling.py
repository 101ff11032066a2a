from __future__ import annotations

from rest_framework.throttling import ScopedRateThrottle


class ScopedUserRateThrottle(ScopedRateThrottle):
    """
    Per-user scoped rate limit (requires view.throttle_scope).
    """

    def get_cache_key(self, request, view) -> str | None:  # type: ignore[override]
        scope = getattr(view, "throttle_scope", None)
        if not scope or not getattr(request.user, "is_authenticated", False):
            return None
        self.scope = f"user:{scope}"
        ident = request.user.pk
        return self.cache_format % {"scope": self.scope, "ident": ident}
