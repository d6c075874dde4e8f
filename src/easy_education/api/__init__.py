"""API routes."""

from easy_education.api.enrollment import enrollment_router
from easy_education.api.health import health_router
from easy_education.api.manifest import manifest_router
from easy_education.api.media import media_router
from easy_education.api.notifications import notifications_router
from easy_education.api.push import push_router

# - health_router: /health - no auth needed
# - enrollment_router: /api/* payment endpoints (webhook and verification are open)
# - notifications_router: /api/send-* - internal token or admin session
# - media_router, push_router: signed-in users
api_routers = [
    health_router,
    enrollment_router,
    notifications_router,
    media_router,
    manifest_router,
    push_router,
]

__all__ = ["api_routers"]
