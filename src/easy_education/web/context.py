"""Shared template context for full pages and header fragments."""

from typing import Any

from litestar import Request
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import get_current_user
from easy_education.core.config import settings
from easy_education.services.header import HeaderState, nav_links
from easy_education.services.site_settings import load_feature_flag
from easy_education.services.theme import ThemeStore

HEADER_SESSION_KEY = "header"


def get_csrf_token(request: Request[Any, Any, Any]) -> str | None:
    """Get CSRF token for template forms.

    The CSRF middleware stores the token in the csrf_token cookie.
    """
    return request.cookies.get("csrf_token")


def get_base_url(request: Request[Any, Any, Any]) -> str:
    """Get the public base URL for gateway redirects.

    Priority:
    1. BASE_URL environment variable (production)
    2. Auto-detect from request headers (development)
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")

    proto = request.headers.get("X-Forwarded-Proto", "http")
    host = request.headers.get("X-Forwarded-Host") or request.headers.get("Host", "localhost:8000")
    return f"{proto}://{host}"


def load_header_state(request: Request[Any, Any, Any]) -> HeaderState:
    return HeaderState.from_dict(request.session.get(HEADER_SESSION_KEY))


def store_header_state(request: Request[Any, Any, Any], header: HeaderState) -> None:
    request.session[HEADER_SESSION_KEY] = header.to_dict()


async def header_context(
    request: Request[Any, Any, Any], session: AsyncSession, header: HeaderState
) -> dict[str, Any]:
    """Context for the header partial."""
    community_enabled = await load_feature_flag(session, "communityEnabled")
    return {
        "header": header,
        "nav_links": nav_links(community_enabled),
        "current_path": request.url.path,
        "csrf_token": get_csrf_token(request),
    }


async def page_context(
    request: Request[Any, Any, Any], session: AsyncSession, **extra: Any
) -> dict[str, Any]:
    """Context for a full page render.

    A full render replaces the previous header instance, so its state is
    unmounted first (sidebar closed, scroll lock released).
    """
    header = load_header_state(request)
    header.unmount()
    store_header_state(request, header)

    context = await header_context(request, session, header)
    context.update(
        theme=ThemeStore(dict(request.cookies)).get_theme().value,
        current_user=await get_current_user(request, session),
        firebase_config={
            "apiKey": settings.firebase_api_key,
            "projectId": settings.firebase_project_id,
            "messagingSenderId": settings.firebase_sender_id,
            "vapidKey": settings.fcm_vapid_key,
        },
    )
    context.update(extra)
    return context
