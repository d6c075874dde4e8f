"""Theme toggle endpoint."""

from typing import Any
from urllib.parse import urlparse

from litestar import Request, post
from litestar.datastructures import Cookie
from litestar.response import Redirect
from litestar.status_codes import HTTP_303_SEE_OTHER

from easy_education.services.theme import THEME_COOKIE_MAX_AGE, THEME_STORAGE_KEY, ThemeStore


def _local_referer(request: Request[Any, Any, Any]) -> str:
    """Path of the referring page, never an external URL."""
    referer = urlparse(request.headers.get("Referer", ""))
    if not referer.path.startswith("/"):
        return "/"
    return f"{referer.path}?{referer.query}" if referer.query else referer.path


@post("/theme/toggle", sync_to_thread=False, status_code=HTTP_303_SEE_OTHER)
async def toggle_theme(request: Request[Any, Any, Any]) -> Redirect:
    """Flip the theme cookie and go back to the page the toggle was on."""
    store = ThemeStore(dict(request.cookies))
    theme = store.toggle_theme()
    return Redirect(
        path=_local_referer(request),
        status_code=HTTP_303_SEE_OTHER,
        cookies=[
            Cookie(
                key=THEME_STORAGE_KEY,
                value=theme.value,
                max_age=THEME_COOKIE_MAX_AGE,
                path="/",
                samesite="lax",
            )
        ],
    )
