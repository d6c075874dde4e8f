"""Header UI endpoints (HTMX).

Each endpoint loads the visitor's header state from the session, applies one
action and re-renders the header partial. The partial carries the scroll
lock state; base.html mirrors it onto `<body>` after every swap.
"""

from typing import Any

from litestar import Request, get, post
from litestar.response import Redirect, Response, Template
from litestar.status_codes import HTTP_303_SEE_OTHER
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.services.header import HeaderState
from easy_education.web.context import header_context, load_header_state, store_header_state


async def _render(
    request: Request[Any, Any, Any], session: AsyncSession, header: HeaderState
) -> Template:
    store_header_state(request, header)
    return Template(
        template_name="partials/header.html",
        context=await header_context(request, session, header),
    )


@post("/ui/sidebar/open", sync_to_thread=False)
async def open_sidebar(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    header = load_header_state(request)
    header.open_sidebar()
    return await _render(request, session, header)


@post("/ui/sidebar/close", sync_to_thread=False)
async def close_sidebar(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    """Close button, overlay click and sidebar link clicks all land here."""
    header = load_header_state(request)
    header.close_sidebar()
    return await _render(request, session, header)


@post("/ui/search/toggle", sync_to_thread=False)
async def toggle_search(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    header = load_header_state(request)
    header.toggle_search()
    return await _render(request, session, header)


@post("/ui/search/outside", sync_to_thread=False)
async def search_pointer_outside(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template:
    """A pointer press outside the open search box.

    The listener is only attached while the box is open.
    """
    header = load_header_state(request)
    header.pointer_down(inside_search=False)
    return await _render(request, session, header)


@get("/search", sync_to_thread=False)
async def submit_search(
    request: Request[Any, Any, Any], session: AsyncSession, q: str = ""
) -> Template | Response[str] | Redirect:
    """Submit the header search box.

    A blank query leaves the box open and navigates nowhere.
    """
    header = load_header_state(request)
    target = header.submit_search(q)
    if target is None:
        header.search_open = True
        return await _render(request, session, header)

    store_header_state(request, header)
    if request.headers.get("HX-Request"):
        return Response(content="", headers={"HX-Redirect": target})
    return Redirect(path=target, status_code=HTTP_303_SEE_OTHER)
