"""Sign-in and sign-out."""

from typing import Any

import structlog
from litestar import Request, get, post
from litestar.exceptions import NotAuthorizedException
from litestar.params import Parameter
from litestar.response import Redirect, Template
from litestar.status_codes import HTTP_200_OK, HTTP_303_SEE_OTHER
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import (
    is_authenticated,
    login_user,
    logout_user,
    sync_user_from_claims,
)
from easy_education.core.firebase import verify_id_token
from easy_education.web.context import page_context

logger = structlog.get_logger()


class SessionRequest(BaseModel):
    """Request body for exchanging a Firebase ID token for a session."""

    id_token: str = Field(alias="idToken", min_length=1)


@get("/login", sync_to_thread=False)
async def login_page(
    request: Request[Any, Any, Any],
    session: AsyncSession,
    next_path: str = Parameter(default="/", query="next"),
) -> Template | Redirect:
    """Show the Firebase sign-in page."""
    if is_authenticated(request):
        return Redirect(path="/", status_code=HTTP_303_SEE_OTHER)

    if not next_path.startswith("/") or next_path.startswith("//"):
        next_path = "/"
    return Template(
        template_name="pages/login.html",
        context=await page_context(request, session, next=next_path),
    )


@post("/auth/session", sync_to_thread=False, status_code=HTTP_200_OK)
async def create_session(
    request: Request[Any, Any, Any], session: AsyncSession, data: SessionRequest
) -> dict[str, Any]:
    """Verify a Firebase ID token and sign the user in.

    Raises:
        NotAuthorizedException: If the token does not verify
    """
    try:
        claims = verify_id_token(data.id_token)
    except ValueError as e:
        logger.warning("ID token rejected", error=str(e))
        raise NotAuthorizedException(detail="Invalid or expired sign-in token") from e

    user = await sync_user_from_claims(session, claims)
    login_user(request, user)
    logger.info("User signed in", user_id=user.id, role=user.role)
    return {"success": True, "userId": user.id, "role": user.role}


@post("/auth/logout", sync_to_thread=False, status_code=HTTP_303_SEE_OTHER)
async def logout(request: Request[Any, Any, Any]) -> Redirect:
    """Clear the session and go home."""
    logout_user(request)
    return Redirect(path="/", status_code=HTTP_303_SEE_OTHER)
