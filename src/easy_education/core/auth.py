"""Session authentication.

Security model:
- Identity comes from Firebase Auth. The browser signs in with the Firebase
  JS SDK and posts its ID token to `/auth/session` once.
- The verified uid is kept in a server-side session (not a JWT), like the
  rest of the per-visitor state.
- Roles live in our own `users` table; `promote-admin` grants the admin role.
"""

from typing import Any

from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException, PermissionDeniedException
from litestar.handlers import BaseRouteHandler
from litestar.response import Redirect
from litestar.status_codes import HTTP_303_SEE_OTHER
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.config import settings
from easy_education.models.user import User, UserRole

SESSION_USER_KEY = "user_id"
INTERNAL_TOKEN_HEADER = "X-Internal-Token"


def current_user_id(connection: ASGIConnection[Any, Any, Any, Any]) -> str | None:
    """Get the signed-in user's uid from the session."""
    return connection.session.get(SESSION_USER_KEY)


def is_authenticated(connection: ASGIConnection[Any, Any, Any, Any]) -> bool:
    """Check if the current request has a signed-in session."""
    return current_user_id(connection) is not None


async def get_current_user(
    connection: ASGIConnection[Any, Any, Any, Any], session: AsyncSession
) -> User | None:
    """Load the signed-in user, if any."""
    user_id = current_user_id(connection)
    if not user_id:
        return None
    return await session.get(User, user_id)


async def sync_user_from_claims(session: AsyncSession, claims: dict[str, Any]) -> User:
    """Create or refresh the user row for verified Firebase ID token claims.

    The role is never taken from the token; it only changes through
    `promote-admin`.
    """
    uid = claims["uid"]
    user = await session.get(User, uid)
    if user is None:
        user = User(id=uid, role=UserRole.STUDENT.value)
        session.add(user)
    user.email = claims.get("email") or user.email
    user.display_name = claims.get("name") or user.display_name
    await session.commit()
    return user


def login_user(connection: ASGIConnection[Any, Any, Any, Any], user: User) -> None:
    """Set up the authenticated session.

    The admin flag is a snapshot used by JSON guards; admin pages re-check
    the role in the database.
    """
    connection.session[SESSION_USER_KEY] = user.id
    connection.session["is_admin"] = user.is_admin


def logout_user(connection: ASGIConnection[Any, Any, Any, Any]) -> None:
    """Clear the session."""
    connection.session.clear()


def get_redirect_for_unauthenticated() -> Redirect:
    """Get redirect response to the login page."""
    return Redirect(path="/login", status_code=HTTP_303_SEE_OTHER)


async def require_login(
    connection: ASGIConnection[Any, Any, Any, Any], _: BaseRouteHandler
) -> None:
    """Guard for JSON endpoints that need a signed-in user.

    Raises:
        NotAuthorizedException: If there is no session
    """
    if not is_authenticated(connection):
        raise NotAuthorizedException(detail="Authentication required")


def is_internal_request(connection: ASGIConnection[Any, Any, Any, Any]) -> bool:
    """Check if the request carries the server's own internal token.

    The notification dispatcher calls the fan-out endpoint with it.
    """
    token = connection.headers.get(INTERNAL_TOKEN_HEADER)
    return bool(token) and token == settings.get_session_secret()


async def require_internal_or_admin(
    connection: ASGIConnection[Any, Any, Any, Any], _: BaseRouteHandler
) -> None:
    """Guard for endpoints the server calls on itself, also open to admins.

    Raises:
        NotAuthorizedException: Anonymous caller without the internal token
        PermissionDeniedException: Signed-in non-admin
    """
    if is_internal_request(connection):
        return

    user_id = current_user_id(connection)
    if not user_id:
        raise NotAuthorizedException(detail="Authentication required")

    if not connection.session.get("is_admin"):
        raise PermissionDeniedException(detail="Admin access required")
