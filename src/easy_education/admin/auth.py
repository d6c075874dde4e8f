"""Admin access checks.

Admin pages re-read the role from the database on every request, so a
demotion takes effect immediately rather than at the next sign-in.
"""

from typing import Any

from litestar.connection import ASGIConnection
from litestar.exceptions import PermissionDeniedException
from litestar.response import Redirect
from litestar.status_codes import HTTP_303_SEE_OTHER
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import get_current_user
from easy_education.models.user import User


async def get_admin(
    connection: ASGIConnection[Any, Any, Any, Any], session: AsyncSession
) -> User | Redirect:
    """Resolve the signed-in admin.

    Returns:
        The admin user, or a redirect to login for anonymous visitors

    Raises:
        PermissionDeniedException: If the signed-in user is not an admin
    """
    user = await get_current_user(connection, session)
    if user is None:
        return Redirect(path=f"/login?next={connection.url.path}", status_code=HTTP_303_SEE_OTHER)
    if not user.is_admin:
        raise PermissionDeniedException(detail="Admin access required")
    return user
