"""Public pages and course enrollment."""

from typing import Any

import structlog
from litestar import Request, get, post
from litestar.exceptions import NotFoundException
from litestar.response import Redirect, Template
from litestar.status_codes import HTTP_200_OK, HTTP_303_SEE_OTHER
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import get_current_user
from easy_education.models.course import Course
from easy_education.services.dispatcher import get_dispatcher
from easy_education.services.enrollment import enroll_in_free_course, purchased_course_ids
from easy_education.services.site_settings import get_settings_document, load_feature_flag
from easy_education.web.context import page_context

logger = structlog.get_logger()


@get("/", sync_to_thread=False)
async def home(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    """Landing page with the newest courses."""
    result = await session.execute(select(Course).order_by(Course.created_at.desc()).limit(6))
    general = await get_settings_document(session, "general")
    return Template(
        template_name="pages/home.html",
        context=await page_context(
            request, session, courses=result.scalars().all(), general=general
        ),
    )


@get("/courses", sync_to_thread=False)
async def courses_page(
    request: Request[Any, Any, Any], session: AsyncSession, search: str = ""
) -> Template:
    """Course catalog, optionally filtered by a search query."""
    stmt = select(Course).order_by(Course.title)
    query = search.strip()
    if query:
        pattern = f"%{query}%"
        stmt = stmt.where(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))
    result = await session.execute(stmt)

    enrolled: set[str] = set()
    user = await get_current_user(request, session)
    if user:
        enrolled, _ = await purchased_course_ids(session, user.id)

    return Template(
        template_name="pages/courses.html",
        context=await page_context(
            request,
            session,
            courses=result.scalars().all(),
            search=query,
            enrolled=enrolled,
        ),
    )


@get("/announcements", sync_to_thread=False)
async def announcements_page(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    return Template(
        template_name="pages/announcements.html",
        context=await page_context(request, session),
    )


@get("/community", sync_to_thread=False)
async def community_page(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    """Community page; hidden entirely while the feature is switched off.

    Raises:
        NotFoundException: If the community feature is disabled
    """
    if not await load_feature_flag(session, "communityEnabled"):
        raise NotFoundException("Community is not available")
    return Template(
        template_name="pages/community.html",
        context=await page_context(request, session),
    )


@post("/courses/{course_id:str}/enroll-free", sync_to_thread=False, status_code=HTTP_200_OK)
async def enroll_free(
    request: Request[Any, Any, Any], session: AsyncSession, course_id: str
) -> Template | Redirect:
    """Enroll the signed-in user in a free course (HTMX)."""
    user = await get_current_user(request, session)
    if user is None:
        return Redirect(path="/login?next=/courses", status_code=HTTP_303_SEE_OTHER)

    course = await session.get(Course, course_id)
    if course is None:
        raise NotFoundException("Course not found")
    if not course.is_free:
        return Template(
            template_name="partials/enroll_result.html",
            context={"success": False, "message": "This course is not free"},
        )

    success, message = await enroll_in_free_course(session, user, course, get_dispatcher())
    logger.info("Free enrollment", course_id=course_id, user_id=user.id, success=success)
    return Template(
        template_name="partials/enroll_result.html",
        context={"success": success, "message": message},
    )
