"""Checkout pages.

Two ways to pay:
- Manual: the buyer sends money and submits the transaction ID; an admin
  approves the pending payment later.
- Online: the buyer is redirected to the gateway's hosted payment page and
  comes back to `/payment-success` or `/payment-cancel`.
"""

from typing import Any

import structlog
from litestar import Request, get, post
from litestar.params import Parameter
from litestar.response import Redirect, Template
from litestar.status_codes import HTTP_200_OK, HTTP_303_SEE_OTHER
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import get_current_user, get_redirect_for_unauthenticated
from easy_education.models.course import Course
from easy_education.push.bootstrap import send_local_notification
from easy_education.push.device import DevicePushPlatform
from easy_education.services.dispatcher import get_dispatcher
from easy_education.services.enrollment import CheckoutError, CheckoutForm, submit_checkout
from easy_education.services.notifications import format_amount
from easy_education.services.payment_gateway import PaymentGatewayClient, PaymentGatewayError
from easy_education.services.site_settings import get_settings_document
from easy_education.web.context import get_base_url, page_context

logger = structlog.get_logger()


async def _load_courses(session: AsyncSession, course_ids: list[str]) -> list[Course]:
    if not course_ids:
        return []
    result = await session.execute(select(Course).where(Course.id.in_(course_ids)))
    return list(result.scalars().all())


async def _render_checkout(
    request: Request[Any, Any, Any],
    session: AsyncSession,
    courses: list[Course],
    **extra: Any,
) -> Template:
    payment_settings = await get_settings_document(session, "payment")
    return Template(
        template_name="pages/checkout.html",
        context=await page_context(
            request,
            session,
            courses=courses,
            total=sum(c.price for c in courses),
            instructions=payment_settings.instructions,  # type: ignore[attr-defined]
            **extra,
        ),
    )


@get("/checkout", sync_to_thread=False)
async def checkout_page(
    request: Request[Any, Any, Any],
    session: AsyncSession,
    course_ids: list[str] | None = Parameter(default=None, query="course"),
) -> Template | Redirect:
    """Checkout form for the selected courses."""
    user = await get_current_user(request, session)
    if user is None:
        return get_redirect_for_unauthenticated()

    return await _render_checkout(
        request,
        session,
        await _load_courses(session, course_ids),
        name=user.display_name or "",
        email=user.email or "",
    )


@post("/checkout", sync_to_thread=False, status_code=HTTP_200_OK)
async def checkout_submit(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Redirect:
    """Submit a manual payment for admin approval."""
    user = await get_current_user(request, session)
    if user is None:
        return get_redirect_for_unauthenticated()

    form_data = await request.form()
    form = CheckoutForm(
        name=form_data.get("name", ""),
        email=form_data.get("email", ""),
        sender_number=form_data.get("sender_number", ""),
        transaction_id=form_data.get("transaction_id", ""),
        course_ids=form_data.getall("course_ids", []),
        coupon_code=form_data.get("coupon_code", ""),
    )

    errors = form.validate()
    if not errors:
        try:
            payment = await submit_checkout(session, user, form, get_dispatcher())
        except CheckoutError as e:
            errors = [str(e)]
        except Exception as e:
            await session.rollback()
            logger.error("Checkout failed", user_id=user.id, error=str(e))
            errors = ["Failed to submit payment. Please try again or contact support."]

    if errors:
        return await _render_checkout(
            request,
            session,
            await _load_courses(session, form.course_ids),
            errors=errors,
            name=form.name,
            email=form.email,
            sender_number=form.sender_number,
            transaction_id=form.transaction_id,
        )

    platform = await DevicePushPlatform.for_user(session, user.id)
    await send_local_notification(
        platform,
        "Payment Submitted! 🎉",
        {
            "body": (
                f"Your payment of {format_amount(payment.final_amount)} has been submitted for "
                f"{len(payment.courses)} course(s). You'll be notified once it's approved."
            ),
            "tag": "payment-submitted",
            "requireInteraction": False,
        },
    )

    return Template(
        template_name="pages/checkout_complete.html",
        context=await page_context(request, session, payment=payment),
    )


@post("/checkout/online", sync_to_thread=False, status_code=HTTP_200_OK)
async def checkout_online(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Redirect:
    """Start a gateway payment and send the buyer to the hosted page."""
    user = await get_current_user(request, session)
    if user is None:
        return get_redirect_for_unauthenticated()

    form_data = await request.form()
    course_ids = form_data.getall("course_ids", [])
    courses = await _load_courses(session, course_ids)
    if not courses:
        return await _render_checkout(request, session, [], errors=["Select at least one course"])

    name = form_data.get("name", "") or user.display_name or ""
    email = form_data.get("email", "") or user.email or ""
    total = sum(c.price for c in courses)
    base_url = get_base_url(request)

    try:
        created = await PaymentGatewayClient().create_payment(
            fullname=name,
            email=email,
            amount=total,
            success_url=f"{base_url}/payment-success",
            cancel_url=f"{base_url}/payment-cancel",
            metadata={
                "userId": user.id,
                "fullname": name,
                "email": email,
                "courses": [{"id": c.id, "title": c.title, "price": c.price} for c in courses],
                "subtotal": total,
                "discount": 0,
            },
        )
    except PaymentGatewayError as e:
        logger.error("Online checkout failed", user_id=user.id, error=str(e))
        return await _render_checkout(
            request, session, courses, errors=["Failed to create payment. Please try again."]
        )

    return Redirect(path=created["payment_url"], status_code=HTTP_303_SEE_OTHER)
