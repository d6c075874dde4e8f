"""Payment confirmation pages.

`/payment-success` renders the loading shell immediately; the shell fetches
`/payment-success/verify` with the same query string and swaps in the
result panel. A buyer who navigates away before verification finishes just
never sees the fragment.
"""

from typing import Any
from urllib.parse import quote

from litestar import Request, get
from litestar.response import Redirect, Response, Template
from litestar.status_codes import HTTP_303_SEE_OTHER
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import current_user_id
from easy_education.push.device import DevicePushPlatform
from easy_education.services.dispatcher import get_dispatcher
from easy_education.services.enrollment import EnrollmentService
from easy_education.services.payment_confirmation import (
    PaymentConfirmation,
    RedirectParams,
)
from easy_education.web.context import page_context


def _login_path(request: Request[Any, Any, Any]) -> str:
    target = "/payment-success"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return f"/login?next={quote(target)}"


@get("/payment-success", sync_to_thread=False)
async def payment_success(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Redirect:
    """Loading shell for the confirmation page.

    Signed-out buyers are sent to login before anything is verified.
    """
    if not current_user_id(request):
        return Redirect(path=_login_path(request), status_code=HTTP_303_SEE_OTHER)

    return Template(
        template_name="payment/success.html",
        context=await page_context(request, session, query_string=request.url.query),
    )


@get("/payment-success/verify", sync_to_thread=False)
async def payment_verify(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Response[str]:
    """Verify the redirected payment and render the result panel."""
    user_id = current_user_id(request)
    if not user_id:
        return Response(content="", headers={"HX-Redirect": _login_path(request)})

    service = EnrollmentService(session, dispatcher=get_dispatcher())

    async def verifier(invoice_id: str, transaction_id: str, uid: str) -> dict[str, Any]:
        response = await service.process_enrollment(invoice_id, transaction_id, uid)
        return response.to_body()

    confirmation = PaymentConfirmation()
    await confirmation.run(
        RedirectParams.from_query(request.query_params),
        user_id,
        verifier,
        platform=await DevicePushPlatform.for_user(session, user_id),
    )

    return Template(
        template_name="payment/result.html",
        context={"confirmation": confirmation},
    )


@get("/payment-cancel", sync_to_thread=False)
async def payment_cancel(request: Request[Any, Any, Any], session: AsyncSession) -> Template:
    return Template(
        template_name="payment/cancel.html",
        context=await page_context(request, session),
    )
