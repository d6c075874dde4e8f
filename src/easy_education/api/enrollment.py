"""Payment and enrollment endpoints."""

from typing import Any

import structlog
from litestar import Request, Router, post
from litestar.response import Response
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import current_user_id, require_login
from easy_education.services.dispatcher import get_dispatcher
from easy_education.services.enrollment import EnrollmentService
from easy_education.services.payment_gateway import PaymentGatewayClient, PaymentGatewayError
from easy_education.web.context import get_base_url

logger = structlog.get_logger()


class ProcessEnrollmentRequest(BaseModel):
    """Request body for verifying a payment and enrolling its buyer."""

    invoice_id: str | None = Field(default=None, alias="invoiceId")
    order_id: str | None = None
    transaction_id: str | None = None
    user_id: str | None = Field(default=None, alias="userId")

    model_config = {"populate_by_name": True}


class CreatePaymentRequest(BaseModel):
    """Request body for starting a gateway payment."""

    fullname: str
    email: str
    amount: float = Field(gt=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


@post("/process-enrollment", status_code=HTTP_200_OK)
async def process_enrollment(
    session: AsyncSession, data: ProcessEnrollmentRequest
) -> Response[dict[str, Any]]:
    """Verify a gateway payment and enroll the user it belongs to."""
    service = EnrollmentService(session, dispatcher=get_dispatcher())
    result = await service.process_enrollment(
        data.invoice_id or data.order_id,
        data.transaction_id,
        data.user_id,
    )
    return Response(content=result.to_body(), status_code=result.status_code)


@post("/create-payment", status_code=HTTP_200_OK, guards=[require_login])
async def create_payment(
    request: Request[Any, Any, Any], data: CreatePaymentRequest
) -> Response[dict[str, Any]]:
    """Create a hosted gateway payment for the signed-in user.

    The buyer's uid is always taken from the session, so the enrollment
    check after payment matches the account that paid.
    """
    metadata = {**data.metadata, "userId": current_user_id(request)}
    metadata.setdefault("fullname", data.fullname)
    metadata.setdefault("email", data.email)
    base_url = get_base_url(request)

    try:
        created = await PaymentGatewayClient().create_payment(
            fullname=data.fullname,
            email=data.email,
            amount=data.amount,
            success_url=f"{base_url}/payment-success",
            cancel_url=f"{base_url}/payment-cancel",
            metadata=metadata,
        )
    except PaymentGatewayError as e:
        logger.error("Create payment failed", error=str(e))
        return Response(
            content={"success": False, "error": str(e)},
            status_code=HTTP_400_BAD_REQUEST,
        )

    return Response(
        content={
            "success": True,
            "payment_url": created["payment_url"],
            "order_id": created.get("order_id"),
        }
    )


@post("/payment-webhook", status_code=HTTP_200_OK)
async def payment_webhook(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Response[dict[str, Any]]:
    """Gateway callback. Payments are re-verified before anything is recorded."""
    try:
        event = await request.json()
    except Exception:
        return Response(
            content={"success": False, "error": "Invalid JSON body"},
            status_code=HTTP_400_BAD_REQUEST,
        )
    if not isinstance(event, dict):
        return Response(
            content={"success": False, "error": "Invalid webhook payload"},
            status_code=HTTP_400_BAD_REQUEST,
        )

    service = EnrollmentService(session, dispatcher=get_dispatcher())
    try:
        result = await service.handle_webhook(event)
    except PaymentGatewayError as e:
        logger.error("Webhook verification failed", error=str(e))
        return Response(
            content={"success": False, "error": "Payment verification failed"},
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        )

    status_code = HTTP_200_OK if result.get("success") else HTTP_500_INTERNAL_SERVER_ERROR
    return Response(content=result, status_code=status_code)


enrollment_router = Router(
    path="/api",
    route_handlers=[process_enrollment, create_payment, payment_webhook],
    tags=["Payments"],
)
