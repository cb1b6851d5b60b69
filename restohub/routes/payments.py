"""
Payment Routes
==============

Endpoints:
----------
- POST /api/payments/intent   : Stub payment intent for one of the caller's orders
- POST /api/payments/intents  : Alias
- POST /api/payments/webhook  : Provider callback, HMAC-SHA256 signed

Webhook:
--------
The signature arrives in X-Signature as a hex or base64 HMAC-SHA256 of the
raw request body, keyed with WEBHOOK_SECRET. The webhook carries no bearer
token and no tenant header; the order id in data.order_id identifies the
order.

    {"type": "payment.succeeded", "data": {"order_id": "<uuid>"}}

Unknown event types are acknowledged and ignored.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from restohub.core.config import get_settings
from restohub.database import get_db
from restohub.errors import BadRequestError, NotFoundError, problem_body
from restohub.models import PaymentStatus
from restohub.routes.deps import Principal, RateLimit, get_current_user, get_tenant_id
from restohub.schemas import ErrorResponse, PaymentIntentCreate, PaymentIntentResponse, WebhookAck
from restohub.services import orders as order_service
from restohub.services.audit import AuditLogWriter, get_audit_writer
from restohub.services.payment import PAYMENT_SUCCEEDED, get_payment_service

logger = logging.getLogger(__name__)

# Capacity comes from the tenant's limits.intentsPerMin.
intents_limit = RateLimit(max_requests=None, window_ms=60_000)

payments_router = APIRouter(prefix="/api/payments", tags=["Payments"])


async def _create_intent(
    payload: PaymentIntentCreate,
    user: Principal,
    tenant_id: str,
    db: AsyncSession,
    audit: AuditLogWriter,
) -> PaymentIntentResponse:
    order_id = str(payload.order_id)
    order = await order_service.get_order(db, tenant_id, order_id, user.sub)

    if order.payment_status == PaymentStatus.PAID.value:
        raise BadRequestError("Already paid")

    intent = await get_payment_service().create_payment_intent(
        order.order_id, order.total, order.currency_code
    )

    await audit.write(
        tenant_id,
        user.sub,
        "order",
        order.order_id,
        "payment_intent_created",
        {"amount": str(order.total), "currency": order.currency_code, "provider": intent.provider},
    )
    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        amount=intent.amount,
        currency=intent.currency,
    )


_intent_responses = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
}


@payments_router.post(
    "/intent",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(intents_limit)],
    responses=_intent_responses,
    summary="Create Payment Intent",
)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> PaymentIntentResponse:
    return await _create_intent(payload, user, tenant_id, db, audit)


@payments_router.post(
    "/intents",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(intents_limit)],
    responses=_intent_responses,
    include_in_schema=False,
)
async def create_payment_intent_alias(
    payload: PaymentIntentCreate,
    user: Principal = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
) -> PaymentIntentResponse:
    return await _create_intent(payload, user, tenant_id, db, audit)


@payments_router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Payment Provider Webhook",
)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    """
    Apply a signed provider event.

    payment.succeeded marks the order paid (payment and order status),
    whatever its current state. Replays leave the same final state.
    """
    body = await request.body()
    event = get_payment_service().parse_webhook(
        body,
        request.headers.get("x-signature"),
        get_settings().webhook_secret,
    )
    if event is None:
        raise BadRequestError("Invalid signature")
    if not event.order_id:
        raise BadRequestError("Missing data.order_id")

    logger.info(f"Webhook received: {event.type} for order {event.order_id}")

    try:
        if event.type == PAYMENT_SUCCEEDED:
            order = await order_service.mark_paid(db, str(event.order_id))
            if order is None:
                raise NotFoundError("Order not found")

            await audit.write(
                order.tenant_id,
                order.user_id,
                "order",
                order.order_id,
                "payment_succeeded",
                {"payment_status": order.payment_status, "order_status": order.order_status},
            )
        else:
            logger.info(f"Webhook event {event.type} acknowledged without action")
    except NotFoundError:
        raise
    except Exception as e:
        logger.exception(f"Webhook processing failed for order {event.order_id}: {e}")
        return JSONResponse(
            status_code=500,
            content=problem_body(500, "Internal Server Error", "Webhook processing failed"),
        )

    return WebhookAck(received=True)
