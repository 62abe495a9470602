"""Payment endpoints backed by Paystack."""

import json

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from analytics.services.api_server.config import Settings, get_settings
from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import User
from analytics.services.api_server.payments import (
    LineItem,
    PaymentService,
    get_payment_service,
    verify_signature,
)
from analytics.services.api_server.repositories import PurchaseRepository
from analytics.services.api_server.schemas import (
    InitializePaymentRequest,
    RefundRequest,
    envelope,
    purchase_to_dict,
)
from analytics.services.api_server.security import get_current_user, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/initialize", status_code=status.HTTP_201_CREATED)
def initialize_payment(
    request: InitializePaymentRequest,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    items = [LineItem(**item.model_dump()) for item in request.items]
    purchase, gateway = service.initialize(
        user,
        items,
        currency=request.currency,
        payment_method=request.payment_method,
        metadata=request.metadata,
    )
    return envelope(
        "Payment initialized successfully",
        {
            "purchase": purchase_to_dict(purchase),
            "authorization_url": gateway.get("authorization_url"),
            "access_code": gateway.get("access_code"),
            "reference": purchase.paystack_reference,
        },
    )


@router.get("/verify/{reference}")
def verify_payment(
    reference: str,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    purchase = service.get_by_reference(reference)
    if purchase.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")

    purchase, gateway = service.verify(reference)
    return envelope(
        "Payment verified",
        {"purchase": purchase_to_dict(purchase), "gateway_status": gateway.get("status")},
    )


@router.get("/history")
def payment_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    purchases, total = PurchaseRepository(session).history_for_user(
        user.id, limit=limit, offset=(page - 1) * limit
    )
    return envelope(
        "Payment history retrieved",
        {
            "purchases": [purchase_to_dict(p) for p in purchases],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        },
    )


@router.post("/refund")
def refund_payment(
    request: RefundRequest,
    admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    purchase, _gateway = service.refund(request.reference, request.amount)
    logger.info("payment_refunded", purchase_id=purchase.id, by=admin.id)
    return envelope("Refund processed successfully", {"purchase": purchase_to_dict(purchase)})


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    service: PaymentService = Depends(get_payment_service),
):
    body = await request.body()
    if not verify_signature(
        settings.paystack_secret_key, body, request.headers.get("x-paystack-signature")
    ):
        logger.warning("webhook_signature_invalid")
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Malformed webhook payload") from None

    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Malformed webhook payload")

    # Blocking database work stays off the event loop
    purchase = await run_in_threadpool(service.handle_webhook, event)
    return envelope(
        "Webhook processed",
        {"purchase_id": purchase.id if purchase is not None else None},
    )
