"""
Bill endpoints (staff): ledger, detail, manual correction, payments and refunds.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import get_notification_service, get_payment_service, staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import PaymentStatus, User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    BillDetail,
    BillRefund,
    BillResponse,
    BillUpdate,
    PaymentCreate,
    PaymentResponse,
)
from restaurant_pos.services import billing
from restaurant_pos.services.notifications.base import BaseNotificationService
from restaurant_pos.services.payment.base import BasePaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bills", tags=["Bills"])


@router.get("", summary="Bills Page")
async def index(
    request: Request,
    payment_status: Optional[PaymentStatus] = Query(None),
    page: int = Query(1, ge=1),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Bills of the caller's orders, newest first."""
    rows, pagination = await billing.list_bills(db, payment_status, owner=user, page=page)
    return await render_page(request, db, user, "Bills/Index", {
        "bills": [BillResponse.model_validate(b) for b in rows],
        "pagination": pagination,
        "filters": {"payment_status": payment_status},
        "payment_statuses": [s.value for s in PaymentStatus],
    })


@router.get("/{bill_id}")
async def show(
    bill_id: int,
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    bill = await billing.load_bill(db, bill_id)
    payments = await billing.order_payments(db, bill.order_id)
    return await render_page(request, db, user, "Bills/Show", {
        "bill": BillDetail.model_validate(bill),
        "payments": [PaymentResponse.model_validate(p) for p in payments],
    })


@router.put("/{bill_id}")
async def update(
    bill_id: int,
    data: BillUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> dict[str, Any]:
    bill = await billing.update_bill(db, bill_id, data, notifier)
    return action_result("Bill updated successfully", bill=BillResponse.model_validate(bill))


@router.post("/{bill_id}/payment")
async def pay(
    bill_id: int,
    data: PaymentCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> dict[str, Any]:
    """
    Take a payment against a bill.

    Card payments need a terminal token and are charged before anything
    is recorded; a declined card leaves the bill untouched (422).
    """
    bill, payment, points = await billing.record_payment(db, bill_id, data, user, payment_service, notifier)
    message = "Bill paid in full" if bill.payment_status == PaymentStatus.PAID else "Partial payment recorded"
    return action_result(
        message,
        bill=BillResponse.model_validate(bill),
        payment=PaymentResponse.model_validate(payment),
        points_earned=points,
    )


@router.post("/{bill_id}/refund")
async def refund(
    bill_id: int,
    data: BillRefund,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """Refund a paid or part-paid bill. Card charges are reversed through the provider."""
    bill, payments = await billing.refund_bill(db, bill_id, data.reason, user, payment_service)
    return action_result(
        "Bill refunded",
        bill=BillResponse.model_validate(bill),
        payments=[PaymentResponse.model_validate(p) for p in payments],
    )
