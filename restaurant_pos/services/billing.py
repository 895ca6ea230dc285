"""
Billing Service

Bills are generated once per order from its stored totals plus the
service charge. Payments settle a bill in one or more instalments; card
instalments are charged through the payment service before anything is
recorded.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from restaurant_pos.core.money import CENT, ZERO, format_money, to_money
from restaurant_pos.models import (
    Bill,
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentRecordStatus,
    PaymentStatus,
    User,
)
from restaurant_pos.services import alerts, loyalty
from restaurant_pos.services.notifications.base import BaseNotificationService
from restaurant_pos.services.orders import generate_number, load_order, owned_by
from restaurant_pos.services.pagination import paginate
from restaurant_pos.services.payment.base import BasePaymentService

logger = logging.getLogger(__name__)


async def load_bill(db: AsyncSession, bill_id: int) -> Bill:
    # Order.bill closes a loader cycle, so it has to be requested explicitly
    result = await db.execute(
        select(Bill)
        .where(Bill.id == bill_id)
        .options(selectinload(Bill.order).selectinload(Order.bill))
        .execution_options(populate_existing=True)
    )
    bill = result.scalar_one_or_none()
    if bill is None:
        raise NotFoundError("Bill", bill_id)
    return bill


async def list_bills(
    db: AsyncSession,
    payment_status: Optional[PaymentStatus] = None,
    owner: Optional[User] = None,
    page: int = 1,
    per_page: Optional[int] = None,
):
    stmt = select(Bill)
    if payment_status is not None:
        stmt = stmt.where(Bill.payment_status == payment_status)
    if owner is not None:
        stmt = stmt.join(Order, Bill.order_id == Order.id).where(owned_by(owner))
    stmt = stmt.order_by(Bill.bill_time.desc(), Bill.id.desc())
    return await paginate(db, stmt, page, per_page or get_settings().page_size)


async def order_payments(db: AsyncSession, order_id: int) -> list[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.order_id == order_id).order_by(Payment.created_at, Payment.id)
    )
    return list(result.scalars().all())


async def collected_for_order(db: AsyncSession, order_id: int) -> Decimal:
    """Sum of completed payments taken against an order."""
    total = await db.scalar(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.order_id == order_id,
            Payment.status == PaymentRecordStatus.COMPLETED,
        )
    )
    return to_money(total)


# =============================================================================
# GENERATION
# =============================================================================

async def generate_bill(db: AsyncSession, order_id: int) -> Bill:
    settings = get_settings()
    order = await load_order(db, order_id)

    if order.bill is not None:
        raise ConflictError(f"Bill already exists for order {order.order_number}")
    if order.status == OrderStatus.CANCELLED:
        raise BusinessRuleError("Cannot bill a cancelled order")
    if not order.items:
        raise BusinessRuleError("Cannot bill an empty order")

    subtotal = to_money(order.subtotal)
    tax = to_money(order.tax_amount)
    discount = to_money(order.discount_amount)
    service_charge = to_money(subtotal * Decimal(str(settings.service_charge_rate)))

    bill = Bill(
        order=order,
        order_id=order.id,
        table=order.table,
        table_id=order.table_id,
        bill_number=await generate_number(db, Bill.bill_number, settings.bill_number_prefix),
        subtotal=subtotal,
        tax_amount=tax,
        service_charge=service_charge,
        discount_amount=discount,
        total_amount=to_money(subtotal + tax + service_charge - discount),
        payment_status=PaymentStatus.PENDING,
        paid_amount=ZERO,
        bill_time=datetime.now(),
    )
    db.add(bill)
    await db.flush()

    alerts.notify_payment_request(db, order, bill.bill_number)
    await db.commit()

    logger.info(f"Bill {bill.bill_number} generated for {order.order_number}: {bill.total_amount}")
    return await load_bill(db, bill.id)


# =============================================================================
# SETTLEMENT
# =============================================================================

def _settle(bill: Bill) -> bool:
    """Derive the payment status from ``paid_amount``; True when it just became paid."""
    was_paid = bill.payment_status == PaymentStatus.PAID
    if Decimal(bill.paid_amount) >= Decimal(bill.total_amount):
        bill.payment_status = PaymentStatus.PAID
        if bill.paid_time is None:
            bill.paid_time = datetime.now()
    elif Decimal(bill.paid_amount) > 0:
        bill.payment_status = PaymentStatus.PARTIAL
    return bill.payment_status == PaymentStatus.PAID and not was_paid


async def _award_points(db: AsyncSession, bill: Bill) -> int:
    customer_id = bill.order.customer_id if bill.order else None
    if customer_id is None:
        return 0
    return await loyalty.award_for_bill(db, customer_id, bill.total_amount)


async def send_receipt(notifier: Optional[BaseNotificationService], bill: Bill, points: int = 0) -> None:
    """Receipt to the order's customer account, or the walk-in guest's phone."""
    order = bill.order
    if notifier is None or order is None:
        return
    customer = order.customer
    name = customer.name if customer else order.customer_name
    email = customer.email if customer else None
    phone = (customer.phone if customer else None) or order.customer_phone
    if not (email or phone):
        return

    result = await notifier.send_receipt(
        customer_name=name or "Guest",
        customer_email=email,
        customer_phone=phone,
        bill_number=bill.bill_number,
        total_amount=bill.total_amount,
        points_earned=points,
    )
    if not result.success:
        logger.warning(f"Receipt for {bill.bill_number} not delivered: {result.error_message}")


async def update_bill(db: AsyncSession, bill_id: int, data, notifier: Optional[BaseNotificationService] = None) -> Bill:
    """Manual correction of a bill's settlement fields."""
    bill = await load_bill(db, bill_id)
    was_paid = bill.payment_status == PaymentStatus.PAID

    bill.payment_status = data.payment_status
    if data.payment_method is not None:
        bill.payment_method = data.payment_method
    bill.paid_amount = to_money(data.paid_amount)
    if data.notes is not None:
        bill.notes = data.notes

    points = 0
    newly_paid = data.payment_status == PaymentStatus.PAID and not was_paid
    if data.payment_status == PaymentStatus.PAID and bill.paid_time is None:
        bill.paid_time = datetime.now()
    if newly_paid:
        points = await _award_points(db, bill)
    await db.commit()

    if newly_paid:
        await send_receipt(notifier, bill, points)
    return await load_bill(db, bill.id)


async def record_payment(
    db: AsyncSession,
    bill_id: int,
    data,
    user: User,
    payment_service: BasePaymentService,
    notifier: Optional[BaseNotificationService] = None,
) -> tuple[Bill, Payment, int]:
    """
    Take one instalment against a bill.

    Returns the refreshed bill, the Payment row and the loyalty points
    awarded (0 unless this payment settled the bill).
    """
    settings = get_settings()
    bill = await load_bill(db, bill_id)

    if bill.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
        raise BusinessRuleError(f"Bill {bill.bill_number} is already {bill.payment_status.value}")
    amount = to_money(data.amount)
    if amount <= 0:
        raise BusinessRuleError("Payment amount must be greater than 0")
    if amount > bill.remaining_amount:
        raise BusinessRuleError(
            f"Amount exceeds the remaining balance of {format_money(bill.remaining_amount)}"
        )

    gateway, transaction_id, details = "manual", None, None
    if data.payment_method == PaymentMethod.CARD:
        charge = await payment_service.charge_card(
            amount=amount,
            currency=settings.currency,
            payment_method_token=data.payment_method_token,
            description=f"{settings.restaurant_name} {bill.bill_number}",
            metadata={"bill_id": bill.id, "order_id": bill.order_id},
        )
        if not charge.success:
            logger.warning(f"Card declined for {bill.bill_number}: {charge.error_code}")
            raise BusinessRuleError(f"Payment declined: {charge.error_message}")
        gateway = payment_service.provider_name
        transaction_id = charge.transaction_id
        details = charge.to_dict()

    payment = Payment(
        order_id=bill.order_id,
        amount=amount,
        payment_method=data.payment_method,
        payment_gateway=gateway,
        transaction_id=transaction_id,
        status=PaymentRecordStatus.COMPLETED,
        details=details,
        notes=data.notes,
        processed_by=user.id,
    )
    db.add(payment)

    bill.paid_amount = to_money(Decimal(bill.paid_amount) + amount)
    bill.payment_method = data.payment_method
    newly_paid = _settle(bill)
    points = await _award_points(db, bill) if newly_paid else 0
    await db.commit()

    logger.info(
        f"Payment of {amount} ({data.payment_method.value}) on {bill.bill_number}: "
        f"{bill.payment_status.value}"
    )
    if newly_paid:
        await send_receipt(notifier, bill, points)
    return await load_bill(db, bill.id), payment, points


async def split_payment(
    db: AsyncSession,
    order_id: int,
    data,
    user: User,
    notifier: Optional[BaseNotificationService] = None,
) -> list[Payment]:
    """
    Settle an order in several parts.

    The parts must add up to the amount still due within one cent: the
    bill's remaining balance when a bill exists, else the order total less
    what has already been collected. The bill, if any, is marked paid.
    """
    order = await load_order(db, order_id)
    bill = order.bill

    if bill is not None:
        if bill.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            raise BusinessRuleError(f"Bill {bill.bill_number} is already {bill.payment_status.value}")
        due = to_money(bill.remaining_amount)
    else:
        collected = await collected_for_order(db, order.id)
        due = to_money(Decimal(order.total_amount) - collected)
        if due <= 0:
            raise BusinessRuleError(f"Order {order.order_number} is already settled")

    total = to_money(sum((to_money(part.amount) for part in data.splits), ZERO))
    if abs(total - due) > CENT:
        raise BusinessRuleError(f"Split amounts ({total}) must equal the amount due ({due})")

    count = len(data.splits)
    payments = []
    for index, part in enumerate(data.splits, start=1):
        payment = Payment(
            order_id=order.id,
            amount=to_money(part.amount),
            payment_method=part.payment_method,
            payment_gateway="split",
            status=PaymentRecordStatus.COMPLETED,
            details={"split": index, "of": count, "customer_name": part.customer_name},
            processed_by=user.id,
        )
        db.add(payment)
        payments.append(payment)

    points = 0
    if bill is not None:
        methods = {part.payment_method for part in data.splits}
        # The parts cover the remaining balance, so the bill is settled in full
        bill.paid_amount = to_money(bill.total_amount)
        bill.payment_method = methods.pop() if len(methods) == 1 else PaymentMethod.OTHER
        if _settle(bill):
            points = await _award_points(db, bill)
    await db.commit()

    logger.info(f"Order {order.order_number} settled in {count} parts ({total})")
    if bill is not None:
        await send_receipt(notifier, bill, points)
    return payments


# =============================================================================
# REFUNDS
# =============================================================================

async def refund_bill(
    db: AsyncSession,
    bill_id: int,
    reason: Optional[str],
    user: User,
    payment_service: BasePaymentService,
) -> tuple[Bill, list[Payment]]:
    """
    Give back everything collected on a bill.

    Card payments are reversed through the payment service first; if any
    reversal fails nothing is recorded (422). Cash and other payments are
    marked refunded as handed back at the till.
    """
    bill = await load_bill(db, bill_id)
    if bill.payment_status not in (PaymentStatus.PAID, PaymentStatus.PARTIAL):
        raise BusinessRuleError(f"Bill {bill.bill_number} has nothing to refund")

    payments = [
        p for p in await order_payments(db, bill.order_id)
        if p.status == PaymentRecordStatus.COMPLETED
    ]

    refund_ids = {}
    for payment in payments:
        if payment.payment_method != PaymentMethod.CARD or not payment.transaction_id:
            continue
        result = await payment_service.refund_payment(
            payment.transaction_id,
            amount=to_money(payment.amount),
            reason="requested_by_customer",
        )
        if not result.success:
            logger.error(f"Refund failed for {payment.transaction_id}: {result.error_message}")
            raise BusinessRuleError(f"Refund failed: {result.error_message}")
        refund_ids[payment.id] = result.refund_id

    for payment in payments:
        payment.status = PaymentRecordStatus.REFUNDED
        if payment.id in refund_ids:
            payment.details = {**(payment.details or {}), "refund_id": refund_ids[payment.id]}

    bill.payment_status = PaymentStatus.REFUNDED
    note = f"Refunded by {user.name}" + (f": {reason}" if reason else "")
    bill.notes = f"{bill.notes}\n{note}" if bill.notes else note
    await db.commit()

    logger.info(f"Bill {bill.bill_number} refunded ({len(payments)} payments, {len(refund_ids)} card)")
    return await load_bill(db, bill.id), payments
