"""Pure helpers: money maths, loyalty tiers, kitchen estimates, promotions and providers."""

import hashlib
from datetime import datetime, timedelta
from decimal import Decimal

from restaurant_pos.core.money import growth, percentage, to_money
from restaurant_pos.models import DiscountType, Order, OrderItem, OrderPriority, Promotion
from restaurant_pos.services import kitchen, loyalty, reservations
from restaurant_pos.services.notifications import MockNotificationService
from restaurant_pos.services.payment import MockPaymentService
from restaurant_pos.services.report_exporter import ReportExporter

NOON = datetime(2026, 1, 1, 12, 0)


# =============================================================================
# MONEY
# =============================================================================

def test_to_money_rounds_half_up():
    assert to_money(Decimal("2.345")) == Decimal("2.35")
    assert to_money(1.005) == Decimal("1.01")
    assert to_money("7") == Decimal("7.00")
    assert to_money(None) == Decimal("0.00")


def test_percentage_and_growth():
    assert percentage(1, 3) == 33.3
    assert percentage(5, 0) == 0.0
    assert growth(150, 100) == 50.0
    assert growth(50, 100) == -50.0
    assert growth(10, 0) == 0.0


# =============================================================================
# LOYALTY
# =============================================================================

def test_tier_thresholds():
    assert loyalty.tier_for(0) == "Standard"
    assert loyalty.tier_for(99) == "Standard"
    assert loyalty.tier_for(100) == "Bronze"
    assert loyalty.tier_for(499) == "Bronze"
    assert loyalty.tier_for(500) == "Silver"
    assert loyalty.tier_for(1000) == "Gold"


def test_points_follow_tier_rate():
    assert loyalty.points_for_amount("29.40") == 29
    assert loyalty.points_for_amount("29.40", "Bronze") == 44
    assert loyalty.points_for_amount("10.50", "Gold") == 31
    assert loyalty.points_for_amount("0.99") == 0


def test_benefits_are_copies():
    perks = loyalty.benefits_for("Gold")
    perks["points_per_unit"] = 99

    assert loyalty.benefits_for("Gold")["points_per_unit"] == 3
    assert loyalty.benefits_for("Platinum") == loyalty.benefits_for("Standard")


# =============================================================================
# KITCHEN ESTIMATES
# =============================================================================

def make_order(priority, *quantities):
    return Order(priority=priority, order_time=NOON, items=[OrderItem(quantity=q) for q in quantities])


def test_estimate_scales_with_items():
    order = make_order(OrderPriority.NORMAL, 1, 1)

    assert kitchen.estimated_time(order, now=NOON) == NOON + timedelta(minutes=19)


def test_high_priority_estimate_is_shortened():
    order = make_order(OrderPriority.HIGH, 2)

    eta = kitchen.estimated_time(order, now=NOON)

    # (15 + 2 x 2) x 0.7 = 13.3 minutes
    assert abs((eta - NOON).total_seconds() - 798) < 1


def test_minutes_elapsed():
    order = make_order(OrderPriority.NORMAL, 1)

    assert kitchen.minutes_elapsed(order, now=NOON + timedelta(minutes=7, seconds=30)) == 7


# =============================================================================
# RESERVATIONS
# =============================================================================

def test_confirmation_code_hashes_email_as_stored():
    code = reservations.confirmation_code_for(7, "jane@example.com")

    assert code == hashlib.md5(b"7jane@example.com").hexdigest()[:8].upper()
    assert reservations.confirmation_code_for(7, "Jane@Example.com") != code


# =============================================================================
# PROMOTIONS
# =============================================================================

def make_promotion(**fields):
    values = {
        "name": "TEST",
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("10"),
        "start_time": NOON - timedelta(days=1),
        "end_time": NOON + timedelta(days=1),
        "is_active": True,
        "usage_limit": None,
        "usage_count": 0,
    }
    values.update(fields)
    return Promotion(**values)


def test_promotion_window_and_limit():
    assert make_promotion().can_be_used(NOON)
    assert not make_promotion(is_active=False).can_be_used(NOON)
    assert not make_promotion().can_be_used(NOON + timedelta(days=2))
    assert not make_promotion(usage_limit=2, usage_count=2).can_be_used(NOON)
    assert make_promotion(usage_limit=2, usage_count=1).can_be_used(NOON)


def test_promotion_discount():
    assert make_promotion().calculate_discount(Decimal("24.50")) == Decimal("2.45")

    fixed = make_promotion(discount_type=DiscountType.FIXED_AMOUNT, discount_value=Decimal("500"))
    assert fixed.calculate_discount(Decimal("24.50")) == Decimal("24.50")


# =============================================================================
# PROVIDERS
# =============================================================================

async def test_mock_payment_declines_decline_token():
    service = MockPaymentService(failure_rate=0, min_latency=0, max_latency=0)

    declined = await service.charge_card(Decimal("10.00"), payment_method_token="tok_decline")
    assert declined.success is False
    assert declined.error_code
    assert service.charges == []

    charged = await service.charge_card(Decimal("10.00"), payment_method_token="tok_visa")
    assert charged.success is True
    assert charged.transaction_id.startswith("pi_mock_")
    assert service.charges == [charged]
    assert charged.to_dict()["amount"] == "10.00"


async def test_mock_payment_rejects_empty_amount():
    service = MockPaymentService(failure_rate=0, min_latency=0, max_latency=0)

    result = await service.charge_card(Decimal("0"))

    assert result.error_code == "invalid_amount"


async def test_mock_refund_needs_charge_reference():
    service = MockPaymentService(failure_rate=0, min_latency=0, max_latency=0)

    assert (await service.refund_payment("bogus")).success is False
    assert (await service.refund_payment("pi_mock_abc", Decimal("5.00"))).refund_id.startswith("re_mock_")


async def test_receipt_goes_to_both_channels():
    notifier = MockNotificationService(failure_rate=0, latency=0)

    result = await notifier.send_receipt("Ann", "ann@test.com", "555-0100", "BILL-1", Decimal("12.00"))

    assert result.success is True
    assert [m["channel"] for m in notifier.outbox] == ["sms", "email"]
    assert "loyalty points" not in notifier.outbox[0]["body"]


async def test_delivery_without_contact_details_fails():
    notifier = MockNotificationService(failure_rate=0, latency=0)

    result = await notifier.send_receipt("Ann", None, None, "BILL-1", Decimal("12.00"))

    assert result.success is False
    assert notifier.outbox == []


# =============================================================================
# REPORT EXPORTS
# =============================================================================

LEDGER_ROWS = [
    {"Bill Number": "BILL-1", "Total Amount": "10.00", "Payment Status": "paid"},
    {"Bill Number": "BILL-2", "Total Amount": "5.50", "Payment Status": "pending"},
]


def test_csv_keeps_column_order():
    lines = ReportExporter.to_csv(LEDGER_ROWS).splitlines()

    assert lines[0] == ",".join(ReportExporter.LEDGER_COLUMNS)
    assert lines[1].startswith("BILL-1,")
    assert len(lines) == 3


def test_summary_totals():
    frame = ReportExporter.summary_frame(LEDGER_ROWS)
    summary = dict(zip(frame["Metric"], frame["Value"]))

    assert summary["Bills"] == 2
    assert summary["Paid bills"] == 1
    assert summary["Total billed"] == 15.5
    assert summary["Total paid"] == 10.0


def test_missing_workbook_reads_empty():
    assert ReportExporter.read_workbook("does-not-exist.xlsx") == []
