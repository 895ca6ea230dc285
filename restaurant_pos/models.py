"""
SQLAlchemy Database Models

Relational model for the dine-in floor:
- Users with staff / kitchen / customer roles
- Menu categories, items, combos and modifiers
- Table types, tables and reservations
- Orders with line items and kitchen/reception alerts
- Tax settings, bills, payments and promotions
- Customer loyalty balances

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Enum, Boolean, Numeric, ForeignKey, JSON,
)
from sqlalchemy.orm import relationship

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.money import format_money
from restaurant_pos.database import Base
import enum


def _enum_column(enum_cls):
    """Store enums by value as plain strings (portable across PostgreSQL and SQLite)."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=30,
    )


Money = Numeric(10, 2)


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    STAFF = "staff"
    KITCHEN = "kitchen"
    CUSTOMER = "customer"


class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class ItemStatus(str, enum.Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"


class NotificationType(str, enum.Enum):
    NEW_ORDER = "new_order"
    STATUS_CHANGE = "status_change"
    PRIORITY_CHANGE = "priority_change"
    ASSIGNED = "assigned"
    READY = "ready"
    CANCELLED = "cancelled"
    PAYMENT_REQUEST = "payment_request"


class TargetRole(str, enum.Enum):
    STAFF = "staff"
    KITCHEN = "kitchen"
    RECEPTION = "reception"
    ALL = "all"


class TaxType(str, enum.Enum):
    FREE = "free"
    MANUAL = "manual"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    OTHER = "other"


class PaymentRecordStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ModifierType(str, enum.Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


# Orders that still hold their table
ACTIVE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
)

# Reservations that block a time slot
BLOCKING_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Staff, kitchen and customer accounts."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(_enum_column(UserRole), default=UserRole.STAFF, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


# =============================================================================
# MENU
# =============================================================================

class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<MenuCategory {self.name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("menu_categories.id"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Money, nullable=False)
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    preparation_time = Column(Integer, nullable=True)  # minutes

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    category = relationship("MenuCategory", lazy="selectin")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    @property
    def formatted_price(self) -> str:
        return format_money(self.price)

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price}>"


class MenuCombo(Base):
    __tablename__ = "menu_combos"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    combo_price = Column(Money, nullable=False)
    savings_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.now)

    items = relationship(
        "ComboItem",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ComboItem.id",
    )

    @property
    def individual_items_total(self) -> Decimal:
        total = Decimal("0.00")
        for combo_item in self.items:
            total += combo_item.menu_item.price * combo_item.quantity
        return total

    @property
    def savings_percentage(self) -> float:
        individual = self.individual_items_total
        if individual == 0:
            return 0.0
        return round(float(self.savings_amount / individual * 100), 1)


class ComboItem(Base):
    __tablename__ = "combo_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    combo_id = Column(Integer, ForeignKey("menu_combos.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)

    menu_item = relationship("MenuItem", lazy="selectin")

    @property
    def name(self):
        return self.menu_item.name if self.menu_item else None


class MenuModifier(Base):
    __tablename__ = "menu_modifiers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price_adjustment = Column(Money, default=Decimal("0.00"), nullable=False)
    modifier_type = Column(_enum_column(ModifierType), default=ModifierType.ADD, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def formatted_price_adjustment(self) -> str:
        symbol = get_settings().currency_symbol
        amount = abs(self.price_adjustment or Decimal("0"))
        sign = "-" if self.modifier_type == ModifierType.REMOVE else "+"
        return f"{sign}{symbol} {amount:,.2f}"


# =============================================================================
# TABLES & RESERVATIONS
# =============================================================================

class TableType(Base):
    __tablename__ = "table_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price_multiplier = Column(Numeric(4, 2), default=Decimal("1.00"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Table(Base):
    """A physical dining table on the floor plan."""
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_number = Column(String(10), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=True)
    table_type_id = Column(Integer, ForeignKey("table_types.id"), nullable=True)
    capacity = Column(Integer, nullable=False)
    min_capacity = Column(Integer, default=1, nullable=False)
    location = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    position_x = Column(Integer, nullable=True)
    position_y = Column(Integer, nullable=True)
    status = Column(_enum_column(TableStatus), default=TableStatus.AVAILABLE, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    has_active_order = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    table_type = relationship("TableType", lazy="selectin")

    @property
    def table_type_name(self):
        return self.table_type.name if self.table_type else None

    @property
    def is_available(self) -> bool:
        return self.status == TableStatus.AVAILABLE and bool(self.is_active)

    @property
    def position(self) -> dict:
        return {"x": self.position_x, "y": self.position_y}

    def __repr__(self):
        return f"<Table {self.table_number} - {self.status.value}>"


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)

    # =========================================================================
    # BOOKING
    # =========================================================================
    party_size = Column(Integer, nullable=False)
    reservation_date = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, default=120, nullable=False)
    special_requests = Column(Text, nullable=True)
    status = Column(
        _enum_column(ReservationStatus),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True,
    )
    deposit_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    is_walk_in = Column(Boolean, default=False, nullable=False)
    confirmation_code = Column(String(8), nullable=True, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    confirmed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    table = relationship("Table", lazy="selectin")

    @property
    def table_number(self):
        return self.table.table_number if self.table else None

    @property
    def is_active(self) -> bool:
        return self.status in BLOCKING_RESERVATION_STATUSES and self.reservation_date > datetime.now()

    @property
    def can_be_cancelled(self) -> bool:
        window = timedelta(hours=get_settings().cancellation_window_hours)
        return (
            self.status in BLOCKING_RESERVATION_STATUSES
            and self.reservation_date > datetime.now() + window
        )

    def __repr__(self):
        return f"<Reservation #{self.id} - {self.customer_name} - {self.status.value}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    A table's order, from first item to completion.

    Money columns are kept in sync with the line items by
    ``services.orders.update_totals``.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(30), nullable=False, unique=True, index=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=True, index=True)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(_enum_column(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    priority = Column(_enum_column(OrderPriority), default=OrderPriority.NORMAL, nullable=False)
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # GUEST DETAILS (walk-in bookings)
    # =========================================================================
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(20), nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Money, default=Decimal("0.00"), nullable=False)
    tax_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    discount_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    total_amount = Column(Money, default=Decimal("0.00"), nullable=False)

    # =========================================================================
    # TIMELINE
    # =========================================================================
    order_time = Column(DateTime, default=datetime.now, nullable=False, index=True)
    estimated_ready_time = Column(DateTime, nullable=True)
    ready_time = Column(DateTime, nullable=True)
    served_time = Column(DateTime, nullable=True)

    # =========================================================================
    # PEOPLE
    # =========================================================================
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    table = relationship("Table", lazy="selectin")
    creator = relationship("User", foreign_keys=[created_by], lazy="selectin")
    assignee = relationship("User", foreign_keys=[assigned_to], lazy="selectin")
    customer = relationship("User", foreign_keys=[customer_id], lazy="selectin")
    bill = relationship("Bill", back_populates="order", uselist=False, lazy="selectin")

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def table_number(self):
        return self.table.table_number if self.table else None

    @property
    def assignee_name(self):
        return self.assignee.name if self.assignee else None

    @property
    def has_bill(self) -> bool:
        return self.bill is not None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_ORDER_STATUSES

    def __repr__(self):
        return f"<Order {self.order_number} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=True)
    combo_id = Column(Integer, ForeignKey("menu_combos.id"), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    special_instructions = Column(Text, nullable=True)
    status = Column(_enum_column(ItemStatus), default=ItemStatus.PENDING, nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", lazy="selectin")
    combo = relationship("MenuCombo", lazy="selectin")

    @property
    def name(self):
        if self.combo is not None:
            return self.combo.name
        return self.menu_item.name if self.menu_item else None


class OrderNotification(Base):
    """Alerts shown on the kitchen and reception boards."""
    __tablename__ = "order_notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    type = Column(_enum_column(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    target_role = Column(_enum_column(TargetRole), default=TargetRole.ALL, nullable=False, index=True)
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    order = relationship("Order", lazy="selectin")

    @property
    def order_number(self):
        return self.order.order_number if self.order else None


# =============================================================================
# TAX, BILLING & PAYMENTS
# =============================================================================

class TaxSetting(Base):
    __tablename__ = "tax_settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    type = Column(_enum_column(TaxType), default=TaxType.MANUAL, nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=True)  # percent
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def rate_fraction(self) -> Decimal:
        if self.type == TaxType.FREE or self.tax_rate is None:
            return Decimal("0")
        return Decimal(self.tax_rate) / Decimal("100")

    def calculate_tax(self, amount: Decimal) -> Decimal:
        return (Decimal(amount) * self.rate_fraction).quantize(Decimal("0.01"))

    @property
    def formatted_tax_rate(self) -> str:
        if self.type == TaxType.FREE:
            return "Free (0%)"
        return f"{Decimal(self.tax_rate or 0):.2f}%"


class Bill(Base):
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=True)
    bill_number = Column(String(30), nullable=False, unique=True, index=True)

    # =========================================================================
    # AMOUNTS
    # =========================================================================
    subtotal = Column(Money, nullable=False)
    tax_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    service_charge = Column(Money, default=Decimal("0.00"), nullable=False)
    discount_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    total_amount = Column(Money, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_status = Column(
        _enum_column(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_method = Column(_enum_column(PaymentMethod), nullable=True)
    paid_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    bill_time = Column(DateTime, default=datetime.now, nullable=False, index=True)
    paid_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    order = relationship("Order", back_populates="bill", lazy="selectin")
    table = relationship("Table", lazy="selectin")

    @property
    def remaining_amount(self) -> Decimal:
        remaining = Decimal(self.total_amount) - Decimal(self.paid_amount or 0)
        return max(remaining, Decimal("0.00"))

    @property
    def order_number(self):
        return self.order.order_number if self.order else None

    @property
    def table_number(self):
        return self.table.table_number if self.table else None

    @property
    def formatted_total(self) -> str:
        return format_money(self.total_amount)

    @property
    def formatted_paid(self) -> str:
        return format_money(self.paid_amount)

    @property
    def formatted_remaining(self) -> str:
        return format_money(self.remaining_amount)

    def __repr__(self):
        return f"<Bill {self.bill_number} - {self.payment_status.value}>"


class Payment(Base):
    """A single settlement against an order (one per split)."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=True)
    amount = Column(Money, nullable=False)
    payment_method = Column(_enum_column(PaymentMethod), nullable=False)
    payment_gateway = Column(String(50), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    status = Column(
        _enum_column(PaymentRecordStatus),
        default=PaymentRecordStatus.COMPLETED,
        nullable=False,
    )
    details = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    discount_type = Column(_enum_column(DiscountType), nullable=False)
    discount_value = Column(Money, nullable=False)
    minimum_order_amount = Column(Money, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)

    def can_be_used(self, now: datetime = None) -> bool:
        now = now or datetime.now()
        if not self.is_active or not (self.start_time <= now <= self.end_time):
            return False
        return self.usage_limit is None or self.usage_count < self.usage_limit

    def calculate_discount(self, amount: Decimal) -> Decimal:
        amount = Decimal(amount)
        if self.discount_type == DiscountType.PERCENTAGE:
            discount = amount * Decimal(self.discount_value) / Decimal("100")
        else:
            discount = min(Decimal(self.discount_value), amount)
        return discount.quantize(Decimal("0.01"))


# =============================================================================
# LOYALTY
# =============================================================================

class CustomerLoyaltyPoint(Base):
    __tablename__ = "customer_loyalty_points"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    points_earned = Column(Integer, default=0, nullable=False)
    points_redeemed = Column(Integer, default=0, nullable=False)
    points_balance = Column(Integer, default=0, nullable=False)
    total_spent = Column(Money, default=Decimal("0.00"), nullable=False)
    visits_count = Column(Integer, default=0, nullable=False)
    last_visit_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    customer = relationship("User", lazy="selectin")
