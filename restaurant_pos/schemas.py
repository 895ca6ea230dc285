"""
Pydantic Schemas for Request/Response Validation

Request bodies for every form and action, and the typed records that make
up page props (orders, bills, tables, reservations, alerts, sales figures).

Money fields are ``Decimal`` and serialize as strings with two decimals.

Author: Khalil Bannouri
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Any, Dict
from datetime import datetime
from decimal import Decimal
import re

from restaurant_pos.models import (
    UserRole,
    TableStatus,
    ReservationStatus,
    OrderStatus,
    OrderPriority,
    ItemStatus,
    NotificationType,
    TargetRole,
    TaxType,
    PaymentStatus,
    PaymentMethod,
    PaymentRecordStatus,
    ModifierType,
    DiscountType,
)


EMAIL_PATTERN = r'^[\w\.\+-]+@[\w\.-]+\.\w+$'


def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not re.match(EMAIL_PATTERN, v):
        raise ValueError('Invalid email format')
    return v.lower()


def _local_naive(v: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored naive in local time."""
    if v is not None and v.tzinfo is not None:
        return v.astimezone().replace(tzinfo=None)
    return v


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# AUTH & USERS
# =============================================================================

class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)


class UserBrief(ORMModel):
    """Shared ``auth.user`` prop."""
    id: int
    name: str
    role: UserRole


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserBrief


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.STAFF
    phone: Optional[str] = Field(None, max_length=20)
    is_active: bool = True

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not v or not re.match(EMAIL_PATTERN, v):
            raise ValueError('Invalid email format')
        return v.lower()


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: Optional[UserRole] = None
    phone: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)


class PasswordChange(BaseModel):
    current_password: str
    password: str = Field(..., min_length=8, max_length=128)


class UserResponse(ORMModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


# =============================================================================
# MENU
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Starters"])
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    sort_order: int = Field(default=0, ge=0)
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CategoryResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    sort_order: int
    is_active: bool


class MenuItemCreate(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1, max_length=150, examples=["Margherita Pizza"])
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, le=Decimal("999999.99"), decimal_places=2, examples=["12.50"])
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True
    preparation_time: Optional[int] = Field(None, ge=0, le=120)


class MenuItemUpdate(BaseModel):
    category_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, le=Decimal("999999.99"), decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=0, le=120)


class MenuItemResponse(ORMModel):
    id: int
    category_id: int
    category_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    formatted_price: str
    image_url: Optional[str] = None
    is_available: bool
    preparation_time: Optional[int] = None


class CategoryDetail(CategoryResponse):
    items: List[MenuItemResponse] = []


class ComboItemCreate(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1, le=20)
    is_required: bool = True


class ComboCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    combo_price: Decimal = Field(..., ge=0, le=Decimal("999999.99"))
    savings_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    sort_order: int = Field(default=0, ge=0)
    is_active: bool = True
    items: List[ComboItemCreate] = Field(..., min_length=1)


class ComboItemResponse(ORMModel):
    menu_item_id: int
    name: Optional[str] = None
    quantity: int
    is_required: bool


class ComboResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    combo_price: Decimal
    savings_amount: Decimal
    individual_items_total: Decimal
    savings_percentage: float
    sort_order: int
    items: List[ComboItemResponse] = []


class ModifierCreate(BaseModel):
    menu_item_id: int
    name: str = Field(..., min_length=1, max_length=100)
    price_adjustment: Decimal = Field(default=Decimal("0.00"), ge=0, le=Decimal("999999.99"))
    modifier_type: ModifierType = ModifierType.ADD
    is_active: bool = True


class ModifierResponse(ORMModel):
    id: int
    menu_item_id: int
    name: str
    price_adjustment: Decimal
    modifier_type: ModifierType
    formatted_price_adjustment: str
    is_active: bool


# =============================================================================
# TABLES
# =============================================================================

class TableTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    price_multiplier: Decimal = Field(default=Decimal("1.00"), gt=0, le=10)
    is_active: bool = True


class TableTypeResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    price_multiplier: Decimal
    is_active: bool


class TableCreate(BaseModel):
    table_number: str = Field(..., min_length=1, max_length=10, examples=["T1"])
    name: Optional[str] = Field(None, max_length=100)
    table_type_id: Optional[int] = None
    capacity: int = Field(..., ge=1, le=20)
    min_capacity: int = Field(default=1, ge=1, le=20)
    location: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    position_x: Optional[int] = None
    position_y: Optional[int] = None
    status: TableStatus = TableStatus.AVAILABLE
    is_active: bool = True

    @model_validator(mode='after')
    def check_capacity(self):
        if self.min_capacity > self.capacity:
            raise ValueError('min_capacity cannot exceed capacity')
        return self


class TableUpdate(BaseModel):
    table_number: Optional[str] = Field(None, min_length=1, max_length=10)
    name: Optional[str] = Field(None, max_length=100)
    table_type_id: Optional[int] = None
    capacity: Optional[int] = Field(None, ge=1, le=20)
    min_capacity: Optional[int] = Field(None, ge=1, le=20)
    location: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    position_x: Optional[int] = None
    position_y: Optional[int] = None
    status: Optional[TableStatus] = None
    is_active: Optional[bool] = None


class TableStatusUpdate(BaseModel):
    status: TableStatus


class TableResponse(ORMModel):
    id: int
    table_number: str
    name: Optional[str] = None
    table_type_id: Optional[int] = None
    table_type_name: Optional[str] = None
    capacity: int
    min_capacity: int
    location: Optional[str] = None
    description: Optional[str] = None
    position: Dict[str, Optional[int]]
    status: TableStatus
    is_active: bool
    has_active_order: bool
    is_available: bool


# =============================================================================
# RESERVATIONS
# =============================================================================

class ReservationCreate(BaseModel):
    table_id: int
    customer_name: str = Field(..., min_length=2, max_length=100, examples=["Jane Doe"])
    customer_email: str = Field(..., examples=["jane@example.com"])
    customer_phone: str = Field(..., min_length=7, max_length=20, examples=["555-123-4567"])
    party_size: int = Field(..., ge=1, le=20)
    reservation_date: datetime
    duration_minutes: int = Field(default=120, ge=30, le=480)
    special_requests: Optional[str] = Field(None, max_length=500)
    deposit_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    is_walk_in: bool = False

    @field_validator('reservation_date')
    @classmethod
    def validate_date(cls, v: datetime) -> datetime:
        return _local_naive(v)

    @field_validator('customer_email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not v or not re.match(EMAIL_PATTERN, v):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('customer_phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        cleaned = re.sub(r'[^\d]', '', v)
        if len(cleaned) < 7:
            raise ValueError('Phone number must have at least 7 digits')
        return v


class ReservationUpdate(BaseModel):
    table_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, min_length=2, max_length=100)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = Field(None, min_length=7, max_length=20)
    party_size: Optional[int] = Field(None, ge=1, le=20)
    reservation_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=30, le=480)
    special_requests: Optional[str] = Field(None, max_length=500)
    status: Optional[ReservationStatus] = None

    @field_validator('reservation_date')
    @classmethod
    def validate_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_naive(v)

    @field_validator('customer_email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)


class ReservationResponse(ORMModel):
    id: int
    table_id: int
    table_number: Optional[str] = None
    user_id: Optional[int] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    party_size: int
    reservation_date: datetime
    end_time: datetime
    duration_minutes: int
    special_requests: Optional[str] = None
    status: ReservationStatus
    deposit_amount: Decimal
    is_walk_in: bool
    confirmation_code: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    is_active: bool
    can_be_cancelled: bool


class TableDetail(TableResponse):
    upcoming_reservations: List[ReservationResponse] = []


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemInput(BaseModel):
    """Single line in an order."""
    menu_item_id: int
    quantity: int = Field(default=1, ge=1, le=99, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=255)


class OrderCreate(BaseModel):
    table_id: int
    items: List[OrderItemInput] = Field(..., min_length=1)
    priority: OrderPriority = OrderPriority.NORMAL
    special_instructions: Optional[str] = Field(None, max_length=500)
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)


class OrderUpdate(BaseModel):
    items: Optional[List[OrderItemInput]] = Field(None, min_length=1)
    priority: Optional[OrderPriority] = None
    special_instructions: Optional[str] = Field(None, max_length=500)
    customer_id: Optional[int] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PriorityUpdate(BaseModel):
    priority: OrderPriority


class AssignRequest(BaseModel):
    assigned_to: int


class ItemStatusUpdate(BaseModel):
    item_id: int
    status: ItemStatus


class OrderItemResponse(ORMModel):
    id: int
    menu_item_id: Optional[int] = None
    combo_id: Optional[int] = None
    name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    special_instructions: Optional[str] = None
    status: ItemStatus


class OrderResponse(ORMModel):
    id: int
    order_number: str
    table_id: Optional[int] = None
    table_number: Optional[str] = None
    status: OrderStatus
    priority: OrderPriority
    special_instructions: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    order_time: datetime
    estimated_ready_time: Optional[datetime] = None
    ready_time: Optional[datetime] = None
    served_time: Optional[datetime] = None
    created_by: Optional[int] = None
    assigned_to: Optional[int] = None
    assignee_name: Optional[str] = None
    customer_id: Optional[int] = None
    item_count: int
    has_bill: bool
    items: List[OrderItemResponse] = []


class KitchenOrder(OrderResponse):
    minutes_elapsed: int


class ReceptionOrder(OrderResponse):
    estimated_time: datetime


# =============================================================================
# QUICK SERVICE
# =============================================================================

class WalkInBooking(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    party_size: Optional[int] = Field(None, ge=1, le=20)
    special_instructions: Optional[str] = Field(None, max_length=500)


class AddItemsRequest(BaseModel):
    items: List[OrderItemInput] = Field(..., min_length=1)


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=99)


class AddComboRequest(BaseModel):
    combo_id: int
    quantity: int = Field(default=1, ge=1, le=20)


class PromotionApply(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)


class PromotionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["HAPPYHOUR"])
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0, le=Decimal("999999.99"))
    minimum_order_amount: Optional[Decimal] = Field(None, ge=0)
    start_time: datetime
    end_time: datetime
    is_active: bool = True
    usage_limit: Optional[int] = Field(None, ge=1)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v: datetime) -> datetime:
        return _local_naive(v)

    @model_validator(mode='after')
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError('end_time must be after start_time')
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError('A percentage discount cannot exceed 100')
        return self


class PromotionResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal
    minimum_order_amount: Optional[Decimal] = None
    start_time: datetime
    end_time: datetime
    is_active: bool
    usage_limit: Optional[int] = None
    usage_count: int


# =============================================================================
# ORDER ALERTS
# =============================================================================

class OrderAlertResponse(ORMModel):
    id: int
    order_id: int
    order_number: Optional[str] = None
    user_id: Optional[int] = None
    type: NotificationType
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    target_role: TargetRole
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


# =============================================================================
# TAX SETTINGS
# =============================================================================

class TaxSettingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["GST"])
    type: TaxType = TaxType.MANUAL
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, examples=["8.50"])
    is_active: bool = False
    description: Optional[str] = None

    @model_validator(mode='after')
    def check_rate(self):
        if self.type == TaxType.MANUAL and self.tax_rate is None:
            raise ValueError('tax_rate is required for manual tax settings')
        if self.type == TaxType.FREE:
            self.tax_rate = None
        return self


class TaxSettingUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[TaxType] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None
    description: Optional[str] = None


class TaxSettingResponse(ORMModel):
    id: int
    name: str
    type: TaxType
    tax_rate: Optional[Decimal] = None
    is_active: bool
    description: Optional[str] = None
    formatted_tax_rate: str


# =============================================================================
# BILLING & PAYMENTS
# =============================================================================

class BillUpdate(BaseModel):
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    paid_amount: Decimal = Field(..., ge=0)
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, examples=["25.00"])
    payment_method: PaymentMethod
    payment_method_token: Optional[str] = Field(
        None, description="Card token from the terminal (card payments only)"
    )
    notes: Optional[str] = None


class BillRefund(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class SplitPart(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    customer_name: Optional[str] = Field(None, max_length=100)


class SplitPaymentRequest(BaseModel):
    splits: List[SplitPart] = Field(..., min_length=2)


class BillResponse(ORMModel):
    id: int
    bill_number: str
    order_id: int
    order_number: Optional[str] = None
    table_id: Optional[int] = None
    table_number: Optional[str] = None
    subtotal: Decimal
    tax_amount: Decimal
    service_charge: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    paid_amount: Decimal
    remaining_amount: Decimal
    formatted_total: str
    formatted_paid: str
    formatted_remaining: str
    bill_time: datetime
    paid_time: Optional[datetime] = None
    notes: Optional[str] = None


class BillDetail(BillResponse):
    order: OrderResponse


class PaymentResponse(ORMModel):
    id: int
    order_id: Optional[int] = None
    amount: Decimal
    payment_method: PaymentMethod
    payment_gateway: Optional[str] = None
    transaction_id: Optional[str] = None
    status: PaymentRecordStatus
    created_at: datetime


# =============================================================================
# LOYALTY
# =============================================================================

class PointsRequest(BaseModel):
    points: int = Field(..., gt=0)
    amount_spent: Decimal = Field(default=Decimal("0.00"), ge=0)


class LoyaltyResponse(ORMModel):
    customer_id: int
    points_earned: int
    points_redeemed: int
    points_balance: int
    total_spent: Decimal
    visits_count: int
    last_visit_date: Optional[datetime] = None
    tier: str
    benefits: Dict[str, Any]


# =============================================================================
# SALES
# =============================================================================

class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    last_page: int


class ItemSales(BaseModel):
    menu_item_id: int
    name: str
    category: Optional[str] = None
    quantity: int
    revenue: Decimal


class CategorySales(BaseModel):
    category: str
    quantity: int
    revenue: Decimal
    percentage: float


class HourlySales(BaseModel):
    hour: int
    orders: int
    revenue: Decimal


class SalesTotals(BaseModel):
    today: Decimal
    yesterday: Decimal
    this_month: Decimal
    last_month: Decimal
    today_orders: int
    active_orders: int
    daily_growth: float
    monthly_growth: float


class ReportSummary(BaseModel):
    total_sales: Decimal
    bill_count: int
    average_sale: Decimal


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class ActionResult(BaseModel):
    """Plain JSON reply of action endpoints; extra keys carry payloads."""
    model_config = ConfigDict(extra="allow")

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    notification_service: str
    timestamp: datetime
