"""
Shared route dependencies: role guards and provider services.
"""

from restaurant_pos.core.security import get_current_user, require_roles
from restaurant_pos.models import UserRole
from restaurant_pos.services.notifications import get_notification_service
from restaurant_pos.services.payment import get_payment_service

staff_only = require_roles(UserRole.STAFF)
kitchen_or_staff = require_roles(UserRole.KITCHEN, UserRole.STAFF)
any_user = get_current_user

__all__ = [
    "staff_only",
    "kitchen_or_staff",
    "any_user",
    "get_payment_service",
    "get_notification_service",
]
