"""
HTTP routers, one module per area.
"""

from restaurant_pos.api import (
    auth,
    bills,
    dashboard,
    kitchen,
    loyalty,
    menu,
    orders,
    quick_service,
    reception,
    reservations,
    sales,
    tables,
    tax_settings,
    users,
)

ROUTERS = [
    auth.router,
    users.router,
    menu.router,
    tables.router,
    reservations.router,
    orders.router,
    quick_service.router,
    kitchen.router,
    reception.router,
    bills.router,
    tax_settings.router,
    sales.router,
    dashboard.router,
    loyalty.router,
]

__all__ = ["ROUTERS"]
