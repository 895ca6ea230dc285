"""
                        Services Module

Business logic behind the routes. Domain services work on an
``AsyncSession`` and raise ``POSError`` subclasses; external providers
follow the hybrid pattern with Mock (development) and Real (production)
implementations.

Services:
    - orders: order lifecycle, totals and quick service
    - billing: bills, payments and split settlements
    - tax: the active tax rule
    - alerts: kitchen and reception notifications
    - tables / reservations: floor and booking management
    - loyalty: customer points and tiers
    - sales / dashboard: reporting queries
    - payment: Stripe card charges
    - notifications: Twilio SMS and SendGrid email
    - report_exporter: locked Excel/CSV ledger exports
"""
