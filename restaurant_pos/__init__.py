"""
                Restaurant POS & Operations

Point-of-sale and floor operations backend for a dine-in restaurant:
menu, tables and reservations, the order lifecycle, kitchen and reception
boards, billing with tax and service charge, loyalty points and sales
reporting.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
