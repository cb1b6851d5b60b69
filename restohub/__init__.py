"""
                RestoHub Ordering Platform

Multi-tenant restaurant ordering backend: tenant menus and settings,
customer carts and checkout, order status workflow, payment webhooks
and per-tenant rate limiting.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
