"""Stripe → Shopify checkout bridge"""

__version__ = "1.0.0"
