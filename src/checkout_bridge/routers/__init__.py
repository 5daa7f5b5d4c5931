# Routers package
from . import (
    checkout_router,
    public_router,
    stripe_webhook_router,
)

__all__ = [
    "checkout_router",
    "public_router",
    "stripe_webhook_router",
]
