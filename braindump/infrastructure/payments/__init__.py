"""
Payments Infrastructure Module

PayPal recurring-billing client.
"""

from braindump.infrastructure.payments.paypal_service import (
    CreatedSubscription,
    PayPalService,
    RemoteSubscription,
)

__all__ = ["PayPalService", "CreatedSubscription", "RemoteSubscription"]
