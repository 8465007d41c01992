"""
Subscription API Routes

PayPal checkout creation, post-checkout verification and the current
subscription/usage view.
"""

import logging

from fastapi import APIRouter, Request

from braindump.api.dependencies import (
    CurrentUser,
    CurrentUserId,
    SettingsDep,
    SubscriptionServiceDep,
)
from braindump.domain.subscription import (
    CreateSubscriptionResponse,
    SubscriptionStatusResponse,
    VerifySubscriptionRequest,
    VerifySubscriptionResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/subscriptions/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(user_id: CurrentUserId, service: SubscriptionServiceDep):
    """
    Current plan and today's usage.

    A premium profile past its ``subscription_end`` is reported as not
    premium.
    """
    return await service.get_status(user_id)


@router.post("/subscriptions/paypal", response_model=CreateSubscriptionResponse)
async def create_paypal_subscription(
    request: Request,
    user: CurrentUser,
    service: SubscriptionServiceDep,
    settings: SettingsDep,
):
    """
    Create a PayPal subscription and return the approval URL.

    The browser is sent back to ``<origin>/payment-success`` after
    approval, where the frontend calls the verify endpoint.
    """
    origin = request.headers.get("origin") or settings.frontend_url
    return await service.create_subscription(user, origin)


@router.post("/subscriptions/paypal/verify", response_model=VerifySubscriptionResponse)
async def verify_paypal_subscription(
    body: VerifySubscriptionRequest,
    user: CurrentUser,
    service: SubscriptionServiceDep,
):
    """Pull the subscription status from PayPal and store it on the profile."""
    return await service.verify_subscription(user, body.subscription_id)
