"""
PayPal Subscription Service

Infrastructure client for the PayPal REST billing API.
Handles the client-credentials token, catalog product, monthly plan,
subscription creation and subscription lookup.

Every step is logged with a bracketed prefix so one checkout can be
followed through the logs. Any non-2xx reply aborts the flow with a
BillingServiceError; nothing is retried.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from braindump.config.settings import Settings
from braindump.infrastructure.exceptions import BillingServiceError


logger = logging.getLogger(__name__)


CREATE_PREFIX = "[CREATE-PAYPAL-SUBSCRIPTION]"
VERIFY_PREFIX = "[VERIFY-PAYPAL-SUBSCRIPTION]"

PRODUCT_NAME = "BrainDump Premium"
PLAN_NAME = "BrainDump Premium Monthly"
BRAND_NAME = "BrainDump"


def log_step(prefix: str, step: str, details: Optional[Dict[str, Any]] = None) -> None:
    suffix = f" - {json.dumps(details, default=str)}" if details else ""
    logger.info(f"{prefix} {step}{suffix}")


@dataclass(frozen=True)
class CreatedSubscription:
    subscription_id: str
    approval_url: str


@dataclass(frozen=True)
class RemoteSubscription:
    """The parts of a PayPal subscription resource this app reads."""
    subscription_id: str
    status: Optional[str]
    next_billing_time: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RemoteSubscription":
        billing_info = payload.get("billing_info")
        if not isinstance(billing_info, dict):
            billing_info = {}
        return cls(
            subscription_id=payload.get("id", ""),
            status=payload.get("status"),
            next_billing_time=billing_info.get("next_billing_time"),
        )


class PayPalService:
    """
    PayPal billing client.

    A new httpx client is opened per flow; ``transport`` lets tests
    substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._settings.paypal_configured

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.paypal_base_url,
            timeout=self._settings.paypal_timeout_seconds,
            transport=self._transport,
        )

    def _require_credentials(self, prefix: str) -> None:
        if not self.is_configured:
            log_step(prefix, "ERROR", {"message": "PayPal credentials not configured"})
            raise BillingServiceError("PayPal credentials not configured", step="credentials")
        log_step(prefix, "PayPal credentials verified")

    @staticmethod
    def _json_headers(access_token: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
            "Prefer": "return=representation",
        }

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        step: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise BillingServiceError(
                f"PayPal {step} request failed: {e.__class__.__name__}",
                step=step,
                original_error=e,
            )

    @staticmethod
    def _payload(response: httpx.Response, step: str, *required: str) -> Dict[str, Any]:
        """Decode a 2xx reply body, which must be an object holding ``required``."""
        try:
            payload = response.json()
        except ValueError as e:
            raise BillingServiceError(
                f"PayPal {step} reply is not JSON",
                step=step,
                status_code=response.status_code,
                original_error=e,
            )
        if not isinstance(payload, dict):
            raise BillingServiceError(
                f"PayPal {step} reply is not an object",
                step=step,
                status_code=response.status_code,
            )
        missing = [key for key in required if not payload.get(key)]
        if missing:
            raise BillingServiceError(
                f"PayPal {step} reply is missing {', '.join(missing)}",
                step=step,
                status_code=response.status_code,
            )
        return payload

    # =========================================================================
    # Steps
    # =========================================================================

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        """Client-credentials grant."""
        response = await self._request(
            client,
            "POST",
            "/v1/oauth2/token",
            step="token",
            auth=(self._settings.paypal_client_id, self._settings.paypal_client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            content="grant_type=client_credentials",
        )
        if not response.is_success:
            raise BillingServiceError(
                f"PayPal token request failed: {response.status_code} - {response.text}",
                step="token",
                status_code=response.status_code,
            )
        return self._payload(response, "token", "access_token")["access_token"]

    async def ensure_product(self, client: httpx.AsyncClient, access_token: str) -> str:
        """
        Create the catalog product.

        PayPal has no create-if-missing, so a failed create falls back to
        the configured product id.
        """
        response = await self._request(
            client,
            "POST",
            "/v1/catalogs/products",
            step="product",
            headers=self._json_headers(access_token),
            json={
                "name": PRODUCT_NAME,
                "description": "Unlimited brain dumps and calendar sync",
                "type": "SERVICE",
                "category": "SOFTWARE",
            },
        )
        if response.is_success:
            product_id = self._payload(response, "product", "id")["id"]
            log_step(CREATE_PREFIX, "Product created", {"productId": product_id})
            return product_id

        product_id = self._settings.paypal_product_id_fallback
        log_step(CREATE_PREFIX, "Using default product ID", {"productId": product_id})
        return product_id

    async def create_plan(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        product_id: str,
    ) -> str:
        price = self._settings.paypal_plan_price
        currency = self._settings.paypal_currency
        response = await self._request(
            client,
            "POST",
            "/v1/billing/plans",
            step="plan",
            headers=self._json_headers(access_token),
            json={
                "product_id": product_id,
                "name": PLAN_NAME,
                "description": "Monthly subscription for unlimited brain dumps",
                "status": "ACTIVE",
                "billing_cycles": [{
                    "frequency": {"interval_unit": "MONTH", "interval_count": 1},
                    "tenure_type": "REGULAR",
                    "sequence": 1,
                    "total_cycles": 0,
                    "pricing_scheme": {
                        "fixed_price": {"value": price, "currency_code": currency},
                    },
                }],
                "payment_preferences": {
                    "auto_bill_outstanding": True,
                    "setup_fee": {"value": "0", "currency_code": currency},
                    "setup_fee_failure_action": "CONTINUE",
                    "payment_failure_threshold": 3,
                },
                "taxes": {"percentage": "0", "inclusive": False},
            },
        )
        if not response.is_success:
            raise BillingServiceError(
                f"Plan creation failed: {response.text}",
                step="plan",
                status_code=response.status_code,
            )
        plan_id = self._payload(response, "plan", "id")["id"]
        log_step(CREATE_PREFIX, "Plan created", {"planId": plan_id})
        return plan_id

    # =========================================================================
    # Flows
    # =========================================================================

    async def create_subscription(self, email: str, origin: str) -> CreatedSubscription:
        """
        Run token -> product -> plan -> subscription.

        Args:
            email: Subscriber e-mail (also used for the given name)
            origin: Frontend origin for the return/cancel URLs

        Returns:
            The new subscription id and its approval link
        """
        log_step(CREATE_PREFIX, "Function started")
        self._require_credentials(CREATE_PREFIX)
        try:
            return await self._create_subscription(email, origin.rstrip("/"))
        except BillingServiceError as e:
            log_step(CREATE_PREFIX, "ERROR", {"message": e.message, **e.details})
            raise

    async def _create_subscription(self, email: str, origin: str) -> CreatedSubscription:
        async with self._client() as client:
            access_token = await self.get_access_token(client)
            log_step(CREATE_PREFIX, "PayPal access token obtained")

            product_id = await self.ensure_product(client, access_token)
            plan_id = await self.create_plan(client, access_token, product_id)

            response = await self._request(
                client,
                "POST",
                "/v1/billing/subscriptions",
                step="subscription",
                headers=self._json_headers(access_token),
                json={
                    "plan_id": plan_id,
                    "subscriber": {
                        "name": {"given_name": email.split("@")[0], "surname": "User"},
                        "email_address": email,
                    },
                    "application_context": {
                        "brand_name": BRAND_NAME,
                        "locale": "en-US",
                        "shipping_preference": "NO_SHIPPING",
                        "user_action": "SUBSCRIBE_NOW",
                        "payment_method": {
                            "payer_selected": "PAYPAL",
                            "payee_preferred": "IMMEDIATE_PAYMENT_REQUIRED",
                        },
                        "return_url": f"{origin}/payment-success",
                        "cancel_url": f"{origin}/",
                    },
                },
            )
            if not response.is_success:
                raise BillingServiceError(
                    f"Subscription creation failed: {response.text}",
                    step="subscription",
                    status_code=response.status_code,
                )
            subscription = self._payload(response, "subscription", "id")

        subscription_id = subscription["id"]
        log_step(CREATE_PREFIX, "Subscription created", {"subscriptionId": subscription_id})

        links = subscription.get("links") or []
        approval_url = next(
            (
                link.get("href") for link in links
                if isinstance(link, dict) and link.get("rel") == "approve"
            ),
            None,
        )
        if not approval_url:
            raise BillingServiceError("No approval link found", step="subscription")

        return CreatedSubscription(subscription_id=subscription_id, approval_url=approval_url)

    async def get_subscription(self, subscription_id: str) -> RemoteSubscription:
        """Fetch one subscription resource."""
        log_step(VERIFY_PREFIX, "Function started", {"subscriptionId": subscription_id})
        self._require_credentials(VERIFY_PREFIX)
        try:
            remote = await self._get_subscription(subscription_id)
        except BillingServiceError as e:
            log_step(VERIFY_PREFIX, "ERROR", {"message": e.message, **e.details})
            raise

        log_step(VERIFY_PREFIX, "Subscription fetched", {"status": remote.status})
        return remote

    async def _get_subscription(self, subscription_id: str) -> RemoteSubscription:
        async with self._client() as client:
            access_token = await self.get_access_token(client)
            log_step(VERIFY_PREFIX, "PayPal access token obtained")

            response = await self._request(
                client,
                "GET",
                f"/v1/billing/subscriptions/{subscription_id}",
                step="lookup",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {access_token}",
                },
            )
            if not response.is_success:
                raise BillingServiceError(
                    f"Subscription lookup failed: {response.status_code} - {response.text}",
                    step="lookup",
                    status_code=response.status_code,
                )
            return RemoteSubscription.from_payload(self._payload(response, "lookup"))
