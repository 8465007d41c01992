"""
BrainDump API Client

Typed async client for the HTTP API plus ``LocalDumpCache``, the
in-memory list a UI keeps in sync with the realtime stream.

Usage:
    async with BrainDumpClient(base_url, access_token) as api:
        cache = LocalDumpCache(await api.list_dumps())
        async for event in api.stream_events():
            cache.apply(event)
"""

import asyncio
import json
from typing import AsyncIterator, Dict, Iterable, List, Optional
from uuid import UUID

import httpx

from braindump.domain.categories import ProcessBrainDumpResponse
from braindump.domain.dumps import (
    DumpChangeEvent,
    DumpChangeType,
    DumpResponse,
    DumpStatsResponse,
    SubmitDumpResponse,
)
from braindump.domain.quota import DumpLimit
from braindump.domain.subscription import (
    PAYMENT_VERIFICATION_DELAY,
    CreateSubscriptionResponse,
    SubscriptionStatusResponse,
    VerifySubscriptionResponse,
    subscription_id_from_return_url,
)
from braindump.infrastructure.exceptions import BrainDumpError, ValidationError


class ApiError(BrainDumpError):
    """Non-2xx answer from the BrainDump API."""

    def __init__(self, message: str, status_code: int, details: Optional[dict] = None):
        super().__init__(message, details)
        self.status_code = status_code


# =============================================================================
# Local Cache
# =============================================================================

class LocalDumpCache:
    """
    Client-side dump list fed by API responses and realtime events.

    An insert for an id already present (typically the optimistic copy of
    this client's own write) is ignored. Once closed, the cache ignores
    everything, so a response that resolves after the view went away
    cannot touch its state.
    """

    def __init__(self, dumps: Iterable[DumpResponse] = ()):
        self._dumps: Dict[UUID, DumpResponse] = {dump.id: dump for dump in dumps}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def __len__(self) -> int:
        return len(self._dumps)

    def __contains__(self, dump_id: UUID) -> bool:
        return dump_id in self._dumps

    def get(self, dump_id: UUID) -> Optional[DumpResponse]:
        return self._dumps.get(dump_id)

    def items(self) -> List[DumpResponse]:
        """Newest first, like the list endpoint."""
        return sorted(self._dumps.values(), key=lambda d: d.created_at, reverse=True)

    def add(self, dump: DumpResponse) -> bool:
        """Record a dump this client wrote itself. Returns False if ignored."""
        if self._closed or dump.id in self._dumps:
            return False
        self._dumps[dump.id] = dump
        return True

    def apply(self, event: DumpChangeEvent) -> bool:
        """
        Apply one realtime event.

        Returns:
            True if the cache changed
        """
        if self._closed:
            return False

        if event.type == DumpChangeType.INSERT:
            return event.dump is not None and self.add(event.dump)

        if event.type == DumpChangeType.UPDATE:
            if event.dump is None:
                return False
            self._dumps[event.id] = event.dump
            return True

        return self._dumps.pop(event.id, None) is not None


# =============================================================================
# HTTP Client
# =============================================================================

class BrainDumpClient:
    """
    Async client for the BrainDump API.

    Args:
        base_url: API root, e.g. ``https://api.example.com``
        access_token: Supabase access token of the signed-in user
        transport: Optional httpx transport (tests use ASGI/Mock transports)
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "BrainDumpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        response = await self._http.request(method, url, **kwargs)
        if response.is_success:
            return response

        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") or body.get("detail") or response.text
        raise ApiError(str(message), response.status_code, body.get("details"))

    # -------------------------------------------------------------------------
    # Quota & dumps
    # -------------------------------------------------------------------------

    async def check_limit(self) -> DumpLimit:
        response = await self._request("GET", "/api/quota")
        return DumpLimit.model_validate(response.json())

    async def process_brain_dump(self, text: str) -> ProcessBrainDumpResponse:
        response = await self._request("POST", "/api/process-brain-dump", json={"text": text})
        return ProcessBrainDumpResponse.model_validate(response.json())

    async def submit(self, text: str) -> SubmitDumpResponse:
        response = await self._request("POST", "/api/dumps", json={"text": text})
        return SubmitDumpResponse.model_validate(response.json())

    async def list_dumps(self, limit: Optional[int] = None) -> List[DumpResponse]:
        params = {"limit": limit} if limit else None
        response = await self._request("GET", "/api/dumps", params=params)
        return [DumpResponse.model_validate(item) for item in response.json()]

    async def update_dump(
        self,
        dump_id: UUID,
        completed: Optional[bool] = None,
        text: Optional[str] = None,
    ) -> DumpResponse:
        body = {}
        if completed is not None:
            body["completed"] = completed
        if text is not None:
            body["text"] = text
        response = await self._request("PATCH", f"/api/dumps/{dump_id}", json=body)
        return DumpResponse.model_validate(response.json())

    async def delete_dump(self, dump_id: UUID) -> None:
        await self._request("DELETE", f"/api/dumps/{dump_id}")

    async def stats(self) -> DumpStatsResponse:
        response = await self._request("GET", "/api/dumps/stats")
        return DumpStatsResponse.model_validate(response.json())

    async def stream_events(self) -> AsyncIterator[DumpChangeEvent]:
        """Yield change events from the SSE stream until it closes."""
        async with self._http.stream("GET", "/api/dumps/stream", timeout=None) as response:
            response.raise_for_status()
            event_name, data_lines = None, []
            async for line in response.aiter_lines():
                if line.startswith("event:"):
                    event_name = line[6:].strip()
                elif line.startswith("data:"):
                    data_lines.append(line[5:].strip())
                elif not line and data_lines:
                    if event_name in DumpChangeType._value2member_map_:
                        yield DumpChangeEvent.model_validate(json.loads("\n".join(data_lines)))
                    event_name, data_lines = None, []

    # -------------------------------------------------------------------------
    # Subscriptions & voice
    # -------------------------------------------------------------------------

    async def subscription_status(self) -> SubscriptionStatusResponse:
        response = await self._request("GET", "/api/subscriptions/status")
        return SubscriptionStatusResponse.model_validate(response.json())

    async def create_paypal_subscription(self) -> CreateSubscriptionResponse:
        response = await self._request("POST", "/api/subscriptions/paypal")
        return CreateSubscriptionResponse.model_validate(response.json())

    async def verify_paypal_subscription(self, subscription_id: str) -> VerifySubscriptionResponse:
        response = await self._request(
            "POST",
            "/api/subscriptions/paypal/verify",
            json={"subscription_id": subscription_id},
        )
        return VerifySubscriptionResponse.model_validate(response.json())

    async def complete_payment(
        self,
        return_url: str,
        delay: float = PAYMENT_VERIFICATION_DELAY,
    ) -> VerifySubscriptionResponse:
        """
        Verify after PayPal redirects back to ``/payment-success``.

        Waits ``delay`` seconds first so PayPal can settle. Verification is
        pull-based; if PayPal has not activated the subscription yet, call
        again later.
        """
        subscription_id = subscription_id_from_return_url(return_url)
        if not subscription_id:
            raise ValidationError("No subscription ID found in return URL")
        await asyncio.sleep(delay)
        return await self.verify_paypal_subscription(subscription_id)

    async def voice_to_text(self, audio_b64: str, mime_type: str = "audio/webm") -> str:
        response = await self._request(
            "POST",
            "/api/voice-to-text",
            json={"audio": audio_b64, "mime_type": mime_type},
        )
        return response.json()["text"]
