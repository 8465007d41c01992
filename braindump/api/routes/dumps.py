"""
Brain Dump Routes

Submit, list, edit and delete dumps, the analytics summary, and the
per-user realtime change stream (SSE).
"""

import asyncio
import json
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request, status
from sse_starlette.sse import EventSourceResponse

from braindump.api.dependencies import BrokerDep, CurrentUserId, DumpServiceDep
from braindump.domain.dumps import (
    DumpResponse,
    DumpStatsResponse,
    DumpUpdateRequest,
    SubmitDumpRequest,
    SubmitDumpResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter()

# Seconds between liveness checks while no event arrives
STREAM_POLL_SECONDS = 15.0


@router.post("/dumps", response_model=SubmitDumpResponse, status_code=status.HTTP_201_CREATED)
async def submit_dump(request: SubmitDumpRequest, user_id: CurrentUserId, service: DumpServiceDep):
    """
    Categorize and save a submission.

    One submission can produce several dumps; it counts once against the
    daily quota. Answers 429 when a free user is at the limit.
    """
    return await service.submit(user_id, request.text)


@router.get("/dumps", response_model=List[DumpResponse])
async def list_dumps(
    user_id: CurrentUserId,
    service: DumpServiceDep,
    limit: Optional[int] = Query(None, ge=1, le=1000),
):
    """Newest first."""
    return await service.list_dumps(user_id, limit=limit)


@router.get("/dumps/stats", response_model=DumpStatsResponse)
async def dump_stats(user_id: CurrentUserId, service: DumpServiceDep):
    return await service.stats(user_id)


@router.get("/dumps/stream")
async def stream_dumps(request: Request, user_id: CurrentUserId, broker: BrokerDep):
    """
    Server-Sent Events feed of the caller's dump changes.

    Emits ``INSERT``/``UPDATE``/``DELETE`` events carrying a
    DumpChangeEvent. Ends when the client disconnects.
    """

    async def event_generator():
        async with broker.subscription(user_id) as queue:
            yield {"event": "ready", "data": json.dumps({"status": "subscribed"})}
            while True:
                if await request.is_disconnected():
                    logger.debug(f"Realtime client for user {user_id} disconnected")
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=STREAM_POLL_SECONDS)
                except asyncio.TimeoutError:
                    continue
                yield {
                    "event": event.type.value,
                    "id": str(event.id),
                    "data": event.model_dump_json(),
                }

    return EventSourceResponse(event_generator())


@router.patch("/dumps/{dump_id}", response_model=DumpResponse)
async def update_dump(
    dump_id: UUID,
    request: DumpUpdateRequest,
    user_id: CurrentUserId,
    service: DumpServiceDep,
):
    """Toggle completion and/or edit the text."""
    return await service.update(user_id, dump_id, request)


@router.delete("/dumps/{dump_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dump(dump_id: UUID, user_id: CurrentUserId, service: DumpServiceDep):
    await service.delete(user_id, dump_id)
